"""
formats.py — Formatter call contract and built-in formatters.

A formatter turns the filtered view of one file into its content:

    render(args: FormatArgs) -> str | bytes

FormatArgs bundles everything a formatter may look at. The Formatter
descriptor carries the render function together with its `nested` flag;
nested outputs (trees rather than flat lists) are exempt from name
collision warnings.

Built-in formats:
  json/flat       {"color-brand-primary": "#0055ff", ...}
  json/nested     {"color": {"brand": {"primary": "#0055ff"}}}
  css/variables   :root { --color-brand-primary: #0055ff; }
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Union

import orjson

from tokenforge.diagnostics import DiagnosticsContext
from tokenforge.errors import ConfigurationError
from tokenforge.references import (
    REFERENCE_PATTERN,
    check_output_references,
    original_value,
    uses_reference,
)
from tokenforge.tokens import FilteredDictionary, Token

if TYPE_CHECKING:
    from tokenforge.config import FileSpec, PlatformConfig


Content = Union[str, bytes]


@dataclass(frozen=True)
class FormatArgs:
    """Everything a formatter receives for one file."""
    dictionary: FilteredDictionary
    platform: 'PlatformConfig'
    file: 'FileSpec'
    options: Mapping[str, Any] = field(default_factory=dict)
    diagnostics: DiagnosticsContext = field(default_factory=DiagnosticsContext)


@dataclass(frozen=True)
class Formatter:
    name: str
    render: Callable[[FormatArgs], Content]
    nested: bool = False

    def __call__(self, args: FormatArgs) -> Content:
        return self.render(args)


def as_formatter(format: Any) -> Formatter:
    """Accept a Formatter or a plain render callable."""
    if isinstance(format, Formatter):
        return format
    if callable(format):
        return Formatter(name=getattr(format, '__name__', 'custom'), render=format)
    raise ConfigurationError('Please enter a valid file format', field='format')


def format_options(platform: 'PlatformConfig', file: 'FileSpec') -> Dict[str, Any]:
    """Platform options overlaid with file options."""
    options = dict(platform.options or {})
    options.update(file.options or {})
    return options


# =============================================================================
# Registry
# =============================================================================

FORMATS: Dict[str, Formatter] = {}


def register_format(name: str, nested: bool = False):
    """Decorator adding a render function to the format registry."""
    def decorator(render: Callable[[FormatArgs], Content]):
        FORMATS[name] = Formatter(name=name, render=render, nested=nested)
        return render
    return decorator


def get_format(name: str) -> Formatter:
    try:
        return FORMATS[name]
    except KeyError:
        known = ', '.join(sorted(FORMATS))
        raise ConfigurationError(f"Unknown format '{name}' (known: {known})", field='format') from None


# =============================================================================
# Built-in Formats
# =============================================================================

def _values_tree(node: Mapping[str, Any]) -> Dict[str, Any]:
    tree = {}
    for key, child in node.items():
        if isinstance(child, Token):
            tree[key] = child.value
        else:
            tree[key] = _values_tree(child)
    return tree


@register_format('json/flat')
def json_flat(args: FormatArgs) -> bytes:
    data = {token.name: token.value for token in args.dictionary.all_properties}
    return orjson.dumps(data, option=orjson.OPT_INDENT_2) + b'\n'


@register_format('json/nested', nested=True)
def json_nested(args: FormatArgs) -> bytes:
    data = _values_tree(args.dictionary.properties)
    return orjson.dumps(data, option=orjson.OPT_INDENT_2) + b'\n'


def _css_value(token: Token, args: FormatArgs) -> str:
    value = original_value(token)
    if not args.options.get('outputReferences') or not isinstance(value, str) or not uses_reference(value):
        return str(token.value)

    # Filtered-out references are still written; the reporter warns about them
    references = iter(check_output_references(token, args.dictionary, args.diagnostics))
    return REFERENCE_PATTERN.sub(lambda match: f"var(--{next(references).name})", value)


@register_format('css/variables')
def css_variables(args: FormatArgs) -> str:
    selector = args.options.get('selector', ':root')
    lines = [
        '/**',
        ' * Do not edit directly',
        ' * Generated by tokenforge',
        ' */',
        '',
        f"{selector} {{",
    ]
    for token in args.dictionary.all_properties:
        line = f"  --{token.name}: {_css_value(token, args)};"
        if token.comment:
            line += f" /* {token.comment} */"
        lines.append(line)
    lines.append('}')
    return '\n'.join(lines) + '\n'
