"""
references.py — Token references and reference-loss tracking.

Token values may point at other tokens with curly-brace syntax:

    {"value": "#0055ff", "original": {"value": "{color.base.blue.value}"}}

When a formatter writes references instead of resolved values (the
outputReferences option), a reference to a token the file filter excluded
becomes a dangling name in the output. Those are recorded in the run-wide
Group.FILTERED_OUTPUT_REFERENCES group and reported after the file is
written.
"""

import logging
import re
from typing import Any, List, Mapping

from tokenforge.diagnostics import DiagnosticsContext, Group
from tokenforge.errors import UnresolvedReferenceError
from tokenforge.tokens import Dictionary, FilteredDictionary, Token, find_token


logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r'\{([^}]+)\}')


def original_value(token: Token) -> Any:
    """The pre-transform value, where references are still visible."""
    if token.original and 'value' in token.original:
        return token.original['value']
    return token.value


def uses_reference(value: Any) -> bool:
    if isinstance(value, str):
        return bool(REFERENCE_PATTERN.search(value))
    if isinstance(value, Mapping):
        return any(uses_reference(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(uses_reference(v) for v in value)
    return False


def reference_path(reference: str) -> List[str]:
    """'color.base.red.value' -> ['color', 'base', 'red']"""
    path = reference.strip().split('.')
    if len(path) > 1 and path[-1] == 'value':
        path = path[:-1]
    return path


def _reference_strings(value: Any) -> List[str]:
    if isinstance(value, str):
        return REFERENCE_PATTERN.findall(value)
    if isinstance(value, Mapping):
        return [ref for v in value.values() for ref in _reference_strings(v)]
    if isinstance(value, (list, tuple)):
        return [ref for v in value for ref in _reference_strings(v)]
    return []


def get_references(value: Any, dictionary: Dictionary) -> List[Token]:
    """
    Resolve every reference in a value to its token.

    Lookups go against the unfiltered tree when given a FilteredDictionary,
    so references to filtered-out tokens still resolve.

    Raises:
        UnresolvedReferenceError: a reference names no token at all
    """
    if isinstance(dictionary, FilteredDictionary):
        tree = dictionary.unfiltered_properties
    else:
        tree = dictionary.properties

    tokens = []
    for reference in _reference_strings(value):
        token = find_token(tree, reference_path(reference))
        if token is None:
            raise UnresolvedReferenceError(
                f"Reference doesn't exist: tries to reference {reference}, which is not defined",
                reference=reference,
            )
        tokens.append(token)
    return tokens


def record_filtered_reference(diagnostics: DiagnosticsContext, token: Token, reference: Token):
    """Note that token's output refers to a token its file does not define."""
    diagnostics.add(
        Group.FILTERED_OUTPUT_REFERENCES,
        f"{reference.name} (referenced by {token.name} at {token.dotted_path})",
    )


def check_output_references(
    token: Token,
    dictionary: FilteredDictionary,
    diagnostics: DiagnosticsContext,
) -> List[Token]:
    """
    Resolve the references a token's output would use.

    Every referenced token that is not part of the filtered set is recorded
    as reference loss.

    Returns:
        Referenced tokens in order of appearance, filtered-out ones included
    """
    references = get_references(original_value(token), dictionary)
    for reference in references:
        if not dictionary.contains(reference):
            logger.debug(f"{token.dotted_path} references filtered-out {reference.dotted_path}")
            record_filtered_reference(diagnostics, token, reference)
    return references
