"""
tokens.py — Token tree data model.

A Dictionary holds the fully resolved design tokens for one build in two
shapes:
  - properties: nested tree keyed by path segments, leaves are Token
  - all_properties: flat list of Token in tree (insertion) order

FilteredDictionary is the per-file view handed to formatters. It keeps a
back-reference to the unfiltered tree so cross-references can still be
resolved for tokens that are not themselves emitted.

Resolved token files are plain JSON trees; any object carrying a "value"
key is a token leaf:

    {"color": {"brand": {"primary": {"value": "#0055ff", "name": "color-brand-primary"}}}}
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import orjson


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    """A single resolved design token."""
    path: Tuple[str, ...]
    name: str
    value: Any
    original: Optional[Mapping[str, Any]] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    comment: Optional[str] = None

    @property
    def dotted_path(self) -> str:
        return '.'.join(self.path)


def is_token_node(node: Any) -> bool:
    """A mapping with a 'value' key is a token leaf."""
    return isinstance(node, Mapping) and 'value' in node


def token_from_node(path: Sequence[str], node: Mapping[str, Any]) -> Token:
    """Build a Token from a raw leaf mapping; name defaults to the path joined with '-'."""
    original = node.get('original')
    if original is None:
        original = {'value': node['value']}

    return Token(
        path=tuple(path),
        name=node.get('name') or '-'.join(path),
        value=node['value'],
        original=original,
        attributes=dict(node.get('attributes') or {}),
        comment=node.get('comment'),
    )


def iter_tokens(properties: Mapping[str, Any]) -> Iterator[Token]:
    """Yield every Token leaf in a properties tree, depth first, in key order."""
    for node in properties.values():
        if isinstance(node, Token):
            yield node
        elif isinstance(node, Mapping):
            yield from iter_tokens(node)


def find_token(properties: Mapping[str, Any], path: Sequence[str]) -> Optional[Token]:
    """Walk a properties tree by path segments; None unless the path ends on a Token."""
    node: Any = properties
    for segment in path:
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return node if isinstance(node, Token) else None


def build_tree(tokens: Iterable[Token]) -> Dict[str, Any]:
    """Rebuild the nested properties tree from a flat list of tokens."""
    tree: Dict[str, Any] = {}
    for token in tokens:
        branch = tree
        for segment in token.path[:-1]:
            branch = branch.setdefault(segment, {})
        branch[token.path[-1]] = token
    return tree


class Dictionary:
    """Resolved token set for one build: nested tree plus flat list."""

    def __init__(self, properties: Dict[str, Any], all_properties: List[Token]):
        self.properties = properties
        self.all_properties = all_properties

    @classmethod
    def from_tokens(cls, tokens: Iterable[Token]) -> 'Dictionary':
        tokens = list(tokens)
        return cls(build_tree(tokens), tokens)

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any]) -> 'Dictionary':
        """
        Build a Dictionary from a raw resolved tree.

        Args:
            tree: Nested mapping whose leaves are mappings with a 'value' key

        Returns:
            Dictionary with Token leaves in source key order
        """
        tokens: List[Token] = []

        def walk(node: Mapping[str, Any], path: List[str]):
            for key, child in node.items():
                child_path = path + [key]
                if is_token_node(child):
                    tokens.append(token_from_node(child_path, child))
                elif isinstance(child, Mapping):
                    walk(child, child_path)

        walk(tree, [])
        return cls.from_tokens(tokens)

    # Aliases for formatters written against the newer "tokens" naming
    @property
    def tokens(self) -> Dict[str, Any]:
        return self.properties

    @property
    def all_tokens(self) -> List[Token]:
        return self.all_properties

    def __len__(self) -> int:
        return len(self.all_properties)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.all_properties)} tokens)"


class FilteredDictionary(Dictionary):
    """
    Per-file view of a Dictionary restricted to the tokens a filter kept.

    unfiltered_properties is the tree the view was derived from; formatters
    use it to resolve references to tokens that were filtered out.
    """

    def __init__(
        self,
        properties: Dict[str, Any],
        all_properties: List[Token],
        unfiltered: Dictionary,
    ):
        super().__init__(properties, all_properties)
        self.unfiltered_properties = unfiltered.properties
        self.unfiltered_all_properties = unfiltered.all_properties
        self._ids = {id(token) for token in all_properties}

    def is_empty(self) -> bool:
        return not self.properties

    def contains(self, token: Token) -> bool:
        """True if this exact token survived the filter."""
        return id(token) in self._ids

    def find(self, path: Sequence[str]) -> Optional[Token]:
        """Look up a token by path in the unfiltered tree."""
        return find_token(self.unfiltered_properties, path)


def load_dictionary(tokens_path: Path) -> Dictionary:
    """Load a resolved token tree from a JSON file."""
    logger.info(f"Loading tokens from {tokens_path}")

    with open(tokens_path, 'rb') as f:
        data = orjson.loads(f.read())

    if not isinstance(data, dict):
        raise ValueError(f"{tokens_path}: expected a JSON object at the top level")

    dictionary = Dictionary.from_tree(data)
    logger.info(f"  -> Loaded {len(dictionary):,} tokens")
    return dictionary
