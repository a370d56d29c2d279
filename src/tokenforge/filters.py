"""
filters.py — Select the subset of a token dictionary that one file emits.

filter_properties() applies a predicate to both shapes of a Dictionary:
  - the nested tree keeps its shape, with empty branches pruned
  - the flat list keeps its original relative order

No predicate means "include everything". An empty result is valid and
tells the emitter there is nothing to write.

Predicate builders cover the common cases used in build configs:
  matches({'attributes': {'category': 'color'}})
  path_startswith('color', 'brand')
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from tokenforge.tokens import Dictionary, Token


logger = logging.getLogger(__name__)

Predicate = Callable[[Token], bool]


@dataclass
class FilteredProperties:
    """Result of filtering: nested tree and flat list restricted to kept tokens."""
    properties: Dict[str, Any]
    all_properties: List[Token]

    def is_empty(self) -> bool:
        return not self.properties


def _filter_tree(node: Mapping[str, Any], kept_ids: Set[int]) -> Dict[str, Any]:
    kept: Dict[str, Any] = {}
    for key, child in node.items():
        if isinstance(child, Token):
            if id(child) in kept_ids:
                kept[key] = child
        elif isinstance(child, Mapping):
            branch = _filter_tree(child, kept_ids)
            # Prune branches with no surviving tokens
            if branch:
                kept[key] = branch
    return kept


def filter_properties(dictionary: Dictionary, predicate: Optional[Predicate] = None) -> FilteredProperties:
    """
    Filter a dictionary's tokens with a predicate.

    Args:
        dictionary: Full resolved dictionary (not modified)
        predicate: Token -> bool; None keeps every token

    Returns:
        FilteredProperties with the kept tree and flat list
    """
    if predicate is None:
        all_properties = list(dictionary.all_properties)
    else:
        # One predicate call per token; the tree follows the flat list
        all_properties = [token for token in dictionary.all_properties if predicate(token)]

    properties = _filter_tree(dictionary.properties, {id(token) for token in all_properties})

    logger.debug(f"Filter kept {len(all_properties):,} of {len(dictionary.all_properties):,} tokens")
    return FilteredProperties(properties=properties, all_properties=all_properties)


# =============================================================================
# Predicate Builders
# =============================================================================

def _matches_value(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return False
        return all(
            key in actual and _matches_value(actual[key], sub)
            for key, sub in expected.items()
        )
    return actual == expected


def matches(criteria: Mapping[str, Any]) -> Predicate:
    """
    Build a predicate that checks a token against a partial description.

    Nested mappings match as subsets (so {'attributes': {'category': 'color'}}
    ignores other attributes). 'path' matches as a prefix of the token path.

    Args:
        criteria: Mapping of token field name -> expected value

    Returns:
        Predicate over Token
    """
    criteria = dict(criteria)
    path_prefix = criteria.pop('path', None)
    if isinstance(path_prefix, str):
        path_prefix = path_prefix.split('.')

    def predicate(token: Token) -> bool:
        if path_prefix is not None and tuple(token.path[:len(path_prefix)]) != tuple(path_prefix):
            return False
        for key, expected in criteria.items():
            if not hasattr(token, key):
                return False
            if not _matches_value(getattr(token, key), expected):
                return False
        return True

    return predicate


def path_startswith(*segments: str) -> Predicate:
    """Keep tokens whose path begins with the given segments."""
    prefix = tuple(segments)

    def predicate(token: Token) -> bool:
        return tuple(token.path[:len(prefix)]) == prefix

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    """Keep tokens that satisfy every predicate."""
    def predicate(token: Token) -> bool:
        return all(p(token) for p in predicates)

    return predicate
