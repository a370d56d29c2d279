"""
collisions.py — Detect output names produced by more than one token.

Within one file, every emitted name should come from exactly one token.
When transforms or filters collapse two paths onto the same name, the
output silently loses one of them; these are reported, never resolved.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List

from tokenforge.diagnostics import DiagnosticsContext, Group, file_group
from tokenforge.tokens import Token


# name -> tokens that produced it, in first-seen order
CollisionGroup = Dict[str, List[Token]]


def detect_collisions(tokens: Iterable[Token]) -> CollisionGroup:
    """
    Group tokens by emitted name and keep only names shared by 2+ tokens.

    Names appear in the order they were first seen; tokens within a name
    keep their input order.
    """
    by_name: 'OrderedDict[str, List[Token]]' = OrderedDict()
    for token in tokens:
        by_name.setdefault(token.name, []).append(token)

    return OrderedDict(
        (name, group) for name, group in by_name.items() if len(group) > 1
    )


def collision_message(name: str, tokens: List[Token]) -> str:
    lines = [f"{token.dotted_path}   {token.value}" for token in tokens]
    return f"Output name {name} was generated by:\n        " + '\n        '.join(lines)


def record_collisions(
    collisions: CollisionGroup,
    diagnostics: DiagnosticsContext,
    destination: str,
) -> int:
    """
    Record collision messages for one destination.

    Clears any earlier messages for the destination first, so repeated
    emissions of the same file report the same findings.

    Returns:
        Number of colliding names (not number of duplicate tokens)
    """
    key = file_group(Group.PROPERTY_NAME_COLLISION_WARNINGS, destination)
    diagnostics.clear(key)

    for name, group in collisions.items():
        diagnostics.add(key, collision_message(name, group))

    return diagnostics.count(key)


def check_name_collisions(
    tokens: Iterable[Token],
    diagnostics: DiagnosticsContext,
    destination: str,
) -> int:
    """Detect and record collisions among tokens; returns the colliding name count."""
    return record_collisions(detect_collisions(tokens), diagnostics, destination)
