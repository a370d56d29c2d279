"""Pytest configuration and shared fixtures."""
import io

import pytest
from rich.console import Console

from tokenforge.diagnostics import DiagnosticsContext
from tokenforge.tokens import Dictionary, Token


@pytest.fixture
def console():
    """Console writing plain text into a buffer; read it with console.file.getvalue()."""
    return Console(file=io.StringIO(), width=500, color_system=None, force_terminal=False)


@pytest.fixture
def diagnostics():
    return DiagnosticsContext()


@pytest.fixture
def sample_tree():
    """A small resolved token tree covering colors, spacing and a reference."""
    return {
        "color": {
            "base": {
                "red": {"value": "#ff0000", "attributes": {"category": "color", "type": "base"}},
                "blue": {"value": "#0000ff", "attributes": {"category": "color", "type": "base"}},
            },
            "brand": {
                "primary": {
                    "value": "#0000ff",
                    "original": {"value": "{color.base.blue.value}"},
                    "attributes": {"category": "color", "type": "brand"},
                    "comment": "Main brand color",
                },
            },
        },
        "size": {
            "spacing": {
                "small": {"value": "4px", "attributes": {"category": "size"}},
                "large": {"value": "16px", "attributes": {"category": "size"}},
            },
        },
    }


@pytest.fixture
def sample_dictionary(sample_tree):
    return Dictionary.from_tree(sample_tree)


@pytest.fixture
def colliding_dictionary():
    """Two tokens that both emit the name 'color-a' (Scenario A)."""
    return Dictionary.from_tokens([
        Token(path=("color", "a"), name="color-a", value="#fff"),
        Token(path=("color", "b"), name="color-a", value="#000"),
    ])
