"""
tokenforge — Filter, check and write design token files.

Given a resolved token dictionary, a platform and a file spec, build_file()
writes exactly one output file and reports output name collisions and
references to filtered-out tokens without failing the build.
"""

from tokenforge.build import BuildSummary, build_all, build_platform
from tokenforge.build_file import EmitResult, build_file
from tokenforge.config import BuildConfig, FileSpec, PlatformConfig, load_config
from tokenforge.diagnostics import DiagnosticsContext, Group
from tokenforge.errors import BuildError, ConfigurationError, FormatterError, UnresolvedReferenceError
from tokenforge.filters import filter_properties, matches, path_startswith
from tokenforge.formats import FORMATS, FormatArgs, Formatter, register_format
from tokenforge.tokens import Dictionary, FilteredDictionary, Token, load_dictionary

__all__ = [
    "BuildConfig",
    "BuildError",
    "BuildSummary",
    "ConfigurationError",
    "DiagnosticsContext",
    "Dictionary",
    "EmitResult",
    "FORMATS",
    "FileSpec",
    "FilteredDictionary",
    "FormatArgs",
    "Formatter",
    "FormatterError",
    "Group",
    "PlatformConfig",
    "Token",
    "UnresolvedReferenceError",
    "build_all",
    "build_file",
    "build_platform",
    "filter_properties",
    "load_config",
    "load_dictionary",
    "matches",
    "path_startswith",
]
