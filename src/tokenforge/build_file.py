"""
build_file.py — Emit one output file from a resolved token dictionary.

Steps for a single FileSpec:
  1. Validate the file spec (format must be a formatter, destination a non-empty string)
  2. Resolve the full destination (platform buildPath + destination)
  3. Ensure the parent directory exists
  4. Filter the dictionary; skip the file entirely if nothing is left
  5. Record output name collisions for this destination
  6. Render with the formatter and write atomically
  7. Report success, or warn about collisions and dangling references

Warnings never stop the build. Configuration, formatter and filesystem
errors are fatal for this file and propagate to the caller.
"""

import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from tokenforge.collisions import CollisionGroup, detect_collisions, record_collisions
from tokenforge.config import FileSpec, PlatformConfig
from tokenforge.diagnostics import DiagnosticsContext, Group
from tokenforge.errors import ConfigurationError, FormatterError
from tokenforge.filters import filter_properties
from tokenforge.formats import FormatArgs, as_formatter, format_options
from tokenforge.report import report_file, report_skipped
from tokenforge.tokens import Dictionary, FilteredDictionary


logger = logging.getLogger(__name__)


@dataclass
class EmitResult:
    """Outcome of one file emission."""
    destination: str
    full_destination: str
    skipped: bool = False
    collision_count: int = 0
    reference_loss_count: int = 0
    nested: bool = False
    collisions: CollisionGroup = field(default_factory=dict)

    @property
    def has_warnings(self) -> bool:
        if self.skipped:
            return False
        return (not self.nested and self.collision_count > 0) or self.reference_loss_count > 0

    @property
    def ok(self) -> bool:
        return not self.has_warnings


def _target_mode(path: Path) -> int:
    """Mode for the replacement file: keep an existing file's, else 0666 minus umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_atomic(path: Path, content: Union[str, bytes]):
    """
    Replace path with content in one step.

    Writes to a temporary file in the same directory, then renames it over
    the destination, so readers never see a truncated file.
    """
    if isinstance(content, str):
        data = content.encode('utf-8')
    else:
        data = bytes(content)

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        # mkstemp creates 0600; match a plain open() instead
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    logger.debug(f"Wrote {len(data):,} bytes to {path}")


def build_file(
    file: FileSpec,
    platform: Optional[PlatformConfig] = None,
    dictionary: Optional[Dictionary] = None,
    diagnostics: Optional[DiagnosticsContext] = None,
    console: Optional[Console] = None,
) -> EmitResult:
    """
    Filter, format and write a single file.

    Args:
        file: Destination, format, optional filter/options/nested override
        platform: Platform settings; build_path is prepended to the destination
        dictionary: Full resolved dictionary for the run
        diagnostics: Run-wide diagnostics context (a fresh one if omitted)
        console: Diagnostics sink (stdout if omitted)

    Returns:
        EmitResult; skipped=True when the filter leaves no tokens

    Raises:
        ConfigurationError: invalid format or destination, before touching disk
        FormatterError: formatter returned neither str nor bytes
        OSError: directory creation or write failed
    """
    if not isinstance(file, FileSpec):
        raise ConfigurationError('Please enter a valid file specification', field='file')

    # Validate before any filesystem interaction
    formatter = as_formatter(file.format)
    destination = file.destination
    if not isinstance(destination, str) or not destination:
        raise ConfigurationError('Please enter a valid destination', field='destination')

    platform = platform or PlatformConfig()
    if dictionary is None:
        dictionary = Dictionary({}, [])
    diagnostics = diagnostics if diagnostics is not None else DiagnosticsContext()
    nested = file.nested if file.nested is not None else formatter.nested

    full_destination = (platform.build_path or '') + destination
    output_path = Path(full_destination)
    logger.debug(f"Building {full_destination} with format {formatter.name}")

    # Concurrent emissions may create the same directory
    output_path.parent.mkdir(parents=True, exist_ok=True)

    filtered = filter_properties(dictionary, file.filter)
    filtered_dictionary = FilteredDictionary(
        filtered.properties,
        filtered.all_properties,
        unfiltered=dictionary,
    )

    if filtered.is_empty():
        logger.debug(f"No tokens left after filtering for {destination}")
        report_skipped(destination, console)
        return EmitResult(
            destination=destination,
            full_destination=full_destination,
            skipped=True,
            nested=nested,
        )

    collisions = detect_collisions(filtered.all_properties)
    collision_count = record_collisions(collisions, diagnostics, destination)

    content = formatter(FormatArgs(
        dictionary=filtered_dictionary,
        platform=platform,
        file=file,
        options=format_options(platform, file),
        diagnostics=diagnostics,
    ))
    if not isinstance(content, (str, bytes, bytearray)):
        raise FormatterError(
            f"Format '{formatter.name}' returned {type(content).__name__} for {destination}; "
            f"expected str or bytes"
        )

    write_atomic(output_path, content)

    reference_loss_count = diagnostics.count(Group.FILTERED_OUTPUT_REFERENCES)

    report_file(
        destination,
        full_destination,
        collision_count,
        reference_loss_count,
        nested,
        diagnostics,
        console=console,
    )

    return EmitResult(
        destination=destination,
        full_destination=full_destination,
        collision_count=collision_count,
        reference_loss_count=reference_loss_count,
        nested=nested,
        collisions=collisions,
    )
