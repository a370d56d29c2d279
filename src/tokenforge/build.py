"""
build.py — Emit every file of one or more platforms.

Files are emitted one after another with a shared DiagnosticsContext for
the run. A failing file stops the build; warnings are collected into a
BuildSummary so the caller can decide whether the build was healthy.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from rich.console import Console

from tokenforge.build_file import EmitResult, build_file
from tokenforge.config import BuildConfig, PlatformConfig
from tokenforge.diagnostics import DiagnosticsContext
from tokenforge.errors import ConfigurationError
from tokenforge.tokens import Dictionary


logger = logging.getLogger(__name__)


@dataclass
class BuildSummary:
    results: List[EmitResult] = field(default_factory=list)

    @property
    def written(self) -> List[EmitResult]:
        return [r for r in self.results if not r.skipped]

    @property
    def skipped(self) -> List[EmitResult]:
        return [r for r in self.results if r.skipped]

    @property
    def warnings(self) -> List[EmitResult]:
        return [r for r in self.results if r.has_warnings]

    @property
    def healthy(self) -> bool:
        return not self.warnings


def build_platform(
    platform: PlatformConfig,
    dictionary: Dictionary,
    diagnostics: Optional[DiagnosticsContext] = None,
    console: Optional[Console] = None,
) -> List[EmitResult]:
    """Emit each file of a platform in order."""
    diagnostics = diagnostics if diagnostics is not None else DiagnosticsContext()

    if platform.name:
        logger.info(f"Platform {platform.name}: {len(platform.files)} file(s)")

    return [
        build_file(file, platform, dictionary, diagnostics=diagnostics, console=console)
        for file in platform.files
    ]


def build_all(
    config: BuildConfig,
    dictionary: Dictionary,
    platforms: Optional[Iterable[str]] = None,
    console: Optional[Console] = None,
) -> BuildSummary:
    """
    Emit all (or the named) platforms of a build config.

    Raises:
        ConfigurationError: a requested platform is not in the config
    """
    names = list(platforms) if platforms else list(config.platforms)
    unknown = [name for name in names if name not in config.platforms]
    if unknown:
        raise ConfigurationError(f"Unknown platform(s): {', '.join(unknown)}", field='platforms')

    diagnostics = DiagnosticsContext()
    summary = BuildSummary()
    for name in names:
        summary.results.extend(
            build_platform(config.platforms[name], dictionary, diagnostics=diagnostics, console=console)
        )

    logger.info(f"Wrote {len(summary.written)} file(s), skipped {len(summary.skipped)}, "
                f"{len(summary.warnings)} with warnings")
    return summary
