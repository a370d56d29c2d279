"""
report.py — Human-readable build diagnostics.

One line (or block) per emitted file goes to a rich Console:
  ✔︎ build/css/variables.css            clean
  ⚠️ build/css/variables.css            collisions and/or dangling references

Reporting never raises and never changes whether a file was written.
"""

from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from tokenforge.diagnostics import DiagnosticsContext, Group, file_group


COLLISION_HELP = [
    'This many-to-one issue is usually caused by some combination of:',
    '* conflicting or similar paths/names in property definitions',
    '* platform transforms/transformGroups affecting names, especially when removing specificity',
    '* overly inclusive file filters',
]

REFERENCE_HELP = [
    'This is caused when combining a filter and `outputReferences`.',
]

_console: Optional[Console] = None


def get_console() -> Console:
    """Shared stdout console, created lazily."""
    global _console
    if _console is None:
        _console = Console(highlight=False, emoji=False, soft_wrap=True)
    return _console


def _block(title: str, messages: Sequence[str], help_lines: Sequence[str]) -> str:
    body = '\n    '.join(escape(m) for m in messages)
    help_text = '\n    '.join(escape(line) for line in help_lines)
    return (
        f"[bold dark_orange]{title}\n    {body}[/]\n"
        f"[orange1]{help_text}[/]"
    )


def report_skipped(destination: str, console: Optional[Console] = None):
    console = console or get_console()
    console.print(f"[dark_orange]No properties for {escape(destination)}. File not created.[/]")


def report(
    destination: str,
    full_destination: str,
    collision_count: int,
    reference_loss_count: int,
    nested: bool,
    collision_messages: List[str],
    reference_loss_messages: List[str],
    console: Optional[Console] = None,
):
    """
    Print the outcome of one file emission.

    Nested formats skip collision warnings; repeated leaf names inside a
    tree are not collisions in the output.
    """
    console = console or get_console()

    if (nested or collision_count == 0) and reference_loss_count == 0:
        console.print(f"[bold green]✔︎ {escape(full_destination)}[/]")
        return

    console.print(f"⚠️ {escape(full_destination)}")

    if collision_count > 0 and not nested:
        title = (f"While building [bold orange_red1]{escape(destination)}[/], "
                 f"token collisions were found; output may be unexpected.")
        console.print(_block(title, collision_messages, COLLISION_HELP))

    if reference_loss_count > 0:
        title = (f"While building [bold orange_red1]{escape(destination)}[/], "
                 f"filtered out token references were found; output may be unexpected. "
                 f"Here are the references that are used but not defined in the file")
        console.print(_block(title, reference_loss_messages, REFERENCE_HELP))


def report_file(
    destination: str,
    full_destination: str,
    collision_count: int,
    reference_loss_count: int,
    nested: bool,
    diagnostics: DiagnosticsContext,
    console: Optional[Console] = None,
):
    """
    Report one file using the messages held in the diagnostics context.

    Reference-loss messages are flushed here, and only when there are
    some, so each message is reported once per run.
    """
    collision_messages = diagnostics.fetch_messages(
        file_group(Group.PROPERTY_NAME_COLLISION_WARNINGS, destination)
    )
    reference_loss_messages: List[str] = []
    if reference_loss_count > 0:
        reference_loss_messages = diagnostics.flush(Group.FILTERED_OUTPUT_REFERENCES)

    report(
        destination,
        full_destination,
        collision_count,
        reference_loss_count,
        nested,
        collision_messages,
        reference_loss_messages,
        console=console,
    )
