"""calassist CLI - draft calendar events and query free time from plain text.

Usage:
    calassist parse "Lunch with Sarah next Friday at noon"
    calassist --events calendar.json ask "Am I free tomorrow at 3pm?"
    calassist --events calendar.json slots --duration 30 --date tomorrow
    calassist --events calendar.json chat
    calassist version

Global options come before the command:
    calassist --tz Europe/London --now "2024-01-15 10:00" parse "dinner at 7"
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, time, timedelta
from typing import NoReturn
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from calassist import __version__
from calassist.config import CalendarAssistConfig, get_config
from calassist.errors import CalendarAssistError, ExternalModelError, TemporalError
from calassist.fallbacks import fallback_for_error
from calassist.orchestrator import Orchestrator, TurnResult
from contracts.calendar import (
    ConflictReport,
    DraftKind,
    EventDraft,
    ExistingEvent,
    TimeInterval,
    Utterance,
)
from contracts.llm import ChatMessage
from integrations.calendar import InMemoryCalendarStore

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("quit", "exit", "q")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, set DEBUG level; otherwise WARNING.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _parse_now(value: str) -> datetime:
    """Parse --now as "YYYY-MM-DD HH:MM" or "YYYY-MM-DD" (naive wall-clock time)."""
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    raise argparse.ArgumentTypeError(f"invalid --now value {value!r}, expected YYYY-MM-DD HH:MM")


def _parse_zone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"unknown time zone {value!r}") from e
    return value


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}") from e
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {number}")
    return number


# =============================================================================
# Rendering
# =============================================================================


def _fmt(instant: datetime | None) -> str:
    return instant.strftime("%a %Y-%m-%d %H:%M") if instant else "-"


def _format_error(error: CalendarAssistError) -> None:
    """Print a domain error with the matching suggestion."""
    fallback = fallback_for_error(error)
    console.print(f"[red]Error: {fallback.text}[/red]")
    if not isinstance(error, ExternalModelError) and error.message != fallback.text:
        console.print(f"[dim]{error.message}[/dim]")
    console.print(f"[yellow]{fallback.suggestion}[/yellow]")


def _print_draft(draft: EventDraft) -> None:
    table = Table(title="Task draft" if draft.kind is DraftKind.TASK else "Event draft")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Title", draft.title)
    if draft.kind is DraftKind.TASK:
        table.add_row("Due", _fmt(draft.start))
    else:
        table.add_row("Start", _fmt(draft.start))
        table.add_row("End", _fmt(draft.end))
        if draft.all_day:
            table.add_row("All day", "yes")
    table.add_row("Category", draft.category.value)
    if draft.participants:
        table.add_row("With", ", ".join(draft.participants))
    if draft.location:
        table.add_row("Location", draft.location)
    if draft.recurrence:
        table.add_row("Repeats", draft.recurrence)
    table.add_row("Confidence", f"{draft.confidence:.2f}")
    if draft.ambiguity_flags:
        table.add_row("Flags", ", ".join(sorted(flag.value for flag in draft.ambiguity_flags)))
    console.print(table)


def _print_events(events: tuple[ExistingEvent, ...] | list[ExistingEvent], title: str) -> None:
    table = Table(title=title)
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Title")
    for event in events:
        table.add_row(_fmt(event.start), _fmt(event.end), event.title or event.id)
    console.print(table)


def _print_slots(slots: tuple[TimeInterval, ...] | list[TimeInterval], title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Minutes", justify="right")
    for i, slot in enumerate(slots, 1):
        minutes = int(slot.duration.total_seconds() // 60)
        table.add_row(str(i), _fmt(slot.start), _fmt(slot.end), str(minutes))
    console.print(table)


def _print_report(report: ConflictReport) -> None:
    if not report.has_conflicts:
        console.print("[green]No conflicts.[/green]")
        return
    _print_events(report.overlapping, "Conflicts")
    if report.free_slot_suggestions:
        _print_slots(report.free_slot_suggestions, "Free instead")


def _print_details(result: TurnResult) -> None:
    if result.draft is not None:
        _print_draft(result.draft)
        if result.conflict_report is not None:
            _print_report(result.conflict_report)
        return
    if result.events:
        _print_events(result.events, "Events")
    if result.suggestions:
        _print_slots(result.suggestions, "Free slots")


def _print_turn(result: TurnResult) -> None:
    if result.error is not None:
        _format_error(result.error)
        return
    if result.draft is None:
        console.print(result.message)
    _print_details(result)


# =============================================================================
# Commands
# =============================================================================


class _Session:
    """Per-invocation state shared by the commands."""

    def __init__(self, args: argparse.Namespace, config: CalendarAssistConfig) -> None:
        self.config = config
        self.timezone: str = args.tz or config.timezone
        tz = ZoneInfo(self.timezone)
        reference = args.now or datetime.now(tz)
        self.now = Utterance("", reference, tz).local_reference
        if args.events:
            self.store = InMemoryCalendarStore.from_json(args.events, self.timezone)
        else:
            self.store = InMemoryCalendarStore()
        self.orchestrator = Orchestrator.from_config(config, store=self.store)


def _confirm_and_save(session: _Session, draft: EventDraft, assume_yes: bool) -> None:
    if draft.kind is not DraftKind.EVENT:
        return
    if assume_yes or Confirm.ask("Save this event?", default=False, console=console):
        result = session.orchestrator.commit(draft)
        console.print(f"[green]Saved event {result.event_id}.[/green]")


def cmd_parse(args: argparse.Namespace, session: _Session) -> int:
    """Draft an event (or task) without classifying or querying."""
    orchestrator = session.orchestrator
    utterance = Utterance(args.text, session.now, session.timezone)
    kind = DraftKind.TASK if args.task else DraftKind.EVENT
    try:
        expressions = orchestrator.resolver.resolve(args.text, session.now, session.timezone)
    except TemporalError as e:
        _format_error(e)
        return 1
    consumed = tuple(e.span for e in expressions)
    entities, label = orchestrator.extractor.extract(args.text, consumed)
    try:
        draft = orchestrator.builder.build(utterance, expressions, entities, label, kind)
    except CalendarAssistError as e:
        _format_error(e)
        return 1
    _print_draft(draft)
    return 0


def cmd_ask(args: argparse.Namespace, session: _Session) -> int:
    """Run one full turn."""
    result = session.orchestrator.handle(args.text, session.now, session.timezone)
    _print_turn(result)
    if result.error is not None:
        return 1
    if result.draft is not None and args.save:
        _confirm_and_save(session, result.draft, assume_yes=True)
    return 0


def cmd_slots(args: argparse.Namespace, session: _Session) -> int:
    """Suggest free slots on a day or over the look-ahead window."""
    tz = ZoneInfo(session.timezone)
    orchestrator = session.orchestrator
    if args.date:
        day = _resolve_day(args.date, session)
        if day is None:
            console.print(f"[red]Error: could not read date {args.date!r}[/red]")
            return 1
        start = datetime.combine(day, time(0, 0), tzinfo=tz)
        end = start + timedelta(days=1)
    else:
        start = session.now
        end = datetime.combine(session.now.date(), time(0, 0), tzinfo=tz) + timedelta(
            days=session.config.scheduling.lookahead_days
        )
    if start < session.now < end:
        start = session.now

    events = session.store.get_events(start, end)
    try:
        slots = orchestrator.engine.suggest_slots(
            args.duration, TimeInterval(start, end), events, orchestrator.working_hours
        )
    except CalendarAssistError as e:
        _format_error(e)
        return 1
    if not slots:
        console.print(f"No free {args.duration}-minute slots found.")
        return 0
    _print_slots(slots, f"Free {args.duration}-minute slots")
    return 0


def _resolve_day(text: str, session: _Session) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        expressions = session.orchestrator.resolver.resolve(text, session.now, session.timezone)
    except TemporalError:
        return None
    if not expressions:
        return None
    return expressions[0].start.astimezone(ZoneInfo(session.timezone)).date()


def cmd_chat(args: argparse.Namespace, session: _Session) -> int:
    """Interactive loop; drafts are saved only after confirmation."""
    console.print(
        Panel(
            "[bold green]calassist chat[/bold green]\n"
            "Describe an event, add a task or ask about your schedule. "
            "Type 'quit' or 'exit' to leave.\n"
            "Try: 'Lunch with Sarah next Friday at noon' or 'am I free tomorrow afternoon?'",
            title="Chat Mode",
        )
    )
    history: list[ChatMessage] = []
    limit = session.config.llm.history_limit or 10

    while True:
        try:
            user_input = console.input("[bold blue]You:[/bold blue] ")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye![/dim]")
            break

        user_input = user_input.strip()
        if not user_input:
            continue
        if user_input.lower() in EXIT_WORDS:
            console.print("[dim]Goodbye![/dim]")
            break

        result = session.orchestrator.handle(
            user_input,
            datetime.now(ZoneInfo(session.timezone)) if args.live_clock else session.now,
            session.timezone,
            history=tuple(history[-limit:]),
        )
        reply = result.message
        console.print(f"[bold green]calassist:[/bold green] {reply}")
        if result.error is None:
            _print_details(result)
        if result.draft is not None and result.error is None:
            try:
                _confirm_and_save(session, result.draft, assume_yes=False)
            except CalendarAssistError as e:
                _format_error(e)
        console.print()

        history.append(ChatMessage("user", user_input))
        history.append(ChatMessage("assistant", reply))

    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Print the version."""
    console.print(f"calassist {__version__}")
    return 0


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="calassist",
        description="Draft calendar events from plain text and find free time.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calassist parse "Lunch with Sarah next Friday at noon"
  calassist --events calendar.json ask "what's on tomorrow?"
  calassist --events calendar.json slots --duration 45 --date 2024-03-05
  calassist --events calendar.json chat
        """,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging for troubleshooting"
    )
    parser.add_argument(
        "--events",
        metavar="FILE",
        help='JSON list of {"id", "title", "start", "end"} events to check against',
    )
    parser.add_argument("--tz", type=_parse_zone, metavar="ZONE", help="IANA time zone")
    parser.add_argument(
        "--now",
        type=_parse_now,
        metavar='"YYYY-MM-DD HH:MM"',
        help="reference time for relative dates (defaults to the current time)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    parse_parser = subparsers.add_parser("parse", help="draft an event without saving")
    parse_parser.add_argument("text", help="the request, e.g. 'dinner with Sam at 7pm'")
    parse_parser.add_argument("--task", action="store_true", help="draft a task instead")
    parse_parser.set_defaults(func=cmd_parse)

    ask_parser = subparsers.add_parser("ask", help="run one request through the assistant")
    ask_parser.add_argument("text", help="the request or question")
    ask_parser.add_argument(
        "--save", action="store_true", help="save the drafted event to the loaded calendar"
    )
    ask_parser.set_defaults(func=cmd_ask)

    slots_parser = subparsers.add_parser("slots", help="suggest free slots")
    slots_parser.add_argument(
        "--duration", type=_positive_int, required=True, metavar="N", help="slot length in minutes"
    )
    slots_parser.add_argument(
        "--date", metavar="D", help="day to search, e.g. 2024-03-05 or 'next monday'"
    )
    slots_parser.set_defaults(func=cmd_slots)

    chat_parser = subparsers.add_parser("chat", help="start interactive chat mode")
    chat_parser.add_argument(
        "--live-clock",
        action="store_true",
        help="resolve each message against the current time instead of --now",
    )
    chat_parser.set_defaults(func=cmd_chat)

    version_parser = subparsers.add_parser("version", help="show version information")
    version_parser.set_defaults(func=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. Uses sys.argv if None.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        return cmd_version(args)

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        session = _Session(args, get_config())
        result: int = args.func(args, session)
    except CalendarAssistError as e:
        _format_error(e)
        return 1
    return result


def run() -> NoReturn:
    """Entry point that handles interrupts and exit codes."""
    try:
        exit_code = main()
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        exit_code = 130
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        logger.exception("Unexpected error")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    run()
