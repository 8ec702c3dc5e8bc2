"""Shared test helpers and fakes."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from contracts.calendar import ExistingEvent
from contracts.llm import ChatMessage, CompletionConfig

TZ_NAME = "America/New_York"
TZ = ZoneInfo(TZ_NAME)

# Monday 2024-01-15 10:00 in New York
REFERENCE = datetime(2024, 1, 15, 10, 0, tzinfo=TZ)


def at(day: int, hour: int, minute: int = 0, month: int = 1) -> datetime:
    """New York wall-clock instant in 2024."""
    return datetime(2024, month, day, hour, minute, tzinfo=TZ)


def make_event(event_id: str, start: datetime, end: datetime, title: str = "") -> ExistingEvent:
    return ExistingEvent(id=event_id, start=start, end=end, title=title or event_id)


class FakeBackend:
    """Scripted LanguageModelBackend.

    Each call pops the next scripted item: a string is returned, an
    exception is raised. Calls are recorded for assertions.
    """

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[str, CompletionConfig, tuple[ChatMessage, ...]]] = []

    def complete(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...] = (),
    ) -> str:
        self.calls.append((prompt, config, history))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply
