"""Temporal expression resolution for natural-language scheduling requests.

Uses regex markers and dateutil to turn phrases like "next Friday at noon",
"in 3 days", "the 5th" or "2-4pm" into absolute, timezone-aware spans.

Resolution runs in two passes. ``_scan`` claims non-overlapping marker spans
(date markers first, then times, durations, recurrences and time-of-day
words) without needing a reference instant. ``resolve`` then maps markers to
dates relative to the reference and pairs each date with the nearest time
marker in the same clause.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, tzinfo

from dateutil import parser as dateutil_parser

from calassist.config import CalendarAssistConfig, get_config
from calassist.errors import unresolved_date
from contracts.calendar import AmbiguityFlag, TemporalExpression, Utterance

logger = logging.getLogger(__name__)

NUMBER_WORDS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
}

DAYS_OF_WEEK = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

RRULE_DAYS = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

NEXT_WEEKDAY_POLICIES = ("upcoming", "following_week")

# Latest date whose surrounding day windows are still representable
LAST_RESOLVABLE_DATE = date.max - timedelta(days=2)

# Regex building blocks
_NUM = r"(?:\d{1,3}|" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True)) + r")"
_WEEKDAY = r"(?P<weekday>" + "|".join(DAYS_OF_WEEK) + r")"
_MONTH = (
    r"(?P<month>jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?"
)
_ORDINAL = r"(?:st|nd|rd|th)"
_AMPM = r"[ap]\.?m\.?"
_LEAD = r"(?:\b(?:at|by|around)\s+|@\s*)?"
_UNIT = r"(?P<unit>hours?|hrs?|minutes?|mins?)"

_CLAUSE_BREAK = re.compile(r"[!?;\n]+|\.(?=\s|$)|\bthen\b", re.IGNORECASE)


@dataclass(frozen=True)
class _Rule:
    """A named marker pattern."""

    name: str
    kind: str  # date, time, duration, recurrence or period
    pattern: re.Pattern[str]


def _rule(name: str, kind: str, pattern: str) -> _Rule:
    return _Rule(name, kind, re.compile(pattern, re.IGNORECASE))


# Longest patterns first: a span claimed by an earlier rule is never re-read.
DATE_RULES = (
    _rule("iso", "date", r"\b(?P<year>\d{4})-(?P<mon>\d{1,2})-(?P<day>\d{1,2})\b"),
    _rule("numeric", "date", r"\b(?P<mon>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{2,4}))?\b"),
    _rule(
        "day_month",
        "date",
        rf"\b(?:the\s+)?(?P<day>\d{{1,2}}){_ORDINAL}?\s+(?:of\s+)?{_MONTH}(?:,?\s+(?P<year>\d{{4}}))?\b",
    ),
    _rule(
        "month_day",
        "date",
        rf"\b{_MONTH}\s+(?:the\s+)?(?P<day>\d{{1,2}}){_ORDINAL}?(?:,?\s+(?P<year>\d{{4}}))?\b",
    ),
    _rule("day_after_tomorrow", "date", r"\b(?:the\s+)?day\s+after\s+tomorrow\b"),
    _rule("in_count", "date", rf"\bin\s+(?P<n>{_NUM})\s+(?P<unit>day|week)s?\b"),
    _rule("from_now", "date", rf"\b(?P<n>{_NUM})\s+(?P<unit>day|week)s?\s+from\s+(?:now|today)\b"),
    _rule("weekend", "date", r"\b(?:(?P<which>this|next|the)\s+)?weekend\b"),
    _rule("every_weekday", "date", rf"\bevery\s+{_WEEKDAY}\b"),
    _rule("this_weekday", "date", rf"\bthis\s+(?:coming\s+)?{_WEEKDAY}\b"),
    _rule("next_weekday", "date", rf"\bnext\s+{_WEEKDAY}\b"),
    _rule("next_week", "date", r"\bnext\s+week\b"),
    _rule("named_day", "date", r"\b(?P<word>today|tonight|tomorrow)\b"),
    _rule("ordinal_day", "date", rf"\bthe\s+(?P<day>\d{{1,2}}){_ORDINAL}\b"),
    _rule("weekday", "date", rf"\b(?:on\s+)?{_WEEKDAY}\b"),
)

TIME_RULES = (
    _rule(
        "range",
        "time",
        r"(?:\b(?P<prefix>from|between)\s+)?\b(?P<h1>\d{1,2})(?::(?P<m1>\d{2}))?\s*"
        rf"(?P<ap1>{_AMPM})?\s*(?P<sep>-|–|\bto\b|\buntil\b|\btill\b|\band\b)\s*"
        rf"(?P<h2>\d{{1,2}})(?::(?P<m2>\d{{2}}))?\s*(?P<ap2>{_AMPM})?(?!\w)",
    ),
    _rule("clock_ampm", "time", rf"{_LEAD}\b(?P<h>\d{{1,2}})(?::(?P<m>\d{{2}}))?\s*(?P<ap>{_AMPM})(?!\w)"),
    _rule("clock_24", "time", rf"{_LEAD}\b(?P<h>\d{{1,2}}):(?P<m>\d{{2}})\b"),
    _rule("noon", "time", rf"{_LEAD}\b(?P<word>noon|midday|midnight)\b"),
    _rule(
        "bare_at",
        "time",
        r"\b(?:at|by|around)\s+(?P<h>\d{1,2})(?:\s*o'?clock)?\b"
        r"(?!\s*(?:[:/%-]|\d|minutes?|mins?|hours?|hrs?|days?|weeks?|people|guests))",
    ),
)

DURATION_RULES = (
    _rule("for_duration", "duration", rf"\bfor\s+(?P<n>half\s+an|\d+(?:\.\d+)?|{_NUM})\s+{_UNIT}\b"),
    _rule("adjective_duration", "duration", rf"(?<!\bin )\b(?P<n>\d+(?:\.\d+)?)[\s-]{_UNIT}\b"),
)

RECURRENCE_RULES = (
    _rule("daily", "recurrence", r"\b(?:every\s+day|daily)\b"),
    _rule("weekly", "recurrence", r"\b(?:every\s+week|weekly)\b"),
    _rule("monthly", "recurrence", r"\b(?:every\s+month|monthly)\b"),
)

PERIOD_RULES = (
    _rule(
        "period",
        "period",
        r"\b(?:in\s+the\s+|this\s+|at\s+)?(?P<word>morning|afternoon|evening|night)\b",
    ),
)

ALL_RULES = DATE_RULES + TIME_RULES + DURATION_RULES + RECURRENCE_RULES + PERIOD_RULES

_RECURRENCE_FREQ = {"daily": "DAILY", "weekly": "WEEKLY", "monthly": "MONTHLY"}


@dataclass
class _Marker:
    """A claimed span of temporal vocabulary."""

    rule: _Rule
    match: re.Match[str]
    clause: int = 0

    @property
    def span(self) -> tuple[int, int]:
        return self.match.span()

    @property
    def text(self) -> str:
        return self.match.group(0)

    @property
    def kind(self) -> str:
        return self.rule.kind


@dataclass(frozen=True)
class _Clock:
    """Resolved time of day, with an optional range end."""

    start: time
    end: time | None = None
    inferred: bool = False


@dataclass(frozen=True)
class _DateEntry:
    """A date marker mapped to a calendar date."""

    marker: _Marker
    day: date | None  # None when the text was date-like but impossible
    recurrence: str | None = None
    intrinsic: _Clock | None = None


def _number(word: str) -> float:
    word = word.lower()
    if word.startswith("half"):
        return 0.5
    if word in NUMBER_WORDS:
        return float(NUMBER_WORDS[word])
    return float(word)


def _minutes(match: re.Match[str]) -> int:
    amount = _number(re.sub(r"\s+", " ", match.group("n")))
    if match.group("unit").lower().startswith("h"):
        amount *= 60
    return int(round(amount))


def _meridiem(hour: int, ampm: str) -> int:
    hour %= 12
    return hour + 12 if ampm.lower().startswith("p") else hour


def _overlaps(a: tuple[int, int], b: tuple[int, int]) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def _distance(a: tuple[int, int], b: tuple[int, int]) -> int:
    if _overlaps(a, b):
        return 0
    return b[0] - a[1] if a[1] <= b[0] else a[0] - b[1]


def _at(day: date, clock: time, tz: tzinfo) -> datetime:
    return datetime(day.year, day.month, day.day, clock.hour, clock.minute, tzinfo=tz)


def _valid_range(match: re.Match[str]) -> bool:
    """Reject digit pairs that only look like time ranges ("2-4", "3 and 5")."""
    groups = match.groupdict()
    if groups["sep"].lower() == "and" and (groups["prefix"] or "").lower() != "between":
        return False
    if not (groups["prefix"] or groups["ap1"] or groups["ap2"] or groups["m1"] or groups["m2"]):
        return False
    for h, m, ap in (("h1", "m1", "ap1"), ("h2", "m2", "ap2")):
        hour = int(groups[h])
        if hour > 23 or int(groups[m] or 0) > 59:
            return False
        if groups[ap] and not 1 <= hour <= 12:
            return False
    return True


def _valid_time(rule: _Rule, match: re.Match[str]) -> bool:
    if rule.name == "range":
        return _valid_range(match)
    if rule.name in ("clock_ampm", "bare_at"):
        return 1 <= int(match.group("h")) <= 12 and int(match.groupdict().get("m") or 0) <= 59
    if rule.name == "clock_24":
        return int(match.group("h")) <= 23 and int(match.group("m")) <= 59
    return True


# Clock-like text that names no real time ("25:00", "13pm")
_CHECKED_CLOCKS = ("clock_24", "clock_ampm")


def _scan(text: str, rejected: list[_Marker] | None = None) -> list[_Marker]:
    """Claim non-overlapping marker spans, earlier rules first.

    Impossible clock times are left unclaimed and, when ``rejected`` is
    given, collected there.
    """
    claimed: list[_Marker] = []
    bad: list[_Marker] = []
    for rule in ALL_RULES:
        for match in rule.pattern.finditer(text):
            if match.end() == match.start():
                continue
            if any(_overlaps(match.span(), m.span) for m in claimed):
                continue
            if rule.kind == "time" and not _valid_time(rule, match):
                if rule.name in _CHECKED_CLOCKS:
                    bad.append(_Marker(rule, match))
                continue
            claimed.append(_Marker(rule, match))
    claimed.sort(key=lambda m: m.span)
    if rejected is not None:
        rejected.extend(
            m for m in bad if not any(_overlaps(m.span, c.span) for c in claimed)
        )
    return claimed


def vocabulary_spans(text: str) -> list[tuple[int, int]]:
    """Character spans of every temporal phrase in text, in order.

    Needs no reference instant, so the entity extractor can use it to keep
    dates and times out of titles and names.
    """
    return [m.span for m in _scan(text)]


def parse_duration_minutes(text: str) -> int | None:
    """Return the first explicit duration in text, in minutes.

    Recognizes "for 2 hours", "for an hour", "for half an hour", "30 minute"
    and "90-min". Returns None when no duration is mentioned.
    """
    for rule in DURATION_RULES:
        match = rule.pattern.search(text)
        if match:
            minutes = _minutes(match)
            if minutes > 0:
                return minutes
    return None


class TemporalResolverImpl:
    """Resolves date/time phrases against a reference instant.

    Handles:
    - Absolute dates: "2024-03-05", "3/5", "March 5th", "5th of March, 2026"
    - Relative dates: today, tomorrow, "in 3 days", "a week from now", "next week"
    - Weekdays: "Friday", "this Friday", "next Friday", "every Friday"
    - Times: "3pm", "15:30", noon, midnight, "at 7", morning/evening
    - Ranges and durations: "2-4pm", "between 9 and 11am", "for 45 minutes"
    - Recurrence: daily, weekly, monthly, "every <weekday>"
    """

    def __init__(
        self,
        default_duration_minutes: int = 60,
        next_weekday_policy: str = "upcoming",
        morning_hour: int = 9,
        afternoon_hour: int = 14,
        evening_hour: int = 18,
        night_hour: int = 20,
    ) -> None:
        """Initialize the resolver.

        Args:
            default_duration_minutes: Event length when no end or duration is given.
            next_weekday_policy: "upcoming" or "following_week".
            morning_hour: Hour assigned to "morning".
            afternoon_hour: Hour assigned to "afternoon".
            evening_hour: Hour assigned to "evening".
            night_hour: Hour assigned to "night" and "tonight".
        """
        if default_duration_minutes < 1:
            msg = f"default_duration_minutes must be >= 1, got {default_duration_minutes}"
            raise ValueError(msg)
        if next_weekday_policy not in NEXT_WEEKDAY_POLICIES:
            msg = f"next_weekday_policy must be one of {NEXT_WEEKDAY_POLICIES}"
            raise ValueError(msg)
        self.default_duration = timedelta(minutes=default_duration_minutes)
        self.next_weekday_policy = next_weekday_policy
        self.period_hours = {
            "morning": morning_hour,
            "afternoon": afternoon_hour,
            "evening": evening_hour,
            "night": night_hour,
        }

    @classmethod
    def from_config(cls, config: CalendarAssistConfig) -> TemporalResolverImpl:
        return cls(
            default_duration_minutes=config.scheduling.default_duration_minutes,
            next_weekday_policy=config.scheduling.next_weekday_policy,
            morning_hour=config.temporal.morning_hour,
            afternoon_hour=config.temporal.afternoon_hour,
            evening_hour=config.temporal.evening_hour,
            night_hour=config.temporal.night_hour,
        )

    def resolve(
        self,
        text: str,
        reference: datetime,
        timezone: str | tzinfo,
    ) -> list[TemporalExpression]:
        """Resolve every date/time phrase in text.

        Args:
            text: Utterance text.
            reference: Instant relative phrases are resolved against. A naive
                value is read as wall-clock time in ``timezone``.
            timezone: IANA zone name or tzinfo.

        Returns:
            Expressions ordered by position in the text. Empty when the text
            mentions no date or time.

        Raises:
            UnresolvedTemporalExpressionError: If date-like text was found but
                none of it maps to a real calendar date.
        """
        if not text or not text.strip():
            return []

        utterance = Utterance(text=text, reference=reference, timezone=timezone)
        now = utterance.local_reference
        rejected: list[_Marker] = []
        markers = _scan(text, rejected)
        if not markers and not rejected:
            return []

        bounds = self._clause_bounds(text, markers + rejected)
        for marker in markers + rejected:
            marker.clause = bisect_right(bounds, marker.span[0])

        expressions: list[TemporalExpression] = []
        invalid: list[str] = []
        for clause in sorted({m.clause for m in markers + rejected}):
            group = [m for m in markers if m.clause == clause]
            found, bad = self._resolve_clause(group, now, utterance.tz)
            bad_clocks = [m.text for m in rejected if m.clause == clause]
            if bad_clocks:
                # Keep the date as a best guess, flagged
                found = [
                    replace(e, flags=e.flags | {AmbiguityFlag.UNRESOLVED_TEMPORAL_EXPRESSION})
                    for e in found
                ]
                bad.extend(bad_clocks)
            expressions.extend(found)
            invalid.extend(bad)

        if invalid:
            if not expressions:
                raise unresolved_date(invalid[0])
            logger.warning("Discarded unresolvable date text: %s", invalid)

        expressions.sort(key=lambda e: e.span)
        logger.debug("Resolved %d temporal expression(s) in %r", len(expressions), text)
        return expressions

    def vocabulary_spans(self, text: str) -> list[tuple[int, int]]:
        """Character spans of every temporal phrase in text, in order."""
        return vocabulary_spans(text)

    @staticmethod
    def _clause_bounds(text: str, markers: list[_Marker]) -> list[int]:
        """Clause start offsets, ignoring punctuation inside markers ("p.m.", "Jan.")."""
        bounds = []
        for brk in _CLAUSE_BREAK.finditer(text):
            if any(_overlaps(brk.span(), m.span) for m in markers):
                continue
            bounds.append(brk.end())
        return bounds

    def _resolve_clause(
        self,
        group: list[_Marker],
        now: datetime,
        tz: tzinfo,
    ) -> tuple[list[TemporalExpression], list[str]]:
        dates = [m for m in group if m.kind == "date"]
        times = [m for m in group if m.kind == "time"]
        periods = [m for m in group if m.kind == "period"]
        durations = [m for m in group if m.kind == "duration"]
        recurrences = [m for m in group if m.kind == "recurrence"]

        # With an explicit clock time, "morning"/"evening" only pick am or pm
        hint = None
        if times and periods:
            hint = periods[0].match.group("word").lower()
        elif periods:
            times = periods

        invalid: list[str] = []
        entries: list[_DateEntry] = []
        for marker in dates:
            try:
                entries.append(self._resolve_date(marker, now.date()))
            except (ValueError, OverflowError) as e:
                logger.debug("Date-like text %r is not a calendar date: %s", marker.text, e)
                invalid.append(marker.text)
                entries.append(_DateEntry(marker=marker, day=None))
        if hint is None and times and any(e.intrinsic for e in entries):
            hint = "night"

        pairs: list[tuple[_DateEntry | None, _Marker | None]] = []
        unused = list(times)
        for entry in entries:
            nearest = None
            if unused:
                nearest = min(unused, key=lambda t: _distance(entry.marker.span, t.span))
                unused.remove(nearest)
            pairs.append((entry, nearest))
        for leftover in unused:
            if entries:
                entry = min(entries, key=lambda e: _distance(e.marker.span, leftover.span))
                pairs.append((entry, leftover))
            else:
                pairs.append((None, leftover))

        generic = None
        if recurrences:
            generic = recurrences[0]
            if not pairs:
                today = _DateEntry(marker=generic, day=now.date())
                pairs.append((today, None))

        duration = timedelta(minutes=_minutes(durations[0].match)) if durations else None

        expressions = []
        for entry, time_marker in pairs:
            if entry is not None and entry.day is None:
                continue
            try:
                expression = self._build(entry, time_marker, hint, duration, generic, now, tz)
            except (ValueError, OverflowError) as e:
                text = entry.marker.text if entry else time_marker.text if time_marker else ""
                logger.debug("Temporal text %r is out of range: %s", text, e)
                invalid.append(text)
                continue
            expressions.append(expression)
        return expressions, invalid

    def _build(
        self,
        entry: _DateEntry | None,
        time_marker: _Marker | None,
        hint: str | None,
        duration: timedelta | None,
        generic: _Marker | None,
        now: datetime,
        tz: tzinfo,
    ) -> TemporalExpression:
        flags: set[AmbiguityFlag] = set()
        clock = self._resolve_time(time_marker, hint) if time_marker else None
        if clock is None and entry is not None:
            clock = entry.intrinsic

        if entry is None:
            assert clock is not None
            day = now.date()
            if _at(day, clock.start, tz) <= now:
                day += timedelta(days=1)
            flags.add(AmbiguityFlag.IMPLIED_DATE)
        else:
            assert entry.day is not None
            day = entry.day
            # "every Monday at 7am" said on a Monday at 10am starts next week
            weekly = entry.marker.rule.name in ("every_weekday", "this_weekday")
            if weekly and clock is not None and _at(day, clock.start, tz) <= now:
                day += timedelta(days=7)

        used = [m for m in (entry.marker if entry else None, time_marker) if m is not None]
        recurrence = entry.recurrence if entry else None
        if recurrence is None and generic is not None:
            freq = _RECURRENCE_FREQ[generic.rule.name]
            recurrence = f"FREQ={freq}"
            if freq == "WEEKLY":
                recurrence += f";BYDAY={RRULE_DAYS[day.weekday()]}"
            if generic not in used:
                used.append(generic)
        used.sort(key=lambda m: m.span)
        span = (used[0].span[0], max(m.span[1] for m in used))
        phrase = " ".join(m.text for m in used)

        if clock is None:
            start = _at(day, time(0, 0), tz)
            end = _at(day + timedelta(days=1), time(0, 0), tz)
            return TemporalExpression(
                text=phrase,
                span=span,
                start=start,
                end=end,
                all_day=True,
                recurrence=recurrence,
                flags=frozenset(flags),
            )

        if clock.inferred:
            flags.add(AmbiguityFlag.INFERRED_TIME_OF_DAY)
        start = _at(day, clock.start, tz)
        if clock.end is not None:
            end = _at(day, clock.end, tz)
            if end <= start:
                end = _at(day + timedelta(days=1), clock.end, tz)
        elif duration is not None and duration > timedelta(0):
            end = start + duration
        else:
            end = start + self.default_duration
            flags.add(AmbiguityFlag.AMBIGUOUS_DURATION)
        if end.date() > LAST_RESOLVABLE_DATE:
            msg = f"{phrase!r} ends past {LAST_RESOLVABLE_DATE.isoformat()}"
            raise ValueError(msg)

        return TemporalExpression(
            text=phrase,
            span=span,
            start=start,
            end=end,
            recurrence=recurrence,
            flags=frozenset(flags),
        )

    def _resolve_date(self, marker: _Marker, today: date) -> _DateEntry:
        """Map a date marker to a calendar date.

        Raises:
            ValueError: If the text names a date that does not exist.
        """
        groups = marker.match.groupdict()
        name = marker.rule.name
        recurrence = None
        intrinsic = None

        if name == "iso":
            day = date(int(groups["year"]), int(groups["mon"]), int(groups["day"]))
        elif name == "numeric":
            day = self._numeric_date(groups, today)
        elif name in ("day_month", "month_day"):
            day = self._month_date(groups["month"], groups["day"], groups["year"], today)
        elif name == "ordinal_day":
            day = self._day_of_month(int(groups["day"]), today)
        elif name == "day_after_tomorrow":
            day = today + timedelta(days=2)
        elif name == "next_week":
            day = today + timedelta(days=7)
        elif name == "named_day":
            word = groups["word"].lower()
            day = today + timedelta(days=1 if word == "tomorrow" else 0)
            if word == "tonight":
                intrinsic = _Clock(time(self.period_hours["night"], 0), inferred=True)
        elif name in ("in_count", "from_now"):
            count = int(_number(groups["n"]))
            day = today + timedelta(days=count * (7 if groups["unit"].lower() == "week" else 1))
        elif name == "weekend":
            day = self._upcoming(today, 5, allow_today=True)
            if (groups["which"] or "").lower() == "next":
                day += timedelta(days=7)
        else:
            weekday = DAYS_OF_WEEK[groups["weekday"].lower()]
            if name == "every_weekday":
                day = self._upcoming(today, weekday, allow_today=True)
                recurrence = f"FREQ=WEEKLY;BYDAY={RRULE_DAYS[weekday]}"
            elif name == "this_weekday":
                day = self._upcoming(today, weekday, allow_today=True)
            elif name == "next_weekday" and self.next_weekday_policy == "following_week":
                next_monday = today + timedelta(days=7 - today.weekday())
                day = next_monday + timedelta(days=weekday)
            else:
                day = self._upcoming(today, weekday, allow_today=False)

        if day > LAST_RESOLVABLE_DATE:
            msg = f"date too far in the future: {day.isoformat()}"
            raise ValueError(msg)
        logger.debug("Date marker %r -> %s", marker.text, day)
        return _DateEntry(marker=marker, day=day, recurrence=recurrence, intrinsic=intrinsic)

    @staticmethod
    def _upcoming(today: date, weekday: int, allow_today: bool) -> date:
        days_ahead = (weekday - today.weekday()) % 7
        if days_ahead == 0 and not allow_today:
            days_ahead = 7
        return today + timedelta(days=days_ahead)

    @staticmethod
    def _numeric_date(groups: dict[str, str | None], today: date) -> date:
        month, day_num = int(groups["mon"] or 0), int(groups["day"] or 0)
        year_text = groups["year"]
        if year_text:
            year = int(year_text)
            if year < 100:
                year += 2000
            return date(year, month, day_num)
        candidate = date(today.year, month, day_num)
        if candidate < today:
            candidate = date(today.year + 1, month, day_num)
        return candidate

    @staticmethod
    def _month_date(month: str | None, day_text: str | None, year: str | None, today: date) -> date:
        month = (month or "").rstrip(".")
        parsed = dateutil_parser.parse(f"{month} {day_text} {year or today.year}").date()
        if year is None and parsed < today:
            parsed = dateutil_parser.parse(f"{month} {day_text} {today.year + 1}").date()
        return parsed

    @staticmethod
    def _day_of_month(day_num: int, today: date) -> date:
        if not 1 <= day_num <= 31:
            msg = f"day of month out of range: {day_num}"
            raise ValueError(msg)
        year, month = today.year, today.month
        for _ in range(13):
            try:
                candidate = date(year, month, day_num)
            except ValueError:
                candidate = None
            if candidate is not None and candidate >= today:
                return candidate
            month += 1
            if month > 12:
                year, month = year + 1, 1
        msg = f"no upcoming month has day {day_num}"
        raise ValueError(msg)

    def _resolve_time(self, marker: _Marker, hint: str | None) -> _Clock:
        groups = marker.match.groupdict()
        name = marker.rule.name

        if name == "period":
            hour = self.period_hours[groups["word"].lower()]
            return _Clock(time(hour, 0), inferred=True)
        if name == "noon":
            return _Clock(time(0, 0) if groups["word"].lower() == "midnight" else time(12, 0))
        if name == "clock_ampm":
            hour = _meridiem(int(groups["h"]), groups["ap"])
            return _Clock(time(hour, int(groups["m"] or 0)))
        if name == "range":
            return self._range_clock(groups, hint)

        hour, minute = int(groups["h"]), int(groups.get("m") or 0)
        if name == "clock_24" and (hour > 12 or hour == 0 or groups["h"].startswith("0")):
            return _Clock(time(hour, minute))
        return _Clock(time(self._infer_hour(hour, hint), minute), inferred=True)

    @staticmethod
    def _infer_hour(hour: int, hint: str | None) -> int:
        """Pick am or pm for a 1-12 hour with no meridiem.

        A time-of-day word decides when present; otherwise 8-11 read as
        morning and 12-7 as afternoon or evening.
        """
        if hint is not None:
            return _meridiem(hour, "am" if hint == "morning" else "pm")
        if hour == 12:
            return 12
        return hour if 8 <= hour <= 11 else hour + 12

    def _range_clock(self, groups: dict[str, str | None], hint: str | None) -> _Clock:
        h1, h2 = int(groups["h1"] or 0), int(groups["h2"] or 0)
        m1, m2 = int(groups["m1"] or 0), int(groups["m2"] or 0)
        ap1, ap2 = groups["ap1"], groups["ap2"]

        def literal(hour: int) -> bool:
            return hour > 12 or hour == 0

        inferred = not (ap1 or ap2 or literal(h1) or literal(h2))

        if ap2:
            end_h = _meridiem(h2, ap2)
        elif literal(h2):
            end_h = h2
        else:
            end_h = None

        if ap1:
            start_h = _meridiem(h1, ap1)
        elif literal(h1):
            start_h = h1
        elif ap2:
            start_h = _meridiem(h1, ap2)
            if end_h is not None and (start_h, m1) > (end_h, m2):
                start_h = _meridiem(h1, "am" if ap2.lower().startswith("p") else "pm")
        else:
            start_h = self._infer_hour(h1, hint)

        if end_h is None:
            # Smallest reading of h2 that falls after the start
            options = [h2 % 12, h2 % 12 + 12]
            later = [h for h in options if (h, m2) > (start_h, m1)]
            end_h = later[0] if later else options[0]

        return _Clock(time(start_h, m1), time(end_h, m2), inferred=inferred)


# Module-level singleton
_resolver: TemporalResolverImpl | None = None


def get_temporal_resolver() -> TemporalResolverImpl:
    """Get the singleton temporal resolver, configured from get_config().

    Returns:
        TemporalResolverImpl instance.
    """
    global _resolver
    if _resolver is None:
        _resolver = TemporalResolverImpl.from_config(get_config())
    return _resolver


def reset_temporal_resolver() -> None:
    """Reset the singleton temporal resolver."""
    global _resolver
    _resolver = None
