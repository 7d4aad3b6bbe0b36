"""
Recurrence rules and their expansion into dated occurrences.

A rule is stored on the parent task as an RFC 5545 style string
(``FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE;COUNT=6``) and expanded eagerly when
the series is created: every occurrence becomes its own task row.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence

from .errors import ValidationError
from .utils.datetime import add_months, add_years, week_start


logger = logging.getLogger(__name__)

WEEKDAY_CODES = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]
WEEKDAY_NAMES = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]


class Frequency(Enum):
    """Recurrence frequencies"""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"  # explicit date list


def weekday_from_name(name: str) -> int:
    """Convert ``MO``/``MONDAY``/``monday`` to a weekday number (0=Monday)."""
    key = name.strip().upper()
    if key in WEEKDAY_CODES:
        return WEEKDAY_CODES.index(key)
    if key in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(key)
    raise ValidationError(f"Unknown weekday: {name}")


@dataclass
class RecurrenceRule:
    """Defines how a task repeats"""
    frequency: Frequency
    interval: int = 1  # Every N days/weeks/months/years
    by_day: List[int] = field(default_factory=list)  # 0=Monday, 6=Sunday
    until: Optional[date] = None
    count: Optional[int] = None
    occurs: List[date] = field(default_factory=list)  # CUSTOM only

    def validate(self, start_date: Optional[date] = None) -> None:
        """Reject rules that cannot be expanded."""
        if self.interval is None or self.interval < 1:
            raise ValidationError("Recurrence interval must be a positive integer")
        if self.until is not None and self.count is not None:
            raise ValidationError("Recurrence rule may set either 'until' or 'count', not both")
        if self.count is not None and self.count < 1:
            raise ValidationError("Recurrence count must be positive")
        if any(d < 0 or d > 6 for d in self.by_day):
            raise ValidationError("Weekdays must be between 0 (Monday) and 6 (Sunday)")
        if self.frequency == Frequency.CUSTOM and not self.occurs:
            raise ValidationError("CUSTOM recurrence requires at least one date")
        if start_date is not None and self.until is not None and self.until < start_date:
            raise ValidationError("Recurrence 'until' lies before the start date")

    def to_rrule(self) -> str:
        """Convert the rule to its stored string form."""
        parts = [f"FREQ={self.frequency.value}"]
        if self.interval and self.interval > 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.by_day:
            parts.append("BYDAY=" + ",".join(WEEKDAY_CODES[d] for d in sorted(set(self.by_day))))
        if self.until:
            parts.append(f"UNTIL={self.until.strftime('%Y%m%d')}")
        if self.count:
            parts.append(f"COUNT={self.count}")
        if self.occurs:
            parts.append("RDATE=" + ",".join(d.strftime("%Y%m%d") for d in self.occurs))
        return ";".join(parts)

    @classmethod
    def from_rrule(cls, text: Optional[str]) -> Optional["RecurrenceRule"]:
        """Parse a stored rule string. Returns None for empty input."""
        if not text or not text.strip():
            return None

        clean = text.strip()
        if clean.upper().startswith("RRULE:"):
            clean = clean[6:]
        # Accept commas as part separators, as older clients sent them
        clean = re.sub(r",(?=[A-Z]+=)", ";", clean)

        values = {}
        for part in clean.split(";"):
            if not part:
                continue
            key, sep, value = part.partition("=")
            if not sep:
                raise ValidationError(f"Invalid RRULE: {text}")
            values[key.strip().upper()] = value.strip()

        try:
            frequency = Frequency(values.get("FREQ", "DAILY").upper())
            interval = int(values.get("INTERVAL", "1"))
            by_day = [weekday_from_name(d) for d in values["BYDAY"].split(",") if d] if values.get("BYDAY") else []
            until = datetime.strptime(values["UNTIL"][:8], "%Y%m%d").date() if values.get("UNTIL") else None
            count = int(values["COUNT"]) if values.get("COUNT") else None
            occurs = [datetime.strptime(d, "%Y%m%d").date() for d in values["RDATE"].split(",") if d] \
                if values.get("RDATE") else []
        except ValueError as e:
            raise ValidationError(f"Invalid RRULE: {text}") from e

        return cls(
            frequency=frequency,
            interval=max(interval, 1),
            by_day=by_day,
            until=until,
            count=count if count and count > 0 else None,
            occurs=occurs,
        )

    def describe(self) -> str:
        """Human readable summary, used by the CLI."""
        unit = {
            Frequency.DAILY: "day",
            Frequency.WEEKLY: "week",
            Frequency.MONTHLY: "month",
            Frequency.YEARLY: "year",
        }.get(self.frequency)
        if unit is None:
            return f"on {len(self.occurs)} chosen dates"

        text = f"every {unit}" if self.interval == 1 else f"every {self.interval} {unit}s"
        if self.by_day:
            text += " on " + ", ".join(WEEKDAY_NAMES[d].title() for d in sorted(self.by_day))
        if self.count:
            text += f", {self.count} times"
        elif self.until:
            text += f", until {self.until.isoformat()}"
        return text


class RecurrenceParser:
    """Parses natural language recurrence patterns"""

    PATTERNS = {
        r'^(daily|every day)$': (Frequency.DAILY, {}),
        r'^every (\d+) days?$': (Frequency.DAILY, lambda m: {'interval': int(m.group(1))}),

        r'^(weekly|every week)$': (Frequency.WEEKLY, {}),
        r'^every (\d+) weeks?$': (Frequency.WEEKLY, lambda m: {'interval': int(m.group(1))}),
        r'^every (monday|tuesday|wednesday|thursday|friday|saturday|sunday)$':
            (Frequency.WEEKLY, lambda m: {'by_day': [weekday_from_name(m.group(1))]}),
        r'^weekdays$': (Frequency.WEEKLY, {'by_day': [0, 1, 2, 3, 4]}),
        r'^weekends$': (Frequency.WEEKLY, {'by_day': [5, 6]}),

        r'^(monthly|every month)$': (Frequency.MONTHLY, {}),
        r'^every (\d+) months?$': (Frequency.MONTHLY, lambda m: {'interval': int(m.group(1))}),

        r'^(yearly|annually|every year)$': (Frequency.YEARLY, {}),
        r'^every (\d+) years?$': (Frequency.YEARLY, lambda m: {'interval': int(m.group(1))}),
    }

    @classmethod
    def parse(cls, pattern_str: str) -> Optional[RecurrenceRule]:
        """Parse a phrase such as ``every 2 weeks`` or an RRULE string."""
        text = pattern_str.lower().strip()

        for regex, (frequency, params) in cls.PATTERNS.items():
            match = re.match(regex, text)
            if match:
                if callable(params):
                    params = params(match)
                return RecurrenceRule(frequency=frequency, **params)

        if "freq=" in text:
            return RecurrenceRule.from_rrule(pattern_str)
        return None


class RecurrenceExpander:
    """Turns a rule and a start date into the ordered list of occurrence dates."""

    def __init__(self, horizon_years: int = 1, max_occurrences: int = 1000):
        self.horizon_years = horizon_years
        self.max_occurrences = max_occurrences

    def expand(
        self,
        rule: Optional[RecurrenceRule],
        start_date: date,
        custom_dates: Optional[Sequence[date]] = None,
    ) -> List[date]:
        """Calculate every occurrence of a series.

        Without a rule the explicit dates are returned as given (or just the
        start date). Unbounded rules stop at the horizon; every expansion is
        capped at ``max_occurrences``.
        """
        if rule is None:
            return list(custom_dates) if custom_dates else [start_date]

        rule.validate(start_date)

        if rule.frequency == Frequency.CUSTOM:
            return sorted(set(rule.occurs))[:self.max_occurrences]

        try:
            horizon = add_years(start_date, self.horizon_years)
        except ValueError:
            horizon = date.max
        until = min(rule.until, horizon) if rule.until else horizon

        dates: List[date] = []
        for candidate in self._candidates(rule, start_date):
            if candidate > until:
                break
            dates.append(candidate)
            if rule.count is not None and len(dates) >= rule.count:
                break
            if len(dates) >= self.max_occurrences:
                logger.warning(f"Recurrence expansion capped at {self.max_occurrences} occurrences")
                break

        if not dates:
            dates.append(start_date)
        return dates

    def _candidates(self, rule: RecurrenceRule, start: date) -> Iterator[date]:
        """Yield candidate dates in ascending order until the calendar runs out."""
        step = 0
        while True:
            try:
                if rule.frequency == Frequency.DAILY:
                    yield start + timedelta(days=step * rule.interval)
                elif rule.frequency == Frequency.WEEKLY:
                    if not rule.by_day:
                        yield start + timedelta(weeks=step * rule.interval)
                    else:
                        block = week_start(start) + timedelta(weeks=step * rule.interval)
                        for weekday in sorted(set(rule.by_day)):
                            day = block + timedelta(days=weekday)
                            if day >= start:
                                yield day
                elif rule.frequency == Frequency.MONTHLY:
                    yield add_months(start, step * rule.interval)
                elif rule.frequency == Frequency.YEARLY:
                    yield add_years(start, step * rule.interval)
                else:
                    return
            except (OverflowError, ValueError):
                # Next step lies beyond date.max, so past any horizon
                return
            step += 1


def occurrences_after(dates: Iterable[date], anchor: date) -> List[date]:
    """Dates strictly after the anchor, used when regenerating children."""
    return [d for d in dates if d > anchor]
