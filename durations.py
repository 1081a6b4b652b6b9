"""
Human-readable time intervals for cron event listings.

Reduces a number of seconds to at most two chunks of time, e.g.
"3 days 4 hours" or "11 months 29 days". Units are fixed approximations
(a year is 365 days, a month is 30 days) rather than calendar arithmetic.
"""

from dataclasses import dataclass
from typing import Tuple

NOW = "now"


@dataclass(frozen=True)
class DurationUnit:
    """A unit of time with its length in seconds and display labels."""
    seconds: int
    singular: str
    plural: str

    def label(self, count: int) -> str:
        return pluralize(count, self.singular, self.plural)


# Largest unit first
UNITS: Tuple[DurationUnit, ...] = (
    DurationUnit(60 * 60 * 24 * 365, "year", "years"),
    DurationUnit(60 * 60 * 24 * 30, "month", "months"),
    DurationUnit(60 * 60 * 24 * 7, "week", "weeks"),
    DurationUnit(60 * 60 * 24, "day", "days"),
    DurationUnit(60 * 60, "hour", "hours"),
    DurationUnit(60, "minute", "minutes"),
    DurationUnit(1, "second", "seconds"),
)


def pluralize(count: int, singular: str, plural: str) -> str:
    """Return the singular label for a count of exactly one, plural otherwise."""
    return singular if count == 1 else plural


class DurationFormatter:
    """
    Formats a signed number of seconds as a two-chunk duration string.

    Only the largest fitting unit and the unit directly below it are
    reported, so 3661 seconds is "1 hour 1 minute" and the remaining
    second is dropped. Zero and negative inputs are "now".
    """

    def __init__(self, units: Tuple[DurationUnit, ...] = UNITS):
        self.units = units

    def chunks(self, seconds: int) -> Tuple[Tuple[int, str], ...]:
        """
        Split seconds into at most two (count, label) pairs.

        Args:
            seconds: Interval in seconds (may be negative)

        Returns:
            Tuple of (count, label) pairs, empty for non-positive input
        """
        if seconds <= 0:
            return ()

        total = abs(int(seconds))

        # step one: the biggest unit that fits at least once
        for index, unit in enumerate(self.units):
            count = total // unit.seconds
            if count != 0:
                break

        chunks = [(count, unit.label(count))]

        # step two: the next smaller unit, from what is left over
        if index + 1 < len(self.units):
            smaller = self.units[index + 1]
            count2 = (total - unit.seconds * count) // smaller.seconds
            if count2 != 0:
                chunks.append((count2, smaller.label(count2)))

        return tuple(chunks)

    def format(self, seconds: int) -> str:
        """Return e.g. "1 day 1 hour" for 90000, or "now" for seconds <= 0."""
        chunks = self.chunks(seconds)
        if not chunks:
            return NOW
        return " ".join(f"{count} {label}" for count, label in chunks)


_default_formatter = DurationFormatter()


def format_duration(seconds: int) -> str:
    """Format seconds with the default unit table."""
    return _default_formatter.format(seconds)
