"""
Retention evaluation for nightly archives.

Two horizons are derived from "now":

- the week cutoff, ``keep_weeks`` whole weeks back
- the month cutoff, ``keep_months`` calendar months back

A nightly archive older than the week cutoff expires unless it was taken on
the last day of its month. Anything older than the month cutoff expires
regardless. Adhoc archives are never evaluated.

Each archive is classified on its own, so the result does not depend on the
order of the listing or on which other archives exist.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Tuple

from .config import RetentionConfig
from .logger import get_logger
from .naming import ZERO_INSTANT, ArchiveKind, archive_kind, parse_nightly

log = get_logger(__name__)


class Classification(str, Enum):
    KEEP = "keep"
    EXPIRE = "expire"


def subtract_months(instant: datetime, months: int) -> datetime:
    """
    Step ``months`` calendar months back, keeping day and time of day.

    A day that does not exist in the target month rolls forward into the
    next one, so 2024-03-31 minus one month is 2024-03-02.
    """
    index = instant.year * 12 + (instant.month - 1) - months
    year, month0 = divmod(index, 12)
    first = instant.replace(year=year, month=month0 + 1, day=1)
    return first + timedelta(days=instant.day - 1)


def end_of_month(instant: datetime) -> datetime:
    """Midnight on the last calendar day of the instant's month."""
    last_day = calendar.monthrange(instant.year, instant.month)[1]
    return instant.replace(day=last_day, hour=0, minute=0, second=0, microsecond=0)


def is_month_boundary(instant: datetime) -> bool:
    return instant.day == end_of_month(instant).day


# Horizons reaching back past year 1 clamp to ZERO_INSTANT.
def _week_cutoff(now: datetime, weeks: int) -> datetime:
    try:
        return now - timedelta(days=7 * weeks)
    except OverflowError:
        return ZERO_INSTANT


def _month_cutoff(now: datetime, months: int) -> datetime:
    try:
        return subtract_months(now, months)
    except (OverflowError, ValueError):
        return ZERO_INSTANT


@dataclass(frozen=True)
class Cutoffs:
    now: datetime
    week: datetime
    month: datetime

    @classmethod
    def from_retention(cls, retention: RetentionConfig, now: Optional[datetime] = None) -> Cutoffs:
        now = now or datetime.now()
        return cls(
            now=now,
            week=_week_cutoff(now, retention.keep_weeks),
            month=_month_cutoff(now, retention.keep_months),
        )


def classify(created: datetime, cutoffs: Cutoffs) -> Classification:
    if (created < cutoffs.week and not is_month_boundary(created)) or created < cutoffs.month:
        return Classification.EXPIRE
    return Classification.KEEP


@dataclass(frozen=True)
class ArchiveDecision:
    name: str
    created: datetime
    classification: Classification
    month_boundary: bool

    @property
    def expired(self) -> bool:
        return self.classification is Classification.EXPIRE


@dataclass(frozen=True)
class RetentionReport:
    """Classification of one archive listing against one pair of cutoffs."""
    cutoffs: Cutoffs
    decisions: Tuple[ArchiveDecision, ...] = ()
    skipped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def expired(self) -> Tuple[ArchiveDecision, ...]:
        return tuple(d for d in self.decisions if d.expired)

    @property
    def kept(self) -> Tuple[ArchiveDecision, ...]:
        return tuple(d for d in self.decisions if not d.expired)

    def classification_of(self, name: str) -> Optional[Classification]:
        for decision in self.decisions:
            if decision.name == name:
                return decision.classification
        return None


def evaluate_archives(
    names: Iterable[str],
    cutoffs: Cutoffs,
    strict_names: bool = False,
) -> RetentionReport:
    """
    Classify every nightly archive in ``names``.

    Adhoc archives are reported in ``skipped``. Malformed nightly names are
    handled by :func:`parse_nightly` according to ``strict_names``.
    """
    decisions = []
    skipped = []
    # Sorted only so reports and logs read chronologically.
    for name in sorted(n for n in names if n.strip()):
        if archive_kind(name) is ArchiveKind.ADHOC:
            skipped.append(name)
            continue
        created = parse_nightly(name, strict=strict_names)
        decisions.append(ArchiveDecision(
            name=name,
            created=created,
            classification=classify(created, cutoffs),
            month_boundary=is_month_boundary(created),
        ))

    log.debug(
        "Evaluated %d archive(s), %d skipped, week cutoff %s, month cutoff %s",
        len(decisions), len(skipped), cutoffs.week.date(), cutoffs.month.date(),
    )
    return RetentionReport(cutoffs=cutoffs, decisions=tuple(decisions), skipped=tuple(skipped))
