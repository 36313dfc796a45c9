"""
Turns retention decisions into requests against the archival tool.

One dispatcher call is one invocation: it resolves "now" once, creates the
requested archive first (if any), and only then lists and evaluates the
existing archives. Any tool failure propagates to the caller and ends the
invocation; nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import Settings
from .errors import ConfigError
from .logger import get_logger, log_extra
from .naming import ArchiveKind, format_archive_name
from .retention import Cutoffs, RetentionReport, evaluate_archives
from .tarsnap import ArchiveTool

log = get_logger(__name__)


@dataclass(frozen=True)
class RunSummary:
    cutoffs: Cutoffs
    created: Optional[str] = None
    report: Optional[RetentionReport] = None

    @property
    def expired_names(self) -> tuple[str, ...]:
        if self.report is None:
            return ()
        return tuple(d.name for d in self.report.expired)


class Dispatcher:
    def __init__(
        self,
        tool: ArchiveTool,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.tool = tool
        self.settings = settings
        self.clock = clock

    def cutoffs(self, now: Optional[datetime] = None) -> Cutoffs:
        return Cutoffs.from_retention(self.settings.retention, now or self.clock())

    def create(self, kind: ArchiveKind, now: datetime) -> str:
        """Create one archive of ``kind`` named after ``now``."""
        if not self.settings.backup_dirs:
            raise ConfigError("No backup directories specified (BackupDirs)")

        name = format_archive_name(kind, now)
        log.info("Starting backup %s", name, extra=log_extra(archive=name, kind=kind.value))
        self.tool.create_archive(name, self.settings.backup_dirs, self.settings.tarsnap_args)
        log.info("Backup finished", extra=log_extra(archive=name))
        return name

    def evaluate(self, cutoffs: Cutoffs) -> RetentionReport:
        names = self.tool.list_archives()
        return evaluate_archives(names, cutoffs, strict_names=self.settings.strict_names)

    def expire(self, cutoffs: Cutoffs) -> RetentionReport:
        """Delete every expired nightly archive. Stops at the first failed delete."""
        report = self.evaluate(cutoffs)
        for decision in report.decisions:
            if decision.expired:
                log.info("Expiring backup %s", decision.name, extra=log_extra(archive=decision.name))
                self.tool.delete_archive(decision.name)
                log.info("Expired backup %s", decision.name, extra=log_extra(archive=decision.name))
            else:
                log.info("Keeping backup %s", decision.name, extra=log_extra(archive=decision.name))
        for name in report.skipped:
            log.debug("Skipping adhoc backup %s", name)
        return report

    def run_nightly(self, now: Optional[datetime] = None) -> RunSummary:
        now = now or self.clock()
        cutoffs = self.cutoffs(now)
        created = self.create(ArchiveKind.NIGHTLY, now)

        if not self.settings.expire_backups:
            log.info("Backup expiration disabled")
            return RunSummary(cutoffs=cutoffs, created=created)

        report = self.expire(cutoffs)
        return RunSummary(cutoffs=cutoffs, created=created, report=report)

    def run_adhoc(self, now: Optional[datetime] = None) -> RunSummary:
        now = now or self.clock()
        cutoffs = self.cutoffs(now)
        created = self.create(ArchiveKind.ADHOC, now)
        return RunSummary(cutoffs=cutoffs, created=created)

    def list_expired(self, now: Optional[datetime] = None) -> RetentionReport:
        """Dry run: evaluate retention without creating or deleting anything."""
        return self.evaluate(self.cutoffs(now))
