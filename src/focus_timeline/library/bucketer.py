# src/focus_timeline/library/bucketer.py

"""
Deadline bucketer.

Classifies library entries into urgency buckets by the number of calendar days
between `now` and the entry's effective deadline:

    deadline <= now            -> expired
    days <= boundaries[0]      -> window(boundaries[0])
    days <= boundaries[1]      -> window(boundaries[1])
    ...
    beyond the widest window   -> later
    no deadline at all         -> no_deadline

Boundaries are configurable; (1, 3, 5, 7) is the default.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from enum import StrEnum

from ..core.ports import TemplateRepo
from .models import CardTemplate, DeadlineStatus, LibraryEntry, effective_deadline

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_DAYS: tuple[int, ...] = (1, 3, 5, 7)


class BucketKind(StrEnum):
    WINDOW = "window"
    LATER = "later"
    NO_DEADLINE = "no_deadline"
    EXPIRED = "expired"


@dataclass(slots=True, frozen=True)
class Bucket:
    kind: BucketKind
    days: int | None = None

    @property
    def label(self) -> str:
        if self.kind == BucketKind.WINDOW:
            return f"<= {self.days}d"
        return self.kind.value


EXPIRED = Bucket(BucketKind.EXPIRED)
LATER = Bucket(BucketKind.LATER)
NO_DEADLINE = Bucket(BucketKind.NO_DEADLINE)


@dataclass(slots=True)
class BucketedEntries:
    windows: dict[int, list[LibraryEntry]] = field(default_factory=dict)
    later: list[LibraryEntry] = field(default_factory=list)
    no_deadline: list[LibraryEntry] = field(default_factory=list)
    expired: list[LibraryEntry] = field(default_factory=list)

    def window(self, days: int) -> list[LibraryEntry]:
        return self.windows.get(days, [])

    def get(self, bucket: Bucket) -> list[LibraryEntry]:
        if bucket.kind == BucketKind.WINDOW:
            return self.windows.setdefault(int(bucket.days or 0), [])
        if bucket.kind == BucketKind.LATER:
            return self.later
        if bucket.kind == BucketKind.NO_DEADLINE:
            return self.no_deadline
        return self.expired

    def __len__(self) -> int:
        return (
            sum(len(v) for v in self.windows.values())
            + len(self.later)
            + len(self.no_deadline)
            + len(self.expired)
        )


class DeadlineBucketer:
    def __init__(self, boundaries: Sequence[int] = DEFAULT_BUCKET_DAYS, tz: tzinfo | None = None) -> None:
        days = sorted({int(b) for b in boundaries})
        if not days:
            raise ValueError("at least one bucket boundary is required")
        if days[0] <= 0:
            raise ValueError("bucket boundaries must be positive day counts")
        self.boundaries: tuple[int, ...] = tuple(days)
        self.tz: tzinfo = tz or UTC

    def deadline_of(self, template: CardTemplate, entry: LibraryEntry) -> float | None:
        return effective_deadline(template, entry, self.tz)

    def days_until(self, deadline: float, now: float) -> int:
        """Calendar days from now's date to the deadline's date."""
        d_now = datetime.fromtimestamp(now, self.tz).date()
        d_deadline = datetime.fromtimestamp(deadline, self.tz).date()
        return (d_deadline - d_now).days

    def classify(self, template: CardTemplate, entry: LibraryEntry, now: float) -> Bucket:
        if entry.deadline_status == DeadlineStatus.EXPIRED:
            return EXPIRED

        deadline = self.deadline_of(template, entry)
        if deadline is None:
            return NO_DEADLINE
        if deadline <= now:
            return EXPIRED

        days = self.days_until(deadline, now)
        for boundary in self.boundaries:
            if days <= boundary:
                return Bucket(BucketKind.WINDOW, boundary)
        return LATER

    def bucketed_entries(
        self,
        templates: TemplateRepo,
        entries: Iterable[LibraryEntry],
        now: float,
    ) -> BucketedEntries:
        """
        Group entries by bucket.

        Within a bucket: effective deadline ascending, then added_at ascending;
        remaining ties keep input order. Archived entries and entries whose
        template is unknown are skipped.
        """
        out = BucketedEntries(windows={b: [] for b in self.boundaries})
        keyed: list[tuple[Bucket, float, float, LibraryEntry]] = []

        for entry in entries:
            if entry.deadline_status == DeadlineStatus.ARCHIVED:
                continue
            template = templates.get(entry.template_id)
            if template is None:
                logger.debug("Skipping library entry with unknown template_id=%s", entry.template_id)
                continue
            deadline = self.deadline_of(template, entry)
            sort_deadline = deadline if deadline is not None else math.inf
            keyed.append((self.classify(template, entry, now), sort_deadline, entry.added_at, entry))

        keyed.sort(key=lambda item: (item[1], item[2]))
        for bucket, _deadline, _added, entry in keyed:
            out.get(bucket).append(entry)
        return out

    def refresh_deadline_statuses(
        self,
        templates: TemplateRepo,
        entries: Iterable[LibraryEntry],
        now: float,
    ) -> int:
        """
        Expire every active entry whose deadline is at or before now.

        Returns the number of entries that changed. One-directional: expired
        entries are never reactivated.
        """
        changed = 0
        for entry in entries:
            if entry.deadline_status != DeadlineStatus.ACTIVE:
                continue
            template = templates.get(entry.template_id)
            if template is None:
                continue
            deadline = self.deadline_of(template, entry)
            if deadline is not None and deadline <= now:
                entry.deadline_status = DeadlineStatus.EXPIRED
                changed += 1
                logger.info("Library entry expired template_id=%s", entry.template_id)
        return changed
