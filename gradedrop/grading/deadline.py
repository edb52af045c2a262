# deadline.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60

# Textual format used in rubric config and in reports
DEADLINE_FORMAT = "%Y-%m-%d %H:%M:%S"
DISPLAY_FORMAT = "%Y-%m-%d %a %H:%M:%S %z"


@dataclass(frozen=True)
class LateStatus:
    late: bool = False
    penalty: int = 0
    rejected: bool = False
    days_late: int = 0


ON_TIME = LateStatus()


def days_late(deadline: datetime, ts: datetime) -> int:
    """Number of commenced days between ``deadline`` and ``ts``.

    One second late is one day; 24h00m01s late is two.
    """
    elapsed = (ts - deadline).total_seconds()
    if elapsed <= 0:
        return 0
    return math.ceil(elapsed / SECONDS_PER_DAY)


@dataclass(frozen=True)
class DeadlinePolicy:
    """Turns a submission timestamp into lateness and a point penalty.

    ``final_deadline`` is a hard cutoff: anything after it is rejected
    (graded 0) no matter what ``allow_late`` says. With ``allow_late``
    False, any late submission is rejected the same way. Rejected
    submissions are still recorded by the dropbox.
    """

    deadline: Optional[datetime] = None
    final_deadline: Optional[datetime] = None
    allow_late: bool = True
    late_penalty_flat: Optional[int] = None
    late_penalty_per_day: Optional[int] = None

    def __post_init__(self):
        # Naive times are read as local time, like Submission timestamps
        for name in ("deadline", "final_deadline"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.astimezone())

    @property
    def double_penalty(self) -> bool:
        return bool(self.late_penalty_flat) and bool(self.late_penalty_per_day)

    def evaluate(self, ts: datetime) -> LateStatus:
        rejected = self.final_deadline is not None and ts > self.final_deadline

        if self.deadline is None or ts <= self.deadline:
            return LateStatus(rejected=rejected)

        days = days_late(self.deadline, ts)
        penalty = (self.late_penalty_flat or 0) + (self.late_penalty_per_day or 0) * days
        if not self.allow_late:
            rejected = True

        return LateStatus(late=True, penalty=penalty, rejected=rejected, days_late=days)

    def past_due(self, now: Optional[datetime] = None) -> bool:
        if self.deadline is None:
            return False
        now = now or datetime.now().astimezone()
        return now > self.deadline

    def describe(self) -> str:
        if self.deadline is None and self.final_deadline is None:
            return "No deadline"

        parts = []
        if self.deadline is not None:
            parts.append(f"Deadline: {self.deadline.strftime(DISPLAY_FORMAT)}")
            if not self.allow_late:
                parts.append("late submissions are graded 0")
            else:
                if self.late_penalty_flat:
                    parts.append(f"late penalty {self.late_penalty_flat}")
                if self.late_penalty_per_day:
                    parts.append(f"{self.late_penalty_per_day} per day late")
        if self.final_deadline is not None:
            parts.append(f"final deadline: {self.final_deadline.strftime(DISPLAY_FORMAT)}")
        return ", ".join(parts)
