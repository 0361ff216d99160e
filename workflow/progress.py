"""Progress percentages derived from phase and chapter counts."""

import logging
from dataclasses import dataclass, asdict
from typing import Optional

from models.enums import Phase

logger = logging.getLogger(__name__)

CREATION_WEIGHT = 5
GENERATION_WEIGHT = 90
COVER_PERCENT = 95
COMPLETE_PERCENT = 100


@dataclass(frozen=True)
class ProgressSnapshot:
    phase: Phase
    chapters_completed: int
    total_chapters: int
    percent: int
    message: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["phase"] = self.phase.value
        return data


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def _default_message(phase: Phase, completed: int, total: int) -> str:
    if phase == Phase.CREATING:
        return "Book created. Starting chapter generation..."
    if phase == Phase.GENERATING:
        remaining = total - completed
        if remaining > 0:
            return f"{completed} of {total} chapters generated. {remaining} remaining..."
        return "All chapters generated. Finalizing book..."
    if phase == Phase.COVER:
        return "Covers generated. Finalizing book..."
    return "Book generation complete!"


def compute_percent(phase: Phase, completed: int, total: int) -> int:
    """Percent for a phase: 5 on creation, 5 + 90 * share while generating,
    95 for covers and 100 when complete."""
    if phase == Phase.CREATING:
        return CREATION_WEIGHT
    if phase == Phase.GENERATING:
        if total <= 0:
            return CREATION_WEIGHT
        share = max(0, min(completed, total)) / total
        return _clamp(round(CREATION_WEIGHT + GENERATION_WEIGHT * share))
    if phase == Phase.COVER:
        return COVER_PERCENT
    return COMPLETE_PERCENT


def compute_progress(
    phase: Phase,
    completed: int,
    total: int,
    message: Optional[str] = None,
) -> ProgressSnapshot:
    return ProgressSnapshot(
        phase=phase,
        chapters_completed=completed,
        total_chapters=total,
        percent=compute_percent(phase, completed, total),
        message=message or _default_message(phase, completed, total),
    )


class ProgressTracker:
    """Keeps the reported percent non-decreasing across one run."""

    def __init__(self):
        self._high_water = 0

    @property
    def percent(self) -> int:
        return self._high_water

    def snapshot(
        self,
        phase: Phase,
        completed: int,
        total: int,
        message: Optional[str] = None,
    ) -> ProgressSnapshot:
        snap = compute_progress(phase, completed, total, message)
        if snap.percent < self._high_water:
            logger.debug("Progress %d held at %d", snap.percent, self._high_water)
            snap = ProgressSnapshot(
                phase=snap.phase,
                chapters_completed=snap.chapters_completed,
                total_chapters=snap.total_chapters,
                percent=self._high_water,
                message=snap.message,
            )
        self._high_water = snap.percent
        return snap
