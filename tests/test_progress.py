"""Tests for progress percentages and the monotonic tracker."""

import pytest

from models.enums import Phase


class TestComputePercent:
    def test_creating(self):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.CREATING, 0, 12) == 5

    @pytest.mark.parametrize("done,expected", [(0, 5), (4, 35), (8, 65), (12, 95)])
    def test_generating_batches_of_four(self, done, expected):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.GENERATING, done, 12) == expected

    def test_generating_rounds(self):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.GENERATING, 1, 3) == 35
        assert compute_percent(Phase.GENERATING, 2, 7) == 31

    def test_zero_total_does_not_divide(self):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.GENERATING, 0, 0) == 5

    def test_completed_beyond_total_is_clamped(self):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.GENERATING, 20, 12) == 95

    def test_cover_and_completed(self):
        from workflow.progress import compute_percent
        assert compute_percent(Phase.COVER, 12, 12) == 95
        assert compute_percent(Phase.COMPLETED, 12, 12) == 100


class TestComputeProgress:
    def test_default_messages(self):
        from workflow.progress import compute_progress
        assert compute_progress(Phase.CREATING, 0, 3).message == "Book created. Starting chapter generation..."
        assert compute_progress(Phase.GENERATING, 1, 3).message == "1 of 3 chapters generated. 2 remaining..."
        assert compute_progress(Phase.GENERATING, 3, 3).message == "All chapters generated. Finalizing book..."
        assert compute_progress(Phase.COMPLETED, 3, 3).message == "Book generation complete!"

    def test_explicit_message_wins(self):
        from workflow.progress import compute_progress
        assert compute_progress(Phase.COVER, 3, 3, "custom").message == "custom"

    def test_to_dict_uses_phase_value(self):
        from workflow.progress import compute_progress
        data = compute_progress(Phase.GENERATING, 4, 12).to_dict()
        assert data["phase"] == "generating"
        assert data["percent"] == 35
        assert data["chapters_completed"] == 4


class TestProgressTracker:
    def test_sequence_for_twelve_chapters(self):
        from workflow.progress import ProgressTracker
        tracker = ProgressTracker()
        seen = [
            tracker.snapshot(Phase.CREATING, 0, 12).percent,
            tracker.snapshot(Phase.GENERATING, 4, 12).percent,
            tracker.snapshot(Phase.GENERATING, 8, 12).percent,
            tracker.snapshot(Phase.GENERATING, 12, 12).percent,
            tracker.snapshot(Phase.COVER, 12, 12).percent,
            tracker.snapshot(Phase.COMPLETED, 12, 12).percent,
        ]
        assert seen == [5, 35, 65, 95, 95, 100]

    def test_never_decreases(self):
        from workflow.progress import ProgressTracker
        tracker = ProgressTracker()
        tracker.snapshot(Phase.GENERATING, 8, 12)
        held = tracker.snapshot(Phase.GENERATING, 4, 12)
        assert held.percent == 65
        assert tracker.percent == 65
        assert held.chapters_completed == 4
