"""Tests for batch planning and the parallel/sequential scheduler."""

import pytest

from config.exceptions import BatchSizeError, LLMError, LLMTimeoutError


class TestPlanBatches:
    def test_consecutive_groups(self):
        from workflow.scheduler import plan_batches
        assert plan_batches(range(1, 11), 4) == [[1, 2, 3, 4], [5, 6, 7, 8], [9, 10]]

    def test_gaps_are_sorted_and_deduplicated(self):
        from workflow.scheduler import plan_batches
        assert plan_batches([8, 5, 7, 5], 2) == [[5, 7], [8]]

    def test_empty(self):
        from workflow.scheduler import plan_batches
        assert plan_batches([], 4) == []

    def test_invalid_size(self):
        from workflow.scheduler import plan_batches
        with pytest.raises(ValueError):
            plan_batches([1], 0)


class TestBatchScheduler:
    @pytest.mark.asyncio
    async def test_rejects_oversized_batch(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        scheduler = BatchScheduler(fake_provider, 4)
        with pytest.raises(BatchSizeError):
            await scheduler.run_batch(make_outline(6), [1, 2, 3, 4, 5], "", "m")

    @pytest.mark.asyncio
    async def test_parallel_shares_context(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        done = []
        results = await BatchScheduler(fake_provider, 4).run_batch(
            make_outline(4), [4, 2, 3, 1], "snapshot", "m", on_chapter_done=done.append,
        )
        assert [r.chapter_number for r in results] == [1, 2, 3, 4]
        assert all(r.word_count == 100 for r in results)
        assert all("[END CHAPTER]" not in r.content for r in results)
        assert set(fake_provider.contexts.values()) == {"snapshot"}
        assert fake_provider.batch_calls == [[1, 2, 3, 4]]
        assert fake_provider.chapter_calls == []
        assert len(done) == 4

    @pytest.mark.asyncio
    async def test_falls_back_to_sequential_once(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        fake_provider.batch_error = LLMTimeoutError("parallel request timed out")
        batch_errors = []
        results = await BatchScheduler(fake_provider, 4).run_batch(
            make_outline(4), [1, 2, 3, 4], "snapshot", "m", on_batch_error=batch_errors.append,
        )
        assert [r.chapter_number for r in results] == [1, 2, 3, 4]
        assert fake_provider.batch_calls == [[1, 2, 3, 4]]
        assert fake_provider.chapter_calls == [1, 2, 3, 4]
        assert len(batch_errors) == 1

    @pytest.mark.asyncio
    async def test_sequential_rebuilds_context_after_each_chapter(self, fake_provider, make_outline):
        from models.chapter import Chapter
        from workflow.scheduler import BatchScheduler
        prior = [Chapter(book_id=1, chapter_number=n) for n in (1, 2, 3, 4)]
        await BatchScheduler(fake_provider, 4).run_batch(
            make_outline(8), [5, 6, 7], "ctx:1,2,3,4", "m", parallel=False, prior_chapters=prior,
        )
        assert fake_provider.contexts == {
            5: "ctx:1,2,3,4",
            6: "ctx:1,2,3,4,5",
            7: "ctx:1,2,3,4,5,6",
        }

    @pytest.mark.asyncio
    async def test_sequential_skips_failed_chapter(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        fake_provider.fail_chapters = {2: LLMError("refused")}
        errors = []
        results = await BatchScheduler(fake_provider, 4).run_batch(
            make_outline(3), [1, 2, 3], "", "m", parallel=False,
            on_chapter_error=lambda n, e: errors.append(n),
        )
        assert [r.chapter_number for r in results] == [1, 3]
        assert errors == [2]
        assert fake_provider.contexts[3] == "ctx:1"

    @pytest.mark.asyncio
    async def test_parallel_sibling_failure_reruns_whole_batch(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        fake_provider.fail_chapters = {2: LLMError("refused")}
        done = []
        results = await BatchScheduler(fake_provider, 4).run_batch(
            make_outline(3), [1, 2, 3], "", "m", on_chapter_done=lambda r: done.append(r.chapter_number),
        )
        assert [r.chapter_number for r in results] == [1, 3]
        assert fake_provider.chapter_calls == [1, 2, 3]
        # Siblings that finished in the parallel attempt are reported again
        assert done == [1, 3, 1, 3]

    @pytest.mark.asyncio
    async def test_empty_batch(self, fake_provider, make_outline):
        from workflow.scheduler import BatchScheduler
        assert await BatchScheduler(fake_provider, 4).run_batch(make_outline(1), [], "", "m") == []
        assert fake_provider.batch_calls == []
