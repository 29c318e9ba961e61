"""Tests for the staggered reveal scheduler."""

import asyncio

import pytest

from relation_core import RevealScheduler, RevealState


@pytest.fixture
def scheduler(timer):
    return RevealScheduler(timer=timer, initial_delay=0.5, period=0.2)


def sample(timer, scheduler, step, until):
    counts = [scheduler.exposed_count]
    elapsed = 0.0
    while elapsed < until:
        timer.advance(step)
        elapsed += step
        counts.append(scheduler.exposed_count)
    return counts


class TestRevealScheduler:
    def test_counts_up_to_total_and_stops(self, timer, scheduler):
        scheduler.start(5)

        counts = sample(timer, scheduler, step=0.05, until=3.0)

        distinct = sorted(set(counts))
        assert distinct == [0, 1, 2, 3, 4, 5]
        assert counts == sorted(counts)
        assert counts[-1] == 5
        assert scheduler.state == RevealState.DONE
        assert timer.pending == 0

    def test_initial_delay_then_period(self, timer, scheduler):
        scheduler.start(3)
        timer.advance(0.49)
        assert scheduler.exposed_count == 0
        assert scheduler.state == RevealState.WAITING
        timer.advance(0.01)
        assert scheduler.exposed_count == 1
        timer.advance(0.2)
        assert scheduler.exposed_count == 2

    def test_cancel_freezes_count(self, timer, scheduler):
        scheduler.start(5)
        timer.advance(0.8)
        frozen = scheduler.exposed_count
        assert 0 < frozen < 5

        scheduler.cancel()
        timer.advance(10)

        assert scheduler.exposed_count == frozen
        assert scheduler.state == RevealState.CANCELLED
        assert scheduler.budget == frozen
        assert timer.pending == 0

    def test_cancel_is_idempotent(self, scheduler):
        scheduler.cancel()
        scheduler.start(2)
        scheduler.cancel()
        scheduler.cancel()
        assert scheduler.state == RevealState.CANCELLED

    def test_restart_cancels_previous_schedule(self, timer, scheduler):
        scheduler.start(5)
        timer.advance(0.9)
        scheduler.start(2)

        assert scheduler.exposed_count == 0
        assert timer.pending == 1
        timer.advance(5)
        assert scheduler.exposed_count == 2

    def test_budget_is_unbounded_when_idle_or_done(self, timer, scheduler):
        assert scheduler.budget is None
        scheduler.start(1)
        assert scheduler.budget == 0
        timer.advance(1)
        assert scheduler.budget is None

    def test_zero_total_finishes_after_delay(self, timer, scheduler):
        scheduler.start(0)
        timer.advance(0.5)
        assert scheduler.state == RevealState.DONE
        assert scheduler.exposed_count == 0

    def test_on_change_notifications(self, timer):
        seen = []
        scheduler = RevealScheduler(timer=timer, on_change=seen.append)
        scheduler.start(2)
        timer.advance(5)
        assert seen == [0, 1, 2]

    def test_close_drops_callbacks(self, timer):
        seen = []
        scheduler = RevealScheduler(timer=timer, on_change=seen.append)
        scheduler.start(3)
        scheduler.close()
        timer.advance(5)
        assert seen == [0]

    def test_reset_stops_throttling(self, timer, scheduler):
        scheduler.start(5)
        timer.advance(0.5)
        scheduler.cancel()
        assert scheduler.budget == 1

        scheduler.reset()

        assert scheduler.state == RevealState.IDLE
        assert scheduler.budget is None
        assert timer.pending == 0

    def test_start_without_timer_or_loop(self):
        seen = []
        scheduler = RevealScheduler(on_change=seen.append)

        with pytest.raises(RuntimeError):
            scheduler.start(3)

        assert scheduler.state == RevealState.IDLE
        assert not scheduler.is_active
        assert scheduler.budget is None
        assert seen == []

    def test_runs_on_asyncio_loop(self):
        async def run():
            scheduler = RevealScheduler(initial_delay=0.01, period=0.01)
            scheduler.start(3)
            for _ in range(200):
                if scheduler.state == RevealState.DONE:
                    break
                await asyncio.sleep(0.01)
            return scheduler

        scheduler = asyncio.run(run())
        assert scheduler.exposed_count == 3
        assert scheduler.state == RevealState.DONE
