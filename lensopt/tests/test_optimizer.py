"""Tests for the coordinate-descent optimizer."""

import asyncio
import logging

import pytest

from lensopt import optimizer as optimizer_module
from lensopt.editor import set_radius, set_variable
from lensopt.merit import calculate_merit
from lensopt.models import LensSystem
from lensopt.optimizer import CancelToken, iter_optimize, optimize, optimize_async

logger = logging.getLogger(__name__)

TARGET = 30.0


class TestOptimize:
    """Tests for the synchronous driver."""

    def test_no_variables_returns_input_after_one_pass(self, default_system):
        calls = []
        result = optimize(default_system, TARGET, 10, lambda s, score: calls.append((s, score)))
        assert result == default_system
        assert len(calls) == 1
        assert calls[0][0] == default_system
        assert calls[0][1] == pytest.approx(calculate_merit(default_system, TARGET))

    def test_scores_non_decreasing(self, variable_system):
        scores = []
        optimize(variable_system, TARGET, 3, lambda s, score: scores.append(score))
        assert 1 <= len(scores) <= 3
        initial = calculate_merit(variable_system, TARGET)
        assert scores[0] >= initial
        assert all(b >= a for a, b in zip(scores, scores[1:]))
        logger.info("Merit %.6f -> %s", initial, ["%.6f" % s for s in scores])

    def test_result_score_matches_last_progress(self, variable_system):
        seen = []
        result = optimize(variable_system, TARGET, 3, lambda s, score: seen.append((s, score)))
        assert result == seen[-1][0]
        assert calculate_merit(result, TARGET) == pytest.approx(seen[-1][1])
        assert calculate_merit(result, TARGET) >= calculate_merit(variable_system, TARGET)

    def test_only_variable_radii_change_in_delta_steps(self, variable_system):
        result = optimize(variable_system, TARGET, 3, delta=0.5)
        for i, (before, after) in enumerate(zip(variable_system, result)):
            assert after.thickness == before.thickness
            assert after.refractive_index == before.refractive_index
            if i in variable_system.variable_indices:
                steps = (after.radius - before.radius) / 0.5
                assert steps == pytest.approx(round(steps), abs=1e-9)
                assert abs(steps) <= 3
            else:
                assert after == before

    def test_input_not_mutated(self, variable_system):
        surfaces = list(variable_system)
        optimize(surfaces, TARGET, 2)
        assert surfaces == list(variable_system)

    def test_snapshots_are_lens_systems(self, variable_system):
        snapshots = []
        optimize(variable_system, TARGET, 2, lambda s, score: snapshots.append(s))
        assert all(isinstance(s, LensSystem) for s in snapshots)

    def test_zero_iterations(self, variable_system):
        calls = []
        result = optimize(variable_system, TARGET, 0, lambda s, score: calls.append(score))
        assert result == variable_system
        assert calls == []

    def test_negative_iterations_rejected(self, variable_system):
        with pytest.raises(ValueError):
            optimize(variable_system, TARGET, -1)

    def test_non_positive_delta_rejected(self, variable_system):
        with pytest.raises(ValueError):
            optimize(variable_system, TARGET, 2, delta=0.0)

    def test_planar_variable_is_ignored(self, default_system):
        # s5 is the flat image plane
        system = set_variable(default_system, "s5", True)
        assert system.variable_indices == ()
        calls = []
        assert optimize(system, TARGET, 5, lambda s, score: calls.append(score)) == system
        assert len(calls) == 1

    def test_radius_stepped_to_zero_turns_planar(self, default_system, monkeypatch):
        """A radius that lands on 0 becomes planar and drops out of later passes."""
        system = set_radius(default_system, "s1", 0.5)
        system = set_variable(system, "s1", True)

        def favour_flat_front(surfaces, target_frequency, field_angles):
            front = surfaces[0]
            return 100.0 if front.is_planar else -front.radius

        monkeypatch.setattr(optimizer_module, "calculate_merit", favour_flat_front)
        passes = list(iter_optimize(system, TARGET, 5, delta=0.5))

        assert [p.improved for p in passes] == [True, False]
        front = passes[-1].surfaces[0]
        assert front.is_planar
        assert front.is_variable
        assert not front.is_optimizable
        logger.info("Front after stepping through zero: %r", front.curvature)


class TestCancellation:
    """Tests for cancellation at pass boundaries."""

    def test_cancel_from_progress_callback(self, variable_system):
        token = CancelToken()
        calls = []

        def on_progress(snapshot, score):
            calls.append(snapshot)
            token.cancel()

        result = optimize(variable_system, TARGET, 10, on_progress, cancel=token)
        assert len(calls) == 1
        assert result == calls[0]
        assert token.cancelled

    def test_pre_cancelled_token_skips_work(self, variable_system):
        token = CancelToken()
        token.set()
        calls = []
        result = optimize(variable_system, TARGET, 10, lambda s, score: calls.append(score), cancel=token)
        assert result == variable_system
        assert calls == []


class TestIterOptimize:
    def test_passes_numbered_in_order(self, variable_system):
        passes = list(iter_optimize(variable_system, TARGET, 3))
        assert [p.iteration for p in passes] == list(range(len(passes)))
        # Only the last pass may report no improvement
        assert all(p.improved for p in passes[:-1])

    def test_stops_after_pass_without_change(self, default_system):
        passes = list(iter_optimize(default_system, TARGET, 10))
        assert len(passes) == 1
        assert not passes[0].improved


class TestOptimizeAsync:
    """Tests for the event-loop driver."""

    def test_matches_sync_result(self, variable_system):
        sync_result = optimize(variable_system, TARGET, 2)
        async_result = asyncio.run(optimize_async(variable_system, TARGET, 2))
        assert async_result == sync_result

    def test_async_progress_callback(self, variable_system):
        scores = []

        async def on_progress(snapshot, score):
            scores.append(score)

        asyncio.run(optimize_async(variable_system, TARGET, 2, on_progress))
        assert 1 <= len(scores) <= 2

    def test_yields_to_event_loop(self, variable_system, monkeypatch):
        sleeps = []
        real_sleep = asyncio.sleep

        async def counting_sleep(delay, *args, **kwargs):
            sleeps.append(delay)
            await real_sleep(delay, *args, **kwargs)

        monkeypatch.setattr(optimizer_module.asyncio, "sleep", counting_sleep)
        passes = []
        asyncio.run(optimize_async(variable_system, TARGET, 3,
                                   lambda s, score: passes.append(score), yield_every=2))
        expected = len([i for i in range(len(passes)) if i % 2 == 0])
        assert len(sleeps) == expected
        assert all(d == 0 for d in sleeps)
        logger.info("%d passes, %d yields", len(passes), len(sleeps))

    def test_cancel_async(self, variable_system):
        token = CancelToken()
        calls = []

        def on_progress(snapshot, score):
            calls.append(score)
            token.cancel()

        asyncio.run(optimize_async(variable_system, TARGET, 10, on_progress, cancel=token))
        assert len(calls) == 1
