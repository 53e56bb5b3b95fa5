"""
Local optimizer: coordinate-descent hill climbing over variable surface radii.

Each pass visits variable surfaces in sequence order and tries R + delta and
R - delta against the merit score, keeping all other surfaces at their current
(possibly already updated this pass) values. A pass with no accepted change
means a delta-resolution local maximum was reached.

Drivers:
  iter_optimize   generator, one OptimizationPass per pass (the core loop)
  optimize        synchronous, progress callback + optional CancelToken
  aiter_optimize  async generator, hands control back to the event loop every
                  OPTIMIZER_YIELD_EVERY passes
  optimize_async  coroutine wrapper around aiter_optimize
"""

import asyncio
import inspect
import logging
import threading
from typing import AsyncIterator, Callable, Iterator, NamedTuple, Optional, Sequence

from lensopt.config import MERIT_FIELD_ANGLES, OPTIMIZER_DELTA, OPTIMIZER_YIELD_EVERY
from lensopt.merit import calculate_merit
from lensopt.models import LensSystem, Surface

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[LensSystem, float], object]


class CancelToken(threading.Event):
    """Set from any thread to stop an optimization at the next pass boundary."""

    def cancel(self) -> None:
        self.set()

    @property
    def cancelled(self) -> bool:
        return self.is_set()


class OptimizationPass(NamedTuple):
    """Snapshot delivered after every pass."""

    iteration: int
    surfaces: LensSystem
    score: float
    improved: bool


def _check_args(max_iterations: int, delta: float) -> None:
    if max_iterations < 0:
        raise ValueError(f"max_iterations must be >= 0, got {max_iterations}")
    if not delta > 0:
        raise ValueError(f"delta must be > 0, got {delta}")


def iter_optimize(
    surfaces: Sequence[Surface],
    target_frequency: float,
    max_iterations: int,
    *,
    delta: float = OPTIMIZER_DELTA,
    field_angles: Sequence[float] = MERIT_FIELD_ANGLES,
) -> Iterator[OptimizationPass]:
    """
    Run the coordinate search, yielding after each pass.
    Stops after a pass with no accepted change or after max_iterations passes.
    The caller's surfaces are snapshotted once and never touched.
    """
    _check_args(max_iterations, delta)
    current = LensSystem.of(surfaces)
    score = calculate_merit(current, target_frequency, field_angles)

    for iteration in range(max_iterations):
        improved = False
        for i in current.variable_indices:
            surface = current[i]
            if not surface.is_optimizable:
                continue
            radius = surface.radius
            plus = current.replace(i, surface.with_radius(radius + delta))
            minus = current.replace(i, surface.with_radius(radius - delta))
            score_plus = calculate_merit(plus, target_frequency, field_angles)
            score_minus = calculate_merit(minus, target_frequency, field_angles)

            # Ties between +delta and -delta go to +delta.
            if score_plus > score and score_plus >= score_minus:
                current, score, improved = plus, score_plus, True
            elif score_minus > score:
                current, score, improved = minus, score_minus, True

        logger.debug("Pass %d: merit=%.6f improved=%s", iteration, score, improved)
        yield OptimizationPass(iteration, current, score, improved)
        if not improved:
            logger.info("Local maximum reached after %d pass(es), merit=%.6f", iteration + 1, score)
            return


def optimize(
    surfaces: Sequence[Surface],
    target_frequency: float,
    max_iterations: int,
    on_progress: Optional[ProgressCallback] = None,
    *,
    delta: float = OPTIMIZER_DELTA,
    field_angles: Sequence[float] = MERIT_FIELD_ANGLES,
    cancel: Optional[threading.Event] = None,
) -> LensSystem:
    """
    Optimize variable radii to maximize the merit score at target_frequency.

    on_progress(snapshot, score) is called once per pass, in pass order.
    cancel is checked at every pass boundary.

    Returns:
        The last accepted snapshot (the input snapshot if no pass ran).
    """
    result = LensSystem.of(surfaces)
    _check_args(max_iterations, delta)
    logger.info(
        "Optimization: %d variable surface(s), target %.2f cycles/mm, max %d passes",
        len(result.variable_indices), target_frequency, max_iterations,
    )
    if cancel is not None and cancel.is_set():
        return result

    for step in iter_optimize(result, target_frequency, max_iterations,
                              delta=delta, field_angles=field_angles):
        result = step.surfaces
        if on_progress is not None:
            on_progress(step.surfaces, step.score)
        if cancel is not None and cancel.is_set():
            logger.info("Optimization cancelled after pass %d", step.iteration)
            break
    return result


async def aiter_optimize(
    surfaces: Sequence[Surface],
    target_frequency: float,
    max_iterations: int,
    *,
    delta: float = OPTIMIZER_DELTA,
    field_angles: Sequence[float] = MERIT_FIELD_ANGLES,
    cancel: Optional[threading.Event] = None,
    yield_every: int = OPTIMIZER_YIELD_EVERY,
) -> AsyncIterator[OptimizationPass]:
    """
    Async form of iter_optimize for event-loop hosts.
    Awaits the scheduler after passes 0, yield_every, 2*yield_every, ...
    """
    if yield_every < 1:
        raise ValueError(f"yield_every must be >= 1, got {yield_every}")
    if cancel is not None and cancel.is_set():
        return
    for step in iter_optimize(surfaces, target_frequency, max_iterations,
                              delta=delta, field_angles=field_angles):
        yield step
        if cancel is not None and cancel.is_set():
            logger.info("Optimization cancelled after pass %d", step.iteration)
            return
        if step.iteration % yield_every == 0:
            await asyncio.sleep(0)


async def optimize_async(
    surfaces: Sequence[Surface],
    target_frequency: float,
    max_iterations: int,
    on_progress: Optional[ProgressCallback] = None,
    *,
    delta: float = OPTIMIZER_DELTA,
    field_angles: Sequence[float] = MERIT_FIELD_ANGLES,
    cancel: Optional[threading.Event] = None,
    yield_every: int = OPTIMIZER_YIELD_EVERY,
) -> LensSystem:
    """Coroutine version of optimize(). on_progress may be sync or async."""
    result = LensSystem.of(surfaces)
    _check_args(max_iterations, delta)
    async for step in aiter_optimize(result, target_frequency, max_iterations,
                                     delta=delta, field_angles=field_angles,
                                     cancel=cancel, yield_every=yield_every):
        result = step.surfaces
        if on_progress is not None:
            ret = on_progress(step.surfaces, step.score)
            if inspect.isawaitable(ret):
                await ret
    return result
