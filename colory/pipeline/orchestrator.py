"""
Executes generation plans against the content capability adapter.

A run walks the plan's stages in order. Sequential stages issue one request at
a time and pause for a cool-down after every ``chunk_size`` requests; parallel
stages dispatch bounded batches and wait for each batch before the next.
Whatever the mode, outputs come back in plan order.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from enum import Enum
from typing import Awaitable, Callable, Protocol, Sequence

from colory.common.errors import GenerationInProgress, PlanAborted
from colory.common.media import ReferenceImage

from .models import ExecutionMode, GenerationPlan, GenerationResult, GenerationTask, TaskKind
from .progress import ProgressChannel, ProgressEvent, ProgressKind, ProgressListener

logger = logging.getLogger(__name__)

SleepCallable = Callable[[float], Awaitable[None]]


class CapabilityAdapter(Protocol):
    async def generate_image(self, prompt: str) -> str:
        ...

    async def generate_image_from_reference(self, prompt: str, photo: ReferenceImage) -> str:
        ...

    async def generate_text(self, prompt: str) -> str:
        ...


class PlanState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanRun:
    """
    Handle on one plan execution.

    Subscribe to :attr:`events` for progress, await :meth:`result` for the
    outputs, or call :meth:`discard` when the caller no longer cares about the
    outcome.
    """

    def __init__(self, plan: GenerationPlan, run_id: str) -> None:
        self.plan = plan
        self.run_id = run_id
        self.events = ProgressChannel(run_id)
        self.state = PlanState.IDLE
        self._task: asyncio.Task[GenerationResult] | None = None
        self._discarded = False

    @property
    def discarded(self) -> bool:
        return self._discarded

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def result(self) -> GenerationResult:
        if self._task is None:
            raise RuntimeError("Run has not been started.")
        return await self._task

    def discard(self) -> None:
        """Stop publishing events for this run and cancel outstanding requests."""
        self._discarded = True
        self.events.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()


class _ProgressTracker:
    def __init__(self, run: PlanRun, total: int) -> None:
        self._run = run
        self._total = total
        self.completed = 0
        self.percent = 0

    def _current_percent(self) -> int:
        percent = round(self.completed / self._total * 100) if self._total else 0
        self.percent = max(self.percent, min(percent, 99))
        return self.percent

    def task_started(self, task: GenerationTask) -> None:
        self._run.events.publish(
            ProgressEvent(
                message=f"Generating {task.label} ({task.position + 1}/{self._total})...",
                percent=self._current_percent(),
                kind=ProgressKind.TASK,
                position=task.position,
                label=task.label,
                run_id=self._run.run_id,
            )
        )

    def cooling_down(self, remaining_seconds: float) -> None:
        self._run.events.publish(
            ProgressEvent(
                message=(
                    "Pausing to avoid rate limits... "
                    f"({math.ceil(remaining_seconds)}s remaining)"
                ),
                percent=self._current_percent(),
                kind=ProgressKind.COOLDOWN,
                run_id=self._run.run_id,
            )
        )

    def finished(self) -> None:
        self.percent = 100
        self._run.events.publish(
            ProgressEvent(
                message="All done!",
                percent=100,
                kind=ProgressKind.COMPLETE,
                run_id=self._run.run_id,
            )
        )


class GenerationOrchestrator:
    """
    Runs one plan at a time against a capability adapter.

    Parameters
    ----------
    adapter:
        Object exposing ``generate_image``, ``generate_image_from_reference``
        and ``generate_text`` coroutines.
    chunk_size:
        Number of sequential requests between two cool-down pauses.
    cooldown_seconds:
        Length of each cool-down pause. ``0`` disables pausing.
    max_concurrency:
        Largest batch dispatched at once in parallel stages.
    tick_seconds:
        Interval between countdown events during a cool-down.
    sleep:
        Coroutine used to wait; injectable so tests need not wait in real time.
    """

    def __init__(
        self,
        adapter: CapabilityAdapter,
        *,
        chunk_size: int = 2,
        cooldown_seconds: float = 60,
        max_concurrency: int = 3,
        tick_seconds: float = 1.0,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1.")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive.")
        self._adapter = adapter
        self._chunk_size = chunk_size
        self._cooldown_seconds = max(0.0, float(cooldown_seconds))
        self._max_concurrency = max_concurrency
        self._tick_seconds = tick_seconds
        self._sleep = sleep
        self._active: PlanRun | None = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    def start(self, plan: GenerationPlan) -> PlanRun:
        """
        Schedule ``plan`` on the running event loop and return its handle.
        """
        if self._active is not None:
            raise GenerationInProgress(
                f"Run {self._active.run_id} is still in progress; wait for it to finish."
            )

        run = PlanRun(plan, uuid.uuid4().hex[:8])
        run.state = PlanState.RUNNING
        self._active = run
        logger.info(
            "Run %s: starting %s plan with %d tasks.",
            run.run_id,
            plan.product.value,
            plan.total_tasks,
        )
        run._task = asyncio.ensure_future(self._run(run))
        run._task.add_done_callback(lambda task: self._release(run, task))
        return run

    def _release(self, run: PlanRun, task: asyncio.Task[GenerationResult]) -> None:
        # Also reached by runs cancelled before _run's first step.
        if self._active is run:
            self._active = None
        if run.state is PlanState.RUNNING:
            if task.cancelled() or task.exception() is not None:
                run.state = PlanState.FAILED
            else:
                run.state = PlanState.COMPLETED
        run.events.close()

    async def execute(
        self,
        plan: GenerationPlan,
        progress: ProgressListener | None = None,
    ) -> GenerationResult:
        """Run ``plan`` to completion, forwarding progress events to ``progress``."""
        run = self.start(plan)
        if progress is not None:
            run.events.subscribe(progress)
        return await run.result()

    async def _run(self, run: PlanRun) -> GenerationResult:
        try:
            result = await self._execute_stages(run)
        except asyncio.CancelledError:
            run.state = PlanState.FAILED
            logger.info("Run %s was discarded.", run.run_id)
            raise
        except Exception:
            run.state = PlanState.FAILED
            raise
        else:
            run.state = PlanState.COMPLETED
            logger.info("Run %s: completed.", run.run_id)
            return result
        finally:
            if self._active is run:
                self._active = None
            run.events.close()

    async def _execute_stages(self, run: PlanRun) -> GenerationResult:
        plan = run.plan
        total = plan.total_tasks
        outputs: list[str] = [""] * total
        executed: list[GenerationTask | None] = [None] * total
        tracker = _ProgressTracker(run, total)
        since_pause = 0

        start = 0
        for stage in plan.stages:
            try:
                tasks = stage.resolve(outputs[:start], start)
            except Exception as exc:
                raise PlanAborted(start, f"preparing task {start + 1}", exc) from exc

            if stage.mode is ExecutionMode.SEQUENTIAL:
                since_pause = await self._run_sequential(
                    tasks, outputs, tracker, since_pause=since_pause
                )
            else:
                await self._run_parallel(tasks, outputs, tracker)

            for task in tasks:
                executed[task.position] = task
            start += stage.size

        tracker.finished()
        return GenerationResult(
            tasks=tuple(task for task in executed if task is not None),
            outputs=tuple(outputs),
        )

    async def _run_sequential(
        self,
        tasks: Sequence[GenerationTask],
        outputs: list[str],
        tracker: _ProgressTracker,
        *,
        since_pause: int,
    ) -> int:
        for task in tasks:
            if since_pause >= self._chunk_size:
                await self._cooldown(tracker)
                since_pause = 0
            tracker.task_started(task)
            outputs[task.position] = await self._invoke(task)
            tracker.completed += 1
            since_pause += 1
        return since_pause

    async def _run_parallel(
        self,
        tasks: Sequence[GenerationTask],
        outputs: list[str],
        tracker: _ProgressTracker,
    ) -> None:
        for offset in range(0, len(tasks), self._max_concurrency):
            batch = tasks[offset:offset + self._max_concurrency]
            for task in batch:
                tracker.task_started(task)

            futures = [asyncio.ensure_future(self._invoke(task)) for task in batch]
            try:
                results = await asyncio.gather(*futures)
            except BaseException:
                for future in futures:
                    future.cancel()
                await asyncio.gather(*futures, return_exceptions=True)
                raise

            # Completion order is irrelevant: outputs are slotted by position.
            for task, output in zip(batch, results):
                outputs[task.position] = output
            tracker.completed += len(batch)

    async def _cooldown(self, tracker: _ProgressTracker) -> None:
        remaining = self._cooldown_seconds
        while remaining > 0:
            tracker.cooling_down(remaining)
            step = min(self._tick_seconds, remaining)
            await self._sleep(step)
            remaining -= step

    async def _invoke(self, task: GenerationTask) -> str:
        try:
            if task.kind is TaskKind.TEXT:
                output = await self._adapter.generate_text(task.prompt)
            elif task.kind is TaskKind.IMAGE_WITH_REFERENCE:
                output = await self._adapter.generate_image_from_reference(
                    task.prompt, task.reference_image
                )
            else:
                output = await self._adapter.generate_image(task.prompt)
        except Exception as exc:
            logger.warning("Task %d (%s) failed: %s", task.position + 1, task.label, exc)
            raise PlanAborted(task.position, task.label, exc) from exc

        if not output:
            raise PlanAborted(
                task.position, task.label, ValueError(f"{task.label} produced no output.")
            )
        return output
