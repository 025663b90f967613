"""
Until-done run controller.

Drives a SyncDriver batch after batch until the source reports `done`:

    RUNNING -> (batch ok)        -> RUNNING | DONE
    RUNNING -> (transient error) -> BACKOFF -> RUNNING (same cursor)
    RUNNING -> (fatal error)     -> ABORTED (error propagates)

Guards
- Iteration ceiling: abort with IterationCeilingError before batch N+1.
- Zero progress: a batch with scanned == 0 that is not done aborts with
  SyncAnomalyError.

Retries never advance the cursor and never count as a batch. Already
upserted records stay in place when a run aborts.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Sequence

from catalog_sync.errors import IterationCeilingError, SyncAnomalyError
from catalog_sync.persistence.models import Cursor, SyncMode
from catalog_sync.pipeline.driver import SyncDriver
from catalog_sync.retry import backoff_retrying

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]


@dataclass
class RunState:
    """
    Everything the loop knows, threaded through each iteration.

    `reset_pending` stays True until the first batch succeeds, so a reset is
    applied exactly once even when that batch had to be retried.
    """

    mode: SyncMode
    cursor: Cursor
    retry_count: int = 0
    batches: int = 0
    total_scanned: int = 0
    total_upserted: int = 0
    reset_pending: bool = False
    done: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunController:
    """
    Resumable, fault-tolerant crawl loop for one source.

    Transient failures (see `catalog_sync.retry.is_transient_error`) are
    retried with exponential backoff and jitter; everything else propagates.
    """

    def __init__(
        self,
        driver: SyncDriver,
        *,
        page_size: int,
        iteration_ceiling: int | None = None,
        sleep: Callable[[float], None] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """
        Args:
            driver: Batch driver for one source.
            page_size: Items per batch (clamped by the driver).
            iteration_ceiling: Max batches per run; defaults to the source's.
            sleep: Backoff sleep, injectable for tests.
            on_progress: Receives one dict per batch and per retry.
        """
        self._driver = driver
        self._page_size = page_size
        self._ceiling = iteration_ceiling or driver.source.iteration_ceiling
        self._sleep = sleep
        self._on_progress = on_progress

    def run(self, *, reset: bool = False, cursor: Cursor | None = None) -> RunState:
        """
        Run batches until done.

        Args:
            reset: Clear the source's records on the first successful batch.
            cursor: Explicit start cursor; defaults to the driver's resume cursor.

        Returns:
            The final RunState (done=True).

        Raises:
            IterationCeilingError: More batches needed than the ceiling allows.
            SyncAnomalyError: A batch made no progress but was not done.
            Exception: Any non-transient error from the driver.
        """
        source = self._driver.source
        if cursor is None:
            cursor = self._driver.resume_cursor(reset=reset)

        state = RunState(mode=self._driver.mode, cursor=cursor, reset_pending=reset)

        logger.info(
            "SYNC_RUN_START source=%s mode=%s cursor=%s page_size=%d ceiling=%d reset=%s",
            source.label,
            state.mode,
            state.cursor,
            self._page_size,
            self._ceiling,
            reset,
        )

        while True:
            if state.batches >= self._ceiling:
                logger.error(
                    "SYNC_RUN_CEILING source=%s batches=%d cursor=%s",
                    source.label,
                    state.batches,
                    state.cursor,
                )
                raise IterationCeilingError(
                    f"Stopped after {self._ceiling} batches to avoid infinite loop. "
                    "Re-run to continue."
                )

            retrying = backoff_retrying(
                sleep=self._sleep, before_sleep=self._retry_hook(state)
            )
            result = retrying(
                self._driver.run_batch,
                state.cursor,
                self._page_size,
                reset=state.reset_pending,
            )

            state.retry_count = 0
            state.reset_pending = False
            state.batches += 1
            state.total_scanned += result.scanned
            state.total_upserted += result.upserted

            self._report(
                {
                    "event": "batch",
                    "source": source.label,
                    "batch": state.batches,
                    "batchScanned": result.scanned,
                    "batchUpserted": result.upserted,
                    "nextCursor": result.next_cursor,
                    "done": result.done,
                    "totalScanned": state.total_scanned,
                    "totalUpserted": state.total_upserted,
                }
            )

            if result.done:
                state.done = True
                break

            if result.scanned == 0:
                logger.error(
                    "SYNC_RUN_ANOMALY source=%s batch=%d cursor=%s",
                    source.label,
                    state.batches,
                    state.cursor,
                )
                raise SyncAnomalyError(
                    "Full sync returned 0 items but is not done. "
                    "Stopping to avoid infinite loop."
                )

            state.cursor = result.next_cursor

        logger.info(
            "SYNC_RUN_DONE source=%s batches=%d total_scanned=%d total_upserted=%d",
            source.label,
            state.batches,
            state.total_scanned,
            state.total_upserted,
        )
        self._report(
            {
                "event": "done",
                "source": source.label,
                "batches": state.batches,
                "totalScanned": state.total_scanned,
                "totalUpserted": state.total_upserted,
            }
        )
        return state

    def _retry_hook(self, state: RunState):
        source = self._driver.source

        def before_sleep(retry_state) -> None:
            state.retry_count = retry_state.attempt_number
            delay = retry_state.next_action.sleep
            error = retry_state.outcome.exception()

            logger.warning(
                "SYNC_RUN_RETRY source=%s cursor=%s retry=%d delay_s=%.2f error=%s",
                source.label,
                state.cursor,
                state.retry_count,
                delay,
                error,
            )
            self._report(
                {
                    "event": "retry",
                    "source": source.label,
                    "transient": True,
                    "retry": state.retry_count,
                    "waitMs": int(delay * 1000),
                    "message": str(error),
                }
            )

        return before_sleep

    def _report(self, payload: dict[str, Any]) -> None:
        if self._on_progress is not None:
            self._on_progress(payload)


def run_until_done(
    drivers: Sequence[SyncDriver],
    *,
    page_size: int,
    reset: bool = False,
    sleep: Callable[[float], None] | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[RunState]:
    """
    Drain each driver in order; one fully completes before the next starts.
    """
    states = []
    for driver in drivers:
        controller = RunController(
            driver,
            page_size=page_size,
            sleep=sleep,
            on_progress=on_progress,
        )
        states.append(controller.run(reset=reset))
    return states
