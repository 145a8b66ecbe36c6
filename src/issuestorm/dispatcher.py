import asyncio
import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import HttpStatusError, TransportError
from .models import OutcomeCallback, UnitOfWork, WorkOutcome
from .utils import now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 0
    backoff_base_s: float = 0.5
    backoff_jitter_ratio: float = 0.2

    def should_retry(self, exc: BaseException, attempt: int) -> bool:
        if attempt > self.max_retries:
            return False
        if isinstance(exc, TransportError):
            return True
        return isinstance(exc, HttpStatusError) and exc.retryable

    def backoff_s(self, attempt: int) -> float:
        base = self.backoff_base_s * (2 ** (attempt - 1))
        jitter = 1.0 + random.uniform(
            -self.backoff_jitter_ratio, self.backoff_jitter_ratio
        )
        return max(0.05, base * jitter)


NO_RETRY = RetryPolicy()


class RequestDispatcher:
    """
    Runs a batch of independent units of work and joins on all of them.

    Every unit yields exactly one WorkOutcome; a unit that raises is recorded
    as a failed outcome and never disturbs its siblings. With ``concurrency``
    unset each unit gets its own task; otherwise a fixed pool of workers
    drains a queue of pending units.
    """

    def __init__(
        self,
        concurrency: int | None = None,
        retry: RetryPolicy | None = None,
        on_complete: OutcomeCallback | None = None,
    ) -> None:
        if concurrency is not None and concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.retry = retry or NO_RETRY
        self.on_complete = on_complete
        self.window: float = 0.0
        self._epoch: float | None = None

    # ────────────────────────────────
    # Single Unit
    # ────────────────────────────────

    async def _run_unit(self, unit: UnitOfWork, worker_id: int) -> WorkOutcome:
        start = now()
        started = start - self._epoch if self._epoch is not None else 0.0
        attempt = 1
        while True:
            try:
                result = await unit()
            except Exception as e:
                if self.retry.should_retry(e, attempt):
                    delay = self.retry.backoff_s(attempt)
                    logger.debug(
                        f"[W{worker_id}] Attempt {attempt} failed ({e}); retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue
                outcome = WorkOutcome(
                    elapsed=now() - start,
                    error=e,
                    worker=worker_id,
                    started=started,
                    attempts=attempt,
                )
                logger.debug(f"[W{worker_id}] Unit failed after {attempt} attempt(s): {e}")
                break
            outcome = WorkOutcome(
                elapsed=now() - start,
                result=result,
                worker=worker_id,
                started=started,
                attempts=attempt,
            )
            break

        if self.on_complete is not None:
            try:
                self.on_complete(outcome)
            except Exception:
                logger.exception(f"[W{worker_id}] Completion callback failed")
        return outcome

    # ────────────────────────────────
    # Batch
    # ────────────────────────────────

    async def dispatch_all(self, units: Iterable[UnitOfWork]) -> list[WorkOutcome]:
        units = list(units)
        t0 = now()
        if self._epoch is None:
            self._epoch = t0
        try:
            if not units:
                return []
            if self.concurrency is None:
                logger.debug(f"Dispatching {len(units)} units without a ceiling")
                return list(
                    await asyncio.gather(
                        *(self._run_unit(u, i) for i, u in enumerate(units))
                    )
                )
            return await self._dispatch_pooled(units)
        finally:
            self.window = now() - t0

    async def _dispatch_pooled(self, units: list[UnitOfWork]) -> list[WorkOutcome]:
        q: asyncio.Queue[UnitOfWork] = asyncio.Queue()
        for u in units:
            q.put_nowait(u)

        outcomes: list[WorkOutcome] = []
        pool_size = min(self.concurrency, len(units))
        logger.debug(f"Dispatching {len(units)} units with {pool_size} workers")

        async def worker(worker_id: int):
            while True:
                try:
                    u = await q.get()
                except asyncio.CancelledError:
                    return
                try:
                    outcomes.append(await self._run_unit(u, worker_id))
                finally:
                    q.task_done()

        workers = [asyncio.create_task(worker(i)) for i in range(pool_size)]
        await q.join()
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        return outcomes
