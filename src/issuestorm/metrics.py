import math
import logging
from collections.abc import Iterable

from .models import RunStatistics, WorkOutcome

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Accumulates outcomes into count, success split and latency bounds."""

    def __init__(self) -> None:
        self.total = 0
        self.failed = 0
        self.min_latency: float | None = None
        self.max_latency: float | None = None
        self.sum_latency = 0.0
        self.latencies: list[float] = []

    def add(self, outcome: WorkOutcome) -> None:
        latency = outcome.elapsed
        self.total += 1
        if not outcome.ok:
            self.failed += 1
        self.sum_latency += latency
        if self.min_latency is None or latency < self.min_latency:
            self.min_latency = latency
        if self.max_latency is None or latency > self.max_latency:
            self.max_latency = latency
        self.latencies.append(latency)

    def extend(self, outcomes: Iterable[WorkOutcome]) -> None:
        for outcome in outcomes:
            self.add(outcome)

    def summary(self, dispatch_window: float = 0.0, run_duration: float = 0.0) -> RunStatistics:
        succeeded = self.total - self.failed
        logger.debug(
            f"Computing stats: total={self.total}, success={succeeded}, errors={self.failed}"
        )

        stats = RunStatistics(
            total_requests=self.total,
            succeeded=succeeded,
            failed=self.failed,
            min_latency=self.min_latency,
            max_latency=self.max_latency,
            sum_latency=self.sum_latency,
            run_duration=run_duration,
            dispatch_window=dispatch_window,
        )

        n = len(self.latencies)
        if n == 0:
            logger.info("No requests recorded. Returning empty stats.")
            return stats

        mean = self.sum_latency / n
        sum_sq = sum(x * x for x in self.latencies)
        stats.std = math.sqrt(max(0.0, (sum_sq / n) - (mean * mean)))

        sl = sorted(self.latencies)

        def pct(p):
            return sl[max(0, min(n - 1, int(p * (n - 1))))]

        stats.p50 = pct(0.50)
        stats.p90 = pct(0.90)
        stats.p95 = pct(0.95)
        stats.p99 = pct(0.99)

        if dispatch_window <= 0:
            logger.warning("Dispatch window is zero; throughput is undefined.")

        logger.info(
            f"Stats computed: success={succeeded}, errors={self.failed}, "
            f"mean={mean:.3f}s, p95={stats.p95:.3f}s, success_rate={stats.success_ratio}%"
        )
        return stats


def accumulate(
    outcomes: Iterable[WorkOutcome],
    dispatch_window: float = 0.0,
    run_duration: float = 0.0,
) -> RunStatistics:
    aggregator = StatsAggregator()
    aggregator.extend(outcomes)
    return aggregator.summary(dispatch_window, run_duration)
