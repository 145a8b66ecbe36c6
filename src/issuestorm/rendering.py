from collections import defaultdict
from collections.abc import Sequence

from rich.table import Table

from .models import RunStatistics, TimelineType, WorkOutcome
from .utils import to_ms


def _ms(seconds: float | None) -> str:
    value = to_ms(seconds)
    return "n/a" if value is None else f"{value} ms"


def render_summary(stats: RunStatistics) -> Table:
    table = Table(title="Run Summary", show_header=False, title_justify="left")
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")

    table.add_row("Total requests", str(stats.total_requests))
    table.add_row("Succeed", str(stats.succeeded))
    table.add_row("Failed", str(stats.failed))

    if not stats.has_data:
        table.add_row("Success rate", "No requests recorded.")
        table.add_row("Run duration", _ms(stats.run_duration))
        return table

    avg = stats.avg_latency
    table.add_row("Success rate", f"{stats.success_ratio:.2f}%")
    table.add_row("Min", _ms(stats.min_latency))
    table.add_row("Avg", "n/a" if avg is None else f"{avg * 1000:.2f} ms")
    table.add_row("Max", _ms(stats.max_latency))
    table.add_row("p50 / p95 / p99", " / ".join(_ms(p) for p in (stats.p50, stats.p95, stats.p99)))
    rps = stats.throughput
    table.add_row("Requests per second", "n/a" if rps is None else f"{rps:.2f}")
    table.add_row("Run duration", _ms(stats.run_duration))
    return table


def render_latency_histogram(latencies: Sequence[float], bins: int = 20) -> str:
    if not latencies:
        return "No latency data."
    lo, hi = min(latencies) * 1000, max(latencies) * 1000
    if hi <= lo:
        return f"Histogram: single value {lo:.1f} ms"

    width = 40
    counts = [0] * bins
    for x in latencies:
        j = int((x * 1000 - lo) / (hi - lo) * bins)
        if j == bins:
            j -= 1
        counts[j] += 1

    peak = max(counts)
    lines = []
    for i, c in enumerate(counts):
        left = lo + (hi - lo) * (i / bins)
        right = lo + (hi - lo) * ((i + 1) / bins)
        bar = "#" * int((c / peak) * width) if c else ""
        lines.append(f"{left:8.1f} - {right:8.1f} ms | {bar} ({c})")
    return "Latency Histogram\n" + "\n".join(lines)


def build_timeline(outcomes: Sequence[WorkOutcome]) -> TimelineType:
    timeline: TimelineType = defaultdict(list)
    for o in outcomes:
        timeline[o.worker].append((o.started, o.started + o.elapsed, o.ok))
    return timeline


def render_timeline(timeline: TimelineType, width: int = 80, max_rows: int = 32) -> str:
    """
    One row per worker id. Without a concurrency ceiling every unit of a batch
    has its own id, so rows past ``max_rows`` are folded into a count.
    """
    if not timeline:
        return "No timeline data."

    max_t = 0.0
    for segs in timeline.values():
        for _, end_rel, _ in segs:
            if end_rel > max_t:
                max_t = end_rel
    if max_t <= 0:
        max_t = 1.0

    lines = ["Request Timeline (relative seconds, x = failed)"]
    worker_ids = sorted(timeline.keys())
    for worker_id in worker_ids[:max_rows]:
        buf = [" "] * width
        for start_rel, end_rel, ok in timeline[worker_id]:
            a = int(start_rel / max_t * (width - 1))
            b = int(end_rel / max_t * (width - 1))
            a, b = max(0, a), max(a, b)
            for k in range(a, b + 1):
                buf[k] = "=" if ok else "x"
        lines.append(f"W{worker_id:02d} |{''.join(buf)}|")
    if len(worker_ids) > max_rows:
        lines.append(f"... {len(worker_ids) - max_rows} more rows (set --concurrency for one row per worker)")
    lines.append(f"0s{' ' * (width - 6)}~ {max_t:.2f}s")
    return "\n".join(lines)
