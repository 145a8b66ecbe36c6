__all__ = [
    "RunOrchestrator",
    "RequestDispatcher",
    "RetryPolicy",
    "PaginationCrawler",
    "StatsAggregator",
    "accumulate",
    "get_random_item",
    "synthesize_payload",
    "render_latency_histogram",
    "render_timeline",
]


from .core import RunOrchestrator
from .crawler import PaginationCrawler
from .dispatcher import RequestDispatcher, RetryPolicy
from .metrics import StatsAggregator, accumulate
from .payload import synthesize_payload
from .rendering import render_latency_histogram, render_timeline
from .sampler import get_random_item
