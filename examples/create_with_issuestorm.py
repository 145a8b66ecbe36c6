"""
Quick sanity run: bulk-create issues with a bounded worker pool, then show
the latency histogram and worker timeline.
Run: uv run examples/create_with_issuestorm.py examples/config.example.toml
"""
import asyncio
import os
import sys

from dotenv import load_dotenv

from issuestorm import RunOrchestrator
from issuestorm.config import load_config

load_dotenv()


async def main(path: str):
    config = load_config(path)
    config = config.model_copy(
        update={"concurrency": int(os.getenv("ISSUESTORM_CONCURRENCY", "5")), "max_retries": 2}
    )

    orchestrator = RunOrchestrator(
        config,
        show_histogram=True,
        show_timeline=True,
        histogram_bins=24,
        timeline_width=100,
    )
    stats = await orchestrator.create_issues()
    print("\nStats:", stats)

if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "examples/config.example.toml"))
