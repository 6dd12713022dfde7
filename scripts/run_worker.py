"""Run the continuation worker: resumes paused scans when their delay expires.

Usage:
    DEVSWEEP_SCHEDULER_BACKEND=redis DEVSWEEP_STORE_BACKEND=redis \
        python scripts/run_worker.py --poll-interval 5
"""

from __future__ import annotations

import argparse
import asyncio
import signal

from devsweep.core.config import AppSettings
from devsweep.core.logging import configure_logging
from devsweep.orchestration import build_runtime


async def _serve(poll_interval: float) -> None:
    settings = AppSettings()
    configure_logging(json_output=settings.log_json, level=settings.log_level)
    runtime = build_runtime(settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await runtime.worker(poll_interval=poll_interval).run_forever(stop)
    finally:
        close = getattr(runtime.directory, "close", None)
        if close is not None:
            await close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Fire scheduled devsweep continuations")
    parser.add_argument("--poll-interval", type=float, default=5.0, help="Seconds between polls")
    args = parser.parse_args()
    asyncio.run(_serve(args.poll_interval))


if __name__ == "__main__":
    main()
