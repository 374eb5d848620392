"""
Run one deadline sweep pass outside the ARQ worker.

    python -m app.scripts.run_sweep [--log-format text]

Exits non-zero when any task failed to resolve.
"""

import argparse
import asyncio
import sys
from dataclasses import asdict

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.core.redis import close_redis
from app.tasks.deadline_sweep import sweep_deadlines


async def run() -> int:
    try:
        report = await sweep_deadlines()
    finally:
        await close_redis()

    for key, value in asdict(report).items():
        print(f"{key}: {value}")
    return 1 if report.failed else 0


def main(argv=None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Apply the deadline rule to every overdue evaluation.")
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--log-format", choices=["json", "text"], default=settings.log_format)
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.log_format)
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
