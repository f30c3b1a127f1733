"""Example script exercising two rotating log categories.

This script demonstrates how to use the library to:
1. Register an "access" category at INFO and a "diagnostic" category at DEBUG
2. Resolve both to their shared loggers
3. Write a burst of leveled messages, rotating the files as they fill up
4. Close every logger through the registry

Files are written to `--log-dir`, which must already exist.
"""

from __future__ import annotations

import argparse
import pathlib
import sys
import time

from rotalog import CategoryRegistry, ConfigurationError, LogIOError
from rotalog.utils.logging import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser("Write to two rotating log categories")
    parser.add_argument("--log-dir", type=pathlib.Path, default=pathlib.Path("."))
    parser.add_argument("--iterations", type=int, default=100)
    parser.add_argument("--interval", type=float, default=0.5, help="Seconds between iterations")
    parser.add_argument("--max-bytes", type=int, default=1024 * 1024)
    parser.add_argument("--max-generations", type=int, default=5)
    parser.add_argument(
        "--diagnostics-level", default=None, help="Level for rotalog's own stderr diagnostics"
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    configure_logging(args.diagnostics_level)

    registry = CategoryRegistry()
    try:
        registry.register(
            "access", args.log_dir / "access.log", "info", args.max_bytes, args.max_generations
        )
        registry.register(
            "diagnostic", args.log_dir / "diag.log", "debug", args.max_bytes, args.max_generations
        )
        access = registry.resolve("access")
        diag = registry.resolve("diagnostic")
    except (ConfigurationError, LogIOError) as e:
        print(e, file=sys.stderr)
        return 1

    try:
        for _ in range(args.iterations):
            time.sleep(args.interval)
            access.log("new access.")

            diag.log("test message")
            diag.fatal("test message")
            diag.error("test message")
            diag.warn("test message")
            diag.notice("test message")
            diag.info("test message")
            result = diag.debug("test message")
            if result.rotated:
                print(f"Rotated diagnostic log to {result.rotated_to}")
            if not result.ok:
                print(f"Rotation problem: {result.error}", file=sys.stderr)
    finally:
        registry.close_all()
    return 0


if __name__ == "__main__":
    sys.exit(main())
