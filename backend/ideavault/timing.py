"""
Timing helpers for request latency.

Prints one ``[TIMING]`` line when a scoring request starts and one when
it ends, matching the console output of the rest of the backend.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional


def log_timing(operation: str, action: str, duration_ms: Optional[float] = None):
    """Print a timing event in the standard format."""
    if duration_ms is not None:
        print(f"[TIMING] {operation}: {action} duration={duration_ms:.0f}ms")
    else:
        print(f"[TIMING] {operation}: {action}")


@asynccontextmanager
async def request_timer(operation: str):
    """Async context manager timing one scoring request."""
    log_timing(operation, "START")
    start = time.perf_counter()
    try:
        yield
    finally:
        log_timing(operation, "END", (time.perf_counter() - start) * 1000)
