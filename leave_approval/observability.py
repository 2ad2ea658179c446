"""
Lightweight observability utilities.

Every ledger operation (submit, decide, views, persistence) is wrapped in a
trace span so that a slow store or an unexpected rejection can be traced back
to the call that produced it.

Log format
----------
[TRACE] <operation> duration_ms=<float> key=value ...
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("leave_approval.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of a ledger operation.

    Example log:
    [TRACE] decide duration_ms=0.12 actor=bob stage=teacher

    Guarantees
    ----------
    - Always logs completion (even if exception occurs)
    - Never suppresses exceptions
    - Produces structured key=value logs
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000

        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f %s", name, duration_ms, meta)
