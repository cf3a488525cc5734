"""Transaction helpers."""
from __future__ import annotations

import logging
import time

from django.conf import settings
from django.db import OperationalError

logger = logging.getLogger("bizfin")


def retry_on_conflict(func, *args, attempts: int | None = None, base_delay: float | None = None, **kwargs):
    """Call ``func(*args, **kwargs)``, retrying on transient database conflicts.

    Lock timeouts, deadlocks and serialization failures surface as
    ``OperationalError``.  Each workflow runs in its own atomic block, so a
    failed attempt left no effect and can simply be re-run.  The delay
    doubles after every failed attempt; the last error is re-raised.
    """
    if attempts is None:
        attempts = getattr(settings, "WORKFLOW_RETRY_ATTEMPTS", 3)
    if base_delay is None:
        base_delay = getattr(settings, "WORKFLOW_RETRY_BASE_DELAY", 0.05)
    attempts = max(1, int(attempts))

    for attempt in range(1, attempts + 1):
        try:
            return func(*args, **kwargs)
        except OperationalError:
            if attempt == attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Transient database conflict in %s (attempt %d/%d), retrying in %.2fs",
                getattr(func, "__name__", func), attempt, attempts, delay,
            )
            if delay:
                time.sleep(delay)
