from __future__ import annotations

import asyncio


def compute_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 10.0) -> float:
    """Compute exponential backoff for ``attempt`` (1-based), capped at ``max_delay``."""
    delay = base_delay * (2 ** max(attempt - 1, 0))
    return min(delay, max_delay)


async def schedule_retry(attempt: int, base_delay: float = 1.0, max_delay: float = 10.0) -> float:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, base_delay, max_delay)
    if delay > 0:
        await asyncio.sleep(delay)
    return delay
