from typing import Iterator


def backoff_delays(
    max_attempts: int,
    initial_delay: float = 5.0,
    multiplier: float = 2.0,
    max_delay: float | None = None,
) -> Iterator[float]:
    """
    Yields the delay to wait before each retry, i.e. ``max_attempts - 1`` values.

    Formula:
        delay_n = initial * (multiplier ^ n), n = 0, 1, 2...
        capped at max_delay when given.

    Args:
        max_attempts: Total number of calls allowed, the first one included.
                      With max_attempts=5 there are 5 calls and 4 waits.
                      Values below 1 are treated as 1 (a single call, no waits).
    """
    delay = initial_delay
    for _ in range(max(max_attempts, 1) - 1):
        if max_delay is not None and delay > max_delay:
            delay = max_delay
        yield delay
        delay *= multiplier
