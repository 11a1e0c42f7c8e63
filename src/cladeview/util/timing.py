import functools
import time

import structlog

logger = structlog.get_logger()


def time_function(func):
    """Log the elapsed wall-clock time of a function call."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.info("Function timing", function=func.__name__, elapsed_seconds=round(elapsed, 4))
        return result

    return wrapper
