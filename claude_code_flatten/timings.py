"""Phase timing for the flattening pipeline.

Enabled via the CLAUDE_CODE_FLATTEN_DEBUG_TIMING environment variable,
evaluated at import time.
"""

import os
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Union

# Set to "1", "true", or "yes" to enable timing output
DEBUG_TIMING = os.getenv("CLAUDE_CODE_FLATTEN_DEBUG_TIMING", "").lower() in (
    "1",
    "true",
    "yes",
)


@contextmanager
def log_timing(phase: Union[str, Callable[[], str]], t_start: float) -> Iterator[None]:
    """Print how long one pipeline phase took, and the pipeline so far.

    A callable phase name is only called once the phase is over, so it can
    report what the phase produced.
    """
    if not DEBUG_TIMING:
        yield
        return

    t_phase = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - t_phase
        name = phase() if callable(phase) else phase
        print(
            f"[TIMING] {name:40s} {elapsed:8.3f}s "
            f"(total: {time.perf_counter() - t_start:8.3f}s)",
            flush=True,
        )
