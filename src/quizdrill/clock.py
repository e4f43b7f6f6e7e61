"""Wall-clock source shared by sessions, timers and storage."""

import time
from typing import Callable

# Epoch milliseconds. Sessions persist start times, so this must survive restarts.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)
