import time


class SystemClock:
    """Wall-clock time source in epoch seconds.

    Game windows and penalties are stored as absolute instants, so the
    engine compares against wall time rather than a monotonic counter.
    """

    def now(self) -> float:
        return time.time()
