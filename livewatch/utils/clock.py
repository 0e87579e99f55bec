# livewatch/utils/clock.py
import time


def now_ms() -> int:
    """Wall-clock time in integer milliseconds since the epoch (the sensor's unit)."""
    return int(time.time() * 1000)


def to_ms(value) -> int:
    """
    Coerce a client-supplied timestamp into integer milliseconds.
    Falsy values (None, 0) fall back to the current time, like the sensor firmware does.
    """
    if not value:
        return now_ms()
    return int(value)
