from typing import Union


def parse_clock(value: Union[str, int]) -> int:
    """Convert ``"HH:MM"`` (or an int already in minutes) to minutes."""
    if isinstance(value, int):
        return value
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if minutes >= 60:
        raise ValueError(f"minutes out of range in {value!r}")
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    """Render minutes as a wall-clock ``HH:MM`` (wraps past midnight)."""
    h = (minutes // 60) % 24
    m = minutes % 60
    return f"{h:02d}:{m:02d}"
