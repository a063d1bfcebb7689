from datetime import datetime


# Converts any datetime into epoch milliseconds. Naive datetimes are read as local time.
def to_ms(dt: datetime) -> int:
    return int(round(dt.astimezone().timestamp() * 1000))


# Inverse of to_ms, always handing back an aware local datetime.
def from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000).astimezone()


# Formats epoch milliseconds the way every timestamp is written to disk.
def iso_from_ms(ms: int) -> str:
    return from_ms(ms).isoformat(timespec="milliseconds")


# Parses a stored ISO timestamp into epoch milliseconds, or None when it isn't a usable timestamp.
def parse_iso_ms(value) -> int | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_ms(parsed)


# Stopwatch style, MM:SS below an hour and HH:MM:SS above. Negative values clamp to zero.
def format_duration(ms):
    total_seconds = max(0, int(ms) // 1000)
    h, rem = divmod(total_seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


# Compact form used for history lines, such as "1h 5m" or "12m".
def format_duration_short(ms):
    total_seconds = max(0, int(ms) // 1000)
    h, rem = divmod(total_seconds, 3600)
    m = rem // 60
    if h > 0:
        return f"{h}h {m}m"
    return f"{m}m"
