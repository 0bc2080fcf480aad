from datetime import UTC, datetime


def encode_timestamp(dt: datetime) -> int:
    """Converts a datetime to whole UNIX seconds (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp())


def decode_timestamp(value: int) -> datetime:
    """Converts UNIX seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(int(value), tz=UTC)
