from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time; services take it as an injectable clock."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
