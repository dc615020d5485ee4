from datetime import UTC, datetime


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so ages can be compared safely."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def age_seconds(then: datetime | None, now: datetime) -> float:
    """Seconds elapsed since `then`, or infinity when it is unknown."""
    if then is None:
        return float("inf")
    return (_as_utc(now) - _as_utc(then)).total_seconds()
