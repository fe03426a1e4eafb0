"""Error taxonomy for prayer-time resolution and notification scheduling."""


class PrayerTimesError(Exception):
    """Base class for prayer-time failures."""

    # Whether the next trigger may succeed without user action
    retryable = False


class MalformedScheduleError(PrayerTimesError, ValueError):
    """A day's prayer entries are incomplete, unparseable, or out of order."""


class FetchError(PrayerTimesError):
    """The monthly time source could not supply a month.

    Always retryable: the coordinator leaves its state untouched so the next
    trigger tries again.
    """

    retryable = True

    def __init__(self, year: int, month: int, reason: str):
        self.year = year
        self.month = month
        self.reason = reason
        super().__init__(f"Could not fetch prayer times for {year}-{month:02d}: {reason}")


class SchedulingError(PrayerTimesError):
    """The notification scheduler rejected a submission."""

    retryable = True


class PartialHorizonWarning(UserWarning):
    """A horizon was truncated because the following month is unavailable."""

    def __init__(self, requested: int, available: int, missing_month: tuple[int, int]):
        self.requested = requested
        self.available = available
        self.missing_month = missing_month
        year, month = missing_month
        super().__init__(
            f"Horizon truncated to {available}/{requested} days: "
            f"no prayer times for {year}-{month:02d}"
        )
