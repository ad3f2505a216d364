"""Error hierarchy for the seminar scheduler.

Routes map these onto HTTP status codes: ``StoreError`` becomes a 500 so the
external cron retries on its own schedule, ``BookingError`` becomes a 4xx,
and ``DuplicateRecordError`` is never surfaced because a unique-constraint
conflict means another invocation already did the work.
"""


class SeminarError(Exception):
    """Base exception for all scheduler errors."""

    pass


class ConfigError(SeminarError):
    """Missing or malformed configuration. Fatal at start-up."""

    pass


class StoreError(SeminarError):
    """The relational store could not answer a query or accept a write.

    Examples: locked database, missing table, connection failure.
    """

    pass


class DuplicateRecordError(StoreError):
    """Insert rejected by a uniqueness constraint.

    Inherits from StoreError so generic handlers still catch it, but callers
    of the selection and fine inserts treat it as an idempotence signal.
    """

    pass


class HolidaySearchExhausted(SeminarError):
    """No working day was found within the configured search bound."""

    pass


class BookingError(SeminarError):
    """A booking request was rejected.

    ``status`` is the HTTP status the booking routes answer with.
    """

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.status = status
