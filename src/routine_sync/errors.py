"""Error hierarchy for live schedule synchronization.

Splits transport failures into transient ones (worth retrying when a
subscription is opened) and permanent ones (bad data, retrying won't help).
None of these are fatal: the controller degrades to a defined state and
recovers on re-selection or when the upstream store recovers.

Example usage with tenacity:
    retryer = Retrying(
        stop=stop_after_attempt(3),
        wait=wait_fixed(0.5),
        retry=retry_if_exception_type(TransientError),
        reraise=True,
    )
    unsubscribe = retryer(open_fn)
"""


class RoutineSyncError(Exception):
    """Base exception for all synchronization errors."""

    pass


class TransientError(RoutineSyncError):
    """Temporary transport failure that may succeed on retry.

    Examples: dropped connection while attaching a listener, backend unavailable.
    """

    pass


class PermanentError(RoutineSyncError):
    """Failure that won't succeed on retry.

    Examples: malformed document identifiers, permission denied on a collection.
    """

    pass


class CatalogSubscribeError(RoutineSyncError):
    """The entity collection listener could not be opened or was broken.

    Degrades to an empty entity list plus an explicit error status.
    """

    pass


class DaySubscribeError(RoutineSyncError):
    """One weekday listener failed. Local to that day only."""

    def __init__(self, day: str, message: str = "") -> None:
        self.day = day
        super().__init__(message or f"Subscription for day {day!r} failed")


class MalformedPeriodId(PermanentError):
    """A period document id is not parseable as a positive integer.

    Only the offending document is dropped; the rest of the day still applies.
    """

    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        super().__init__(f"Period document id {doc_id!r} is not a period number")
