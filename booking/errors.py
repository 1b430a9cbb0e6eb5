"""Error taxonomy for the booking form core."""


class BookingError(Exception):
    """Base class for every recoverable booking error."""


class FormValidationError(BookingError):
    """One or more mandatory form fields are unset."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(f"Missing fields: {', '.join(sorted(self.errors))}")


class SelectionRejected(BookingError):
    """A choice is not among the options currently offered."""


class UnknownDayError(SelectionRejected):
    pass


class UnknownSlotError(SelectionRejected):
    pass


class StaleSelectionError(BookingError):
    """The selected day or slot disappeared after an availability refresh."""


class FetchError(BookingError):
    """A call to the external booking API failed."""


class SubmissionError(FetchError):
    pass
