class WizardError(Exception):
    """Base class for booking-wizard errors."""


class InvalidQueryError(WizardError):
    """An availability query is outside the bookable window or party range.

    Args:
        field_errors: Offending field name → message.
    """

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = field_errors
        super().__init__("; ".join(field_errors.values()))
