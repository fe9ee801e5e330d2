# greenpulse/errors.py


class GreenPulseError(Exception):
    """Base class for errors raised by the service."""


class ActivityValidationError(GreenPulseError):
    """A request fell outside the closed activity vocabulary."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(GreenPulseError):
    """Storage failed; nothing from the request was written."""


class NotFoundError(GreenPulseError):
    pass
