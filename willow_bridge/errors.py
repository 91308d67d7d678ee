"""Exceptions raised past the validation gates."""


class BridgeError(Exception):
    """Base error carrying the HTTP status it should be reported with."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InternalConsistencyError(BridgeError):
    """Header sizes disagree with the payload actually being framed."""

    status_code = 500


class BackendFailure(BridgeError):
    """The recognition backend failed or returned an unusable result."""

    status_code = 502


class RecognizerError(Exception):
    """Raised by recognizer implementations when a call cannot complete."""


class ConfigurationError(BridgeError):
    """The service is configured with something it cannot use."""

    status_code = 500
