"""Exception hierarchy for media extraction."""


class MediaExtractionError(Exception):
    """Base class for all extraction errors."""


class InvalidInputError(MediaExtractionError):
    """The request did not carry a usable URL."""


class UnsupportedPlatformError(MediaExtractionError):
    """The URL does not belong to a supported platform."""

    def __init__(self, url: str):
        super().__init__("Unsupported platform")
        self.url = url


class TransientFetchError(MediaExtractionError):
    """A network request made by a strategy failed or timed out."""

    def __init__(self, message: str, url: str = "", status_code: int = 0):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseFailureError(MediaExtractionError):
    """A strategy received markup or JSON it could not interpret."""
