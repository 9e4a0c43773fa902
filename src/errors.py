"""Exception hierarchy for the ingredient scanning pipeline.

Every pipeline failure is a ``ScanError`` carrying the HTTP status code the
API reports it with. The API converts them to ``{"error": message}`` bodies
at the request boundary.
"""


class ScanError(Exception):
    """Base class for all pipeline errors.

    Args:
        message: Human-readable error message returned to the caller.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(ScanError):
    """The request or the model reply cannot be used as given."""

    status_code = 400


class MissingImageError(ClientInputError):
    """The request carried no image file."""

    def __init__(self, message: str = "No image file provided") -> None:
        super().__init__(message)


class MissingJSONError(ClientInputError):
    """The model reply contains no balanced JSON object."""


class TrailingContentError(ClientInputError):
    """The model reply has extra prose after the JSON object."""


class AuthError(ScanError):
    """Missing or invalid bearer token."""

    status_code = 401


class UpstreamError(ScanError):
    """An external capability (OCR or completion API) failed."""


class OCRError(UpstreamError):
    """Text recognition failed or the upload is not a readable image."""


class CompletionError(UpstreamError):
    """The chat-completion request failed or returned nothing."""


class ResponseFormatError(ScanError):
    """The model returned a JSON block that cannot be used."""


class MalformedJSONError(ResponseFormatError):
    """The extracted block is not valid JSON."""


class SchemaValidationError(ResponseFormatError):
    """The parsed object does not match the result schema."""


class PersistenceError(ScanError):
    """Writing to or reading from the analysis store failed."""
