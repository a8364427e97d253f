"""Error types raised by the completion client."""


class CompletionError(Exception):
    """Base class for every failure of a completion request."""


class TransportError(CompletionError):
    """The request could not be delivered (connection, DNS, timeout)."""


class RemoteError(CompletionError):
    """The service answered with a non-success status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"API error {status}: {body}" if body else f"API error {status}")


class DecodeError(CompletionError):
    """The response body could not be parsed into the expected shape."""


class EmptyResponseError(CompletionError):
    """The response parsed but carried no generated text."""
