"""Custom exceptions for cladeview."""


class Error(Exception):
    """Base class for exceptions raised by cladeview."""


class ValidationError(Error):
    """Raised when a training request is rejected before reaching the server.

    A clade is rejected when it already has an active training job, when it
    fails the training eligibility predicate, or when there is no feature set
    to train it on.
    """


class TransportError(Error):
    """Raised when a request to the research API fails.

    Attributes
    ----------
    status_code : int | None
        HTTP status of the failed response. None when the request never
        produced a response (connection errors, timeouts).
    payload : object
        The decoded JSON body of the response, its text when the body is not
        JSON, or None. Stored verbatim so callers can inspect what the
        server said.
    url : str | None
        The URL of the failed request.
    """

    def __init__(self, message: str, status_code: int | None = None, payload=None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
        self.url = url


class AuthError(TransportError):
    """Raised when the research API rejects the request credential (401/403)."""
