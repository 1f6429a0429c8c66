"""Exception hierarchy for the IPFS API access layer."""

from typing import Optional


class IpfsError(Exception):
    """
    Base exception class for all IPFS access errors.
    """
    pass


class HashError(IpfsError):
    """
    Raised when a content hash is malformed or has the wrong digest length.
    """
    pass


class IpfsPathParseError(IpfsError):
    """
    Raised when a path type token is unknown or a path is structurally invalid.
    """
    pass


class LocalApiUnavailableError(IpfsError):
    """
    Raised when the local daemon's API address cannot be determined.
    """
    pass


class IpfsApiError(IpfsError):
    """
    Base class for failures talking to the daemon or gateway over HTTP.
    """
    pass


class IpfsApiSendRequestError(IpfsApiError):
    """
    Raised when the HTTP request could not be sent (connect, reset, timeout).
    """
    pass


class IpfsApiResponseError(IpfsApiError):
    """
    Raised when the daemon answers with a non-success HTTP status.
    """

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        message = f"IPFS API responded with status {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class IpfsApiPayloadError(IpfsApiError):
    """
    Raised when the response body could not be read.
    """
    pass


class IpfsApiJsonPayloadError(IpfsApiPayloadError):
    """
    Raised when the response body is not the expected JSON document.
    """
    pass
