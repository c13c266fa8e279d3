"""Exception types raised by the Farcaster client."""

from typing import Optional


class FarcasterClientError(Exception):
    """Base exception for the Farcaster client."""

    pass


class ConfigurationError(FarcasterClientError):
    """Raised when a required credential or setting is missing."""

    pass


class RequestError(FarcasterClientError):
    """Base class for outbound request failures."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(f"{message} (url={url})" if url else message)


class RequestTransportError(RequestError):
    """The remote host could not be reached or the attempt timed out."""

    pass


class RemoteRejectedError(RequestError):
    """The remote API answered with a non-200, non-429 status."""

    def __init__(self, status_code: int, reason: str, url: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"request rejected: {status_code} {reason}", url)


class RetryLimitExceededError(RequestError):
    """Every attempt was throttled."""

    def __init__(self, attempts: int, url: Optional[str] = None):
        self.attempts = attempts
        super().__init__(f"exceeded retry limit after {attempts} attempts", url)


class DecodeError(FarcasterClientError):
    """A response body did not match the expected shape."""

    pass


class WebhookError(FarcasterClientError):
    """Base class for inbound webhook failures."""

    pass


class SignatureVerificationError(WebhookError):
    """The webhook signature does not match the body."""

    pass


class WebhookPayloadError(WebhookError):
    """The webhook body could not be parsed."""

    pass


class NoDataFoundError(FarcasterClientError):
    """The API returned no data for the query."""

    pass


class ChannelNotFoundError(FarcasterClientError):
    """The requested channel does not exist."""

    pass


class FarcasterUserNotSetError(FarcasterClientError):
    """An operation needs the bot identity but none was configured."""

    pass


class ContentTooLongError(FarcasterClientError, ValueError):
    """Cast text exceeds the protocol byte limit."""

    pass
