class IssueStormError(Exception):
    """Base class for every error raised by issuestorm."""


class ConfigError(IssueStormError):
    pass


class TransportError(IssueStormError):
    """Network or connection failure before a response was received."""


class HttpStatusError(IssueStormError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{message} Error: {status}")
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status == 429 or self.status >= 500


class DecodeError(IssueStormError):
    """Response body did not match the expected schema."""


class InvalidParameter(IssueStormError, ValueError):
    pass
