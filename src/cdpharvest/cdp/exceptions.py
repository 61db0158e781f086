"""Exceptions raised by the CDP transport layer."""


class CDPError(Exception):
    """Base exception for all CDP transport errors."""
    pass


class CDPConnectionError(CDPError, ConnectionError):
    """Exception raised when the WebSocket endpoint cannot be reached or the handshake fails."""

    def __init__(self, message: str, endpoint: str | None = None):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint

    def __str__(self) -> str:
        if self.endpoint:
            return f"{self.message} ({self.endpoint})"
        return self.message


class NotConnectedError(CDPError):
    """Exception raised when a command is issued before the client is open."""

    def __init__(self, method: str | None = None):
        self.method = method
        message = "CDP client is not connected"
        if method:
            message = f"{message}: cannot send {method}"
        super().__init__(message)


class CommandTimeoutError(CDPError, TimeoutError):
    """Exception raised when no response arrives for a command within its timeout."""

    def __init__(self, method: str, timeout_seconds: float | None = None):
        self.method = method
        self.timeout_seconds = timeout_seconds
        super().__init__(method)

    def __str__(self) -> str:
        if self.timeout_seconds is not None:
            return f"Timeout: {self.method} (no response after {self.timeout_seconds:g}s)"
        return f"Timeout: {self.method}"


class RemoteCommandError(CDPError):
    """Exception raised when the remote side rejects a command with an error response."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        method: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.method = method

    def __str__(self) -> str:
        prefix = f"{self.method}: " if self.method else ""
        if self.code is not None:
            return f"{prefix}[{self.code}] {self.message}"
        return f"{prefix}{self.message}"


class ConnectionClosedError(CDPError):
    """Exception raised for commands still outstanding when the connection is torn down."""

    def __init__(self, method: str | None = None, reason: str | None = None):
        self.method = method
        self.reason = reason
        message = "CDP connection closed"
        if method:
            message = f"{message} while waiting for {method}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class TargetNotFoundError(CDPError):
    """Exception raised when tab discovery finds no controllable page target."""
    pass
