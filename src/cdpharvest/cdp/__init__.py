"""Chrome DevTools Protocol transport: client, tab discovery and errors."""

from cdpharvest.cdp.client import CDPClient
from cdpharvest.cdp.discovery import discover_endpoint, find_target, list_targets
from cdpharvest.cdp.exceptions import (
    CDPConnectionError,
    CDPError,
    CommandTimeoutError,
    ConnectionClosedError,
    NotConnectedError,
    RemoteCommandError,
    TargetNotFoundError,
)
from cdpharvest.cdp.views import PendingCommand, RemoteMessage, TargetInfo

__all__ = [
    'CDPClient',
    'discover_endpoint',
    'find_target',
    'list_targets',
    'CDPError',
    'CDPConnectionError',
    'CommandTimeoutError',
    'ConnectionClosedError',
    'NotConnectedError',
    'RemoteCommandError',
    'TargetNotFoundError',
    'PendingCommand',
    'RemoteMessage',
    'TargetInfo',
]
