"""cdpharvest - enumerate incrementally rendered lists through the Chrome DevTools Protocol."""

__version__ = "0.1.0"

# Transport
from cdpharvest.cdp import (
    CDPClient,
    CDPConnectionError,
    CDPError,
    CommandTimeoutError,
    ConnectionClosedError,
    NotConnectedError,
    RemoteCommandError,
    TargetNotFoundError,
    discover_endpoint,
)

# Collection
from cdpharvest.collector import (
    CollectedRecord,
    CollectionError,
    CollectionResult,
    CollectorPhase,
    CollectorSettings,
    ConvergentCollector,
)
from cdpharvest.page import PageSession

# Substack source
from cdpharvest.substack import PublicationReport, SubstackScraper, Subscriber

__all__ = [
    # Version
    "__version__",
    # Transport
    "CDPClient",
    "discover_endpoint",
    "CDPError",
    "CDPConnectionError",
    "CommandTimeoutError",
    "ConnectionClosedError",
    "NotConnectedError",
    "RemoteCommandError",
    "TargetNotFoundError",
    # Collection
    "PageSession",
    "ConvergentCollector",
    "CollectedRecord",
    "CollectionError",
    "CollectionResult",
    "CollectorPhase",
    "CollectorSettings",
    # Substack
    "SubstackScraper",
    "Subscriber",
    "PublicationReport",
]
