"""Locate a controllable browser tab through the DevTools HTTP endpoint."""

import logging

import httpx

from cdpharvest.cdp.exceptions import CDPConnectionError, TargetNotFoundError
from cdpharvest.cdp.views import TargetInfo

logger = logging.getLogger(__name__)


async def list_targets(
    host: str = '127.0.0.1',
    port: int = 9222,
    timeout: float = 5.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[TargetInfo]:
    """Fetch the debuggable targets from ``http://host:port/json/list``.

    Raises:
        CDPConnectionError: If the browser is not reachable or answers with an error.
    """
    url = f'http://{host}:{port}/json/list'
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            entries = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise CDPConnectionError(f'Could not list browser targets: {type(e).__name__}: {e}', url) from e

    targets = [TargetInfo.model_validate(entry) for entry in entries]
    logger.debug(f'Found {len(targets)} targets at {url}')
    return targets


def find_target(targets: list[TargetInfo], url_hint: str | None = None) -> TargetInfo:
    """Pick the page target to drive.

    Prefers a page whose URL contains ``url_hint``, then any page that is not
    an internal ``chrome://`` page.

    Raises:
        TargetNotFoundError: If there is no usable page target.
    """
    pages = [t for t in targets if t.is_page and t.web_socket_debugger_url]

    if url_hint:
        for target in pages:
            if url_hint in target.url:
                return target

    for target in pages:
        if not target.url.startswith('chrome://'):
            return target

    raise TargetNotFoundError('No browser tab found. Open a tab in your browser first.')


async def discover_endpoint(
    host: str = '127.0.0.1',
    port: int = 9222,
    url_hint: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TargetInfo:
    """List targets and return the one ``find_target`` selects."""
    targets = await list_targets(host, port, transport=transport)
    target = find_target(targets, url_hint)
    logger.info(f'Using tab: {target.title or target.url}')
    return target
