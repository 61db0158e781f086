"""Page class for page-level operations over a CDPClient."""

import asyncio
import logging
from typing import Any

from cdpharvest.cdp.client import CDPClient
from cdpharvest.cdp.exceptions import RemoteCommandError

logger = logging.getLogger(__name__)


class PageSession:
    """Page operations for the tab a CDPClient is attached to.

    Every operation is a single ``CDPClient.call``; errors from the client
    propagate unchanged.
    """

    def __init__(self, client: CDPClient, command_timeout: float | None = None):
        self._client = client
        self._command_timeout = command_timeout

    @property
    def client(self) -> CDPClient:
        return self._client

    async def navigate(self, url: str) -> dict[str, Any]:
        """Navigate the tab to ``url``.

        Raises:
            RemoteCommandError: If the browser reports a navigation error.
        """
        logger.debug(f'Navigating to {url}')
        result = await self._client.call('Page.navigate', {'url': url}, timeout=self._command_timeout)
        if isinstance(result, dict) and result.get('errorText'):
            raise RemoteCommandError(result['errorText'], method='Page.navigate')
        return result

    async def evaluate(self, expression: str) -> Any:
        """Evaluate a JavaScript expression in the page and return its value.

        The expression is evaluated with ``returnByValue`` and ``awaitPromise``
        so promises are resolved and objects come back as JSON values.

        Raises:
            RemoteCommandError: If the expression throws inside the page.
        """
        result = await self._client.call(
            'Runtime.evaluate',
            {
                'expression': expression,
                'returnByValue': True,
                'awaitPromise': True,
            },
            timeout=self._command_timeout,
        )

        if not isinstance(result, dict):
            raise RemoteCommandError(f'Unexpected evaluation result: {result!r}', method='Runtime.evaluate')
        if 'exceptionDetails' in result:
            details = result['exceptionDetails']
            exception = details.get('exception') or {}
            message = exception.get('description') or details.get('text') or 'JavaScript evaluation failed'
            raise RemoteCommandError(message, method='Runtime.evaluate')

        return (result.get('result') or {}).get('value')

    async def sleep(self, seconds: float) -> None:
        """Wait for the page to settle."""
        await asyncio.sleep(seconds)
