"""Correlated request/response client for the Chrome DevTools Protocol.

One ``CDPClient`` owns one WebSocket connection to a CDP endpoint (usually a
page target's ``webSocketDebuggerUrl``). Every outbound command gets the next
correlation id and a future in the pending table; a single reader task routes
each inbound response to the future with the matching id, so responses may
arrive in any order.

Example:
    >>> async with CDPClient('ws://127.0.0.1:9222/devtools/page/ABC') as client:
    ...     result = await client.call('Runtime.evaluate', {'expression': '1 + 1', 'returnByValue': True})
    ...     print(result['result']['value'])
"""

import asyncio
import contextlib
import json
import logging
from typing import Any

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from cdpharvest.cdp.exceptions import (
    CDPConnectionError,
    CommandTimeoutError,
    ConnectionClosedError,
    NotConnectedError,
    RemoteCommandError,
)
from cdpharvest.cdp.views import PendingCommand, RemoteMessage

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_OPEN_TIMEOUT = 10.0


class CDPClient:
    """Multiplexes CDP commands over a single WebSocket.

    The pending table is confined to the event loop that opened the client.
    Inserts (``call``) and removals (reader, timeout, ``close``) run in
    synchronous sections between awaits, so no lock is needed.

    Attributes:
        endpoint: WebSocket URL of the CDP target.
        default_timeout: Seconds to wait for a response when ``call`` gets no timeout.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        default_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
    ):
        self.endpoint = endpoint
        self.default_timeout = default_timeout
        self.open_timeout = open_timeout
        self._ws: Any = None
        self._reader_task: asyncio.Task | None = None
        self._pending: dict[int, PendingCommand] = {}
        self._last_id = 0
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def pending_count(self) -> int:
        """Number of commands still waiting for a response."""
        return len(self._pending)

    async def open(self, endpoint: str | None = None) -> None:
        """Connect to the endpoint and start the reader task.

        Args:
            endpoint: WebSocket URL. Falls back to the URL given at construction.

        Raises:
            CDPConnectionError: If the endpoint is unreachable or the handshake fails.
        """
        if self._connected:
            logger.debug(f'Already connected to {self.endpoint}, ignoring open()')
            return

        self.endpoint = endpoint or self.endpoint
        if not self.endpoint:
            raise CDPConnectionError('Cannot open CDP connection without an endpoint')

        logger.debug(f'Connecting to CDP endpoint {self.endpoint}')
        try:
            self._ws = await websockets.connect(
                self.endpoint,
                max_size=None,
                ping_interval=None,
                open_timeout=self.open_timeout,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise CDPConnectionError(f'Failed to connect: {type(e).__name__}: {e}', self.endpoint) from e

        self._connected = True
        self._reader_task = asyncio.create_task(self._read_loop(), name='cdp-reader')
        logger.info(f'Connected to {self.endpoint}')

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a command and wait for its response.

        Args:
            method: CDP method name, e.g. ``'Runtime.evaluate'``.
            params: Command parameters. Sent as ``{}`` when omitted.
            timeout: Seconds to wait for the response. Defaults to ``default_timeout``.

        Returns:
            The ``result`` of the matching response, ``{}`` when it has none.

        Raises:
            NotConnectedError: If the client is not open.
            RemoteCommandError: If the response carries an ``error``.
            CommandTimeoutError: If no response arrives within ``timeout``.
            ConnectionClosedError: If the connection goes away first.
        """
        if not self._connected or self._ws is None:
            raise NotConnectedError(method)

        if timeout is None:
            timeout = self.default_timeout

        self._last_id += 1
        command_id = self._last_id
        future = asyncio.get_running_loop().create_future()
        self._pending[command_id] = PendingCommand(id=command_id, method=method, future=future)

        payload = json.dumps({'id': command_id, 'method': method, 'params': params or {}})
        logger.debug(f'CDP -> id={command_id} method={method}')

        try:
            try:
                await self._ws.send(payload)
            except ConnectionClosed as e:
                raise ConnectionClosedError(method, str(e)) from e
            try:
                return await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                logger.warning(f'CDP command id={command_id} {method} timed out after {timeout:g}s')
                raise CommandTimeoutError(method, timeout) from None
        finally:
            # a late response for this id finds nothing and is discarded
            self._pending.pop(command_id, None)

    async def close(self) -> None:
        """Close the connection and fail every outstanding command.

        Safe to call more than once.
        """
        was_connected = self._connected
        self._connected = False
        self._fail_pending('client closed')

        reader, self._reader_task = self._reader_task, None
        if reader is not None and not reader.done():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except WebSocketException as e:
                logger.debug(f'Error while closing WebSocket: {e}')

        if was_connected:
            logger.info(f'Disconnected from {self.endpoint}')

    async def __aenter__(self) -> 'CDPClient':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _read_loop(self) -> None:
        reason = 'connection lost'
        try:
            async for raw_message in self._ws:
                self._dispatch(raw_message)
        except ConnectionClosed as e:
            reason = f'connection lost: {e}'
            logger.warning(f'CDP connection to {self.endpoint} closed unexpectedly: {e}')
        finally:
            if self._connected:
                self._connected = False
                self._fail_pending(reason)

    def _dispatch(self, raw_message: str | bytes) -> None:
        try:
            data = json.loads(raw_message)
        except json.JSONDecodeError:
            logger.warning(f'Invalid JSON from CDP endpoint: {str(raw_message)[:100]}')
            return

        if not isinstance(data, dict):
            logger.warning(f'Ignoring non-object CDP message: {str(raw_message)[:100]}')
            return

        try:
            message = RemoteMessage.model_validate(data)
        except ValidationError as e:
            raw_id = data.get('id')
            pending = self._pending.pop(raw_id, None) if type(raw_id) is int else None
            if pending is None:
                logger.warning(f'Ignoring malformed CDP message: {e}')
                return
            # the id matches: fail that command now rather than leaving it to time out
            logger.warning(f'Malformed CDP response for id={raw_id} {pending.method}: {e}')
            if not pending.future.done():
                pending.future.set_exception(self._malformed_response_error(data, pending.method))
            return

        if not message.is_response:
            logger.debug(f'CDP <- event {message.method} (ignored)')
            return

        pending = self._pending.pop(message.id, None)
        if pending is None:
            logger.debug(f'CDP <- id={message.id} has no pending command, discarding')
            return
        if pending.future.done():
            return

        if message.error is not None:
            logger.debug(f'CDP <- id={message.id} {pending.method} error: {message.error.message}')
            pending.future.set_exception(
                RemoteCommandError(message.error.message, code=message.error.code, method=pending.method)
            )
        else:
            logger.debug(f'CDP <- id={message.id} {pending.method} ok')
            pending.future.set_result(message.result if message.result is not None else {})

    @staticmethod
    def _malformed_response_error(data: dict[str, Any], method: str) -> RemoteCommandError:
        error = data.get('error')
        if isinstance(error, dict):
            code = error.get('code')
            return RemoteCommandError(
                str(error.get('message', 'Unknown CDP error')),
                code=code if type(code) is int else None,
                method=method,
            )
        return RemoteCommandError(f'Malformed response: {str(data)[:100]}', method=method)

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for command in pending.values():
            if not command.future.done():
                command.future.set_exception(ConnectionClosedError(command.method, reason))
        if pending:
            logger.debug(f'Failed {len(pending)} outstanding CDP command(s): {reason}')
