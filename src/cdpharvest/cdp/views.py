"""Models for CDP wire messages and client bookkeeping."""

import asyncio
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class PendingCommand(BaseModel):
    """A command that has been sent and is waiting for its response.

    Owned exclusively by the CDPClient pending table and removed on the first
    of: matching response, error response, timeout expiry or connection close.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, revalidate_instances='never')

    id: int
    method: str
    issued_at: float = Field(default_factory=time.monotonic)
    future: asyncio.Future


class RemoteError(BaseModel):
    """Error payload of a rejected command."""

    model_config = ConfigDict(extra='allow')

    message: str = 'Unknown CDP error'
    code: int | None = None


class RemoteMessage(BaseModel):
    """One inbound CDP message.

    Responses carry an ``id`` and either ``result`` or ``error``; events carry
    ``method``/``params`` and no id.
    """

    model_config = ConfigDict(extra='allow')

    id: StrictInt | None = None
    result: Any = None
    error: RemoteError | None = None
    method: str | None = None
    params: dict[str, Any] | None = None

    @property
    def is_response(self) -> bool:
        return self.id is not None


class TargetInfo(BaseModel):
    """A debuggable target as listed by the browser's /json/list endpoint."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    id: str
    type: str
    title: str = ''
    url: str = ''
    web_socket_debugger_url: str | None = Field(default=None, alias='webSocketDebuggerUrl')

    @property
    def is_page(self) -> bool:
        return self.type == 'page'
