"""Tests for PageSession: navigation and script evaluation over a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cdpharvest.cdp.exceptions import CommandTimeoutError, RemoteCommandError
from cdpharvest.page import PageSession


def _client(result=None, side_effect=None):
    client = MagicMock()
    client.call = AsyncMock(return_value=result, side_effect=side_effect)
    return client


class TestNavigate:

    @pytest.mark.asyncio
    async def test_issues_page_navigate(self):
        client = _client({"frameId": "F1", "loaderId": "L1"})
        page = PageSession(client, command_timeout=12)

        result = await page.navigate("https://mypub.substack.com/publish/subscribers")

        assert result["frameId"] == "F1"
        client.call.assert_awaited_once_with(
            "Page.navigate",
            {"url": "https://mypub.substack.com/publish/subscribers"},
            timeout=12,
        )

    @pytest.mark.asyncio
    async def test_error_text_raises(self):
        page = PageSession(_client({"frameId": "F1", "errorText": "net::ERR_NAME_NOT_RESOLVED"}))
        with pytest.raises(RemoteCommandError) as exc_info:
            await page.navigate("https://nowhere.invalid")
        assert exc_info.value.message == "net::ERR_NAME_NOT_RESOLVED"
        assert exc_info.value.method == "Page.navigate"


class TestEvaluate:

    @pytest.mark.asyncio
    async def test_returns_value_by_value(self):
        client = _client({"result": {"type": "object", "value": {"records": []}}})
        page = PageSession(client)

        assert await page.evaluate("read()") == {"records": []}

        method, params = client.call.await_args.args
        assert method == "Runtime.evaluate"
        assert params == {"expression": "read()", "returnByValue": True, "awaitPromise": True}
        assert client.call.await_args.kwargs == {"timeout": None}

    @pytest.mark.asyncio
    async def test_undefined_result_is_none(self):
        page = PageSession(_client({"result": {"type": "undefined"}}))
        assert await page.evaluate("void 0") is None

    @pytest.mark.asyncio
    async def test_exception_details_raise(self):
        page = PageSession(
            _client(
                {
                    "result": {"type": "object", "subtype": "error"},
                    "exceptionDetails": {
                        "text": "Uncaught",
                        "exception": {"description": "ReferenceError: nope is not defined"},
                    },
                }
            )
        )
        with pytest.raises(RemoteCommandError, match="ReferenceError"):
            await page.evaluate("nope()")

    @pytest.mark.asyncio
    async def test_exception_text_fallback(self):
        page = PageSession(_client({"result": {}, "exceptionDetails": {"text": "Uncaught SyntaxError"}}))
        with pytest.raises(RemoteCommandError, match="SyntaxError"):
            await page.evaluate("{{")

    @pytest.mark.asyncio
    async def test_non_object_result_raises(self):
        page = PageSession(_client(["not", "an", "object"]))
        with pytest.raises(RemoteCommandError, match="Unexpected evaluation result"):
            await page.evaluate("read()")

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self):
        page = PageSession(_client(side_effect=CommandTimeoutError("Runtime.evaluate", 30)))
        with pytest.raises(CommandTimeoutError):
            await page.evaluate("read()")


@pytest.mark.asyncio
async def test_sleep_zero():
    page = PageSession(_client())
    await page.sleep(0)
