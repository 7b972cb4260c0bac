"""
Gemini提供者单元测试

不访问网络：ChatSession和回复对象都用Mock替代。
"""
import asyncio
import base64
from unittest.mock import AsyncMock, Mock, patch

import pytest

from ideaboard.core.exceptions import AssistantUnavailableException, ConfigurationException
from ideaboard.domain.models.context import InlinePart, TextPart
from ideaboard.domain.schemas.tools import WHITEBOARD_TOOLS
from ideaboard.lib.providers.gemini import GeminiChatHandle, GeminiProvider


def _response(text: str = "", calls=None) -> Mock:
    parts = []
    if text:
        parts.append(Mock(text=text, function_call=None))
    for name, args in calls or []:
        function_call = Mock(args=args)
        function_call.name = name
        parts.append(Mock(text="", function_call=function_call))
    candidate = Mock()
    candidate.content.parts = parts
    return Mock(candidates=[candidate])


@pytest.mark.unit
class TestGeminiChatHandle:
    """对话句柄测试"""

    @pytest.fixture
    def chat(self):
        chat = Mock()
        chat.send_message_async = AsyncMock(return_value=_response("Hello"))
        return chat

    @pytest.mark.asyncio
    async def test_send_text_and_inline_parts(self, chat):
        handle = GeminiChatHandle(chat, "gemini-test", timeout=5)
        data = base64.b64encode(b"image-bytes").decode("ascii")

        reply = await handle.send([TextPart(text="look"), InlinePart(mime_type="image/png", data=data)])

        sent = chat.send_message_async.call_args[0][0]
        assert reply.text == "Hello"
        assert sent[0].text == "look"
        assert sent[1].inline_data.mime_type == "image/png"
        assert sent[1].inline_data.data == b"image-bytes"

    @pytest.mark.asyncio
    async def test_function_calls_parsed(self, chat):
        chat.send_message_async.return_value = _response(
            "Done", [("group_nodes", {"nodeIds": ["a", "b"]})]
        )
        handle = GeminiChatHandle(chat, "gemini-test", timeout=5)

        reply = await handle.send([TextPart(text="group")])

        assert reply.tool_calls[0].name == "group_nodes"
        assert reply.tool_calls[0].arguments == {"nodeIds": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_function_results_sent_with_next_turn(self, chat):
        """测试上一轮的函数调用会在下一轮开头回传结果"""
        chat.send_message_async.return_value = _response("", [("delete_nodes", {"nodeIds": ["a"]})])
        handle = GeminiChatHandle(chat, "gemini-test", timeout=5)
        await handle.send([TextPart(text="first")])

        chat.send_message_async.return_value = _response("ok")
        await handle.send([TextPart(text="second")])

        sent = chat.send_message_async.call_args[0][0]
        assert sent[0].function_response.name == "delete_nodes"
        assert sent[1].text == "second"

    @pytest.mark.asyncio
    async def test_timeout_becomes_unavailable(self, chat):
        chat.send_message_async.side_effect = asyncio.TimeoutError()
        handle = GeminiChatHandle(chat, "gemini-test", timeout=5)

        with pytest.raises(AssistantUnavailableException):
            await handle.send([TextPart(text="hi")])

    @pytest.mark.asyncio
    async def test_api_error_becomes_unavailable(self, chat):
        chat.send_message_async.side_effect = RuntimeError("quota exceeded")
        handle = GeminiChatHandle(chat, "gemini-test", timeout=5)

        with pytest.raises(AssistantUnavailableException, match="quota exceeded"):
            await handle.send([TextPart(text="hi")])


@pytest.mark.unit
class TestGeminiProvider:
    """提供者测试"""

    def test_missing_api_key(self):
        provider = GeminiProvider(api_key=None)

        with pytest.raises(ConfigurationException):
            provider.open_conversation("prompt", WHITEBOARD_TOOLS)

    def test_tools_converted_to_single_declaration_set(self):
        provider = GeminiProvider(api_key="test-key")

        tools = provider._convert_tools_to_gemini_format(WHITEBOARD_TOOLS)

        names = [declaration.name for declaration in tools[0].function_declarations]
        assert len(tools) == 1
        assert names == [tool["name"] for tool in WHITEBOARD_TOOLS]

    def test_open_conversation(self):
        provider = GeminiProvider(api_key="test-key", model_id="gemini-test", temperature=0.2)

        with patch("ideaboard.lib.providers.gemini.genai") as mock_genai:
            handle = provider.open_conversation("system prompt", [])

        mock_genai.configure.assert_called_once_with(api_key="test-key")
        kwargs = mock_genai.GenerativeModel.call_args.kwargs
        assert kwargs["model_name"] == "gemini-test"
        assert kwargs["system_instruction"] == "system prompt"
        assert kwargs["tools"] is None
        assert isinstance(handle, GeminiChatHandle)
