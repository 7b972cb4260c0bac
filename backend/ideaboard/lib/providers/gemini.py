import asyncio
import base64
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold

from .base import BaseProvider, ChatHandle
from ...core.constants import LLMConstants
from ...core.errors import AssistantUnavailableException, ConfigurationException
from ...core.logging import StructuredLogger
from ...domain.models.assistant import ProviderReply, ToolCall
from ...domain.models.context import ContextPart, InlinePart

# 初始化logger
logger = logging.getLogger(__name__)
structured_logger = StructuredLogger("providers.gemini")


def _to_plain(value: Any) -> Any:
    """将protobuf的MapComposite/RepeatedComposite递归转换为普通dict/list"""
    if hasattr(value, "items"):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, (str, bytes)):
        return value
    if hasattr(value, "__iter__"):
        return [_to_plain(item) for item in value]
    return value


class GeminiChatHandle(ChatHandle):
    """包装 google.generativeai 的 ChatSession"""

    def __init__(self, chat, model_id: str, timeout: float):
        self._chat = chat
        self.model_id = model_id
        self.timeout = timeout
        # 上一轮回复中的函数调用名称，下一轮需要先回传函数结果
        self._pending_calls: List[str] = []

    def _to_gemini_parts(self, parts: Sequence[ContextPart]) -> List[Any]:
        gemini_parts = [
            genai.protos.Part(function_response=genai.protos.FunctionResponse(
                name=name, response={"result": "applied"}
            ))
            for name in self._pending_calls
        ]
        for part in parts:
            if isinstance(part, InlinePart):
                gemini_parts.append(genai.protos.Part(
                    inline_data=genai.protos.Blob(
                        mime_type=part.mime_type,
                        data=base64.b64decode(part.data)
                    )
                ))
            else:
                gemini_parts.append(genai.protos.Part(text=part.text))
        return gemini_parts

    def _parse_response(self, response) -> ProviderReply:
        text_chunks = []
        tool_calls = []

        # 检查候选回复中的文本和函数调用
        if hasattr(response, 'candidates') and response.candidates:
            for candidate in response.candidates:
                if hasattr(candidate, 'content') and candidate.content.parts:
                    for part in candidate.content.parts:
                        if part.text:
                            text_chunks.append(part.text)
                        function_call = part.function_call
                        if function_call and function_call.name:
                            tool_calls.append(ToolCall(
                                name=function_call.name,
                                arguments=_to_plain(function_call.args) or {}
                            ))

        return ProviderReply(text="".join(text_chunks), tool_calls=tool_calls)

    async def send(self, parts: Sequence[ContextPart]) -> ProviderReply:
        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._chat.send_message_async(self._to_gemini_parts(parts)),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            structured_logger.log_assistant_call("gemini", self.model_id, time.time() - start_time, False)
            raise AssistantUnavailableException(
                f"Gemini 响应超时（{self.timeout}秒）", {"model": self.model_id}
            ) from e
        except Exception as e:
            structured_logger.log_assistant_call("gemini", self.model_id, time.time() - start_time, False)
            logger.error(f"Gemini API错误: {str(e)}")
            raise AssistantUnavailableException(
                f"Gemini API 错误: {str(e)}", {"model": self.model_id}
            ) from e

        structured_logger.log_assistant_call("gemini", self.model_id, time.time() - start_time, True)
        reply = self._parse_response(response)
        self._pending_calls = [call.name for call in reply.tool_calls]
        return reply


class GeminiProvider(BaseProvider):
    """
    Google Gemini API 提供者
    使用原生Function Calling声明白板工具，多模态内容以内联数据发送
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_id: str = LLMConstants.DEFAULT_MODEL,
        temperature: float = LLMConstants.DEFAULT_TEMPERATURE,
        timeout: float = LLMConstants.DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.temperature = temperature
        self.timeout = timeout
        self._configured = False

        # 安全设置 - 允许所有内容以避免过度审查
        self.safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
        }

    def _ensure_configured(self):
        if self._configured:
            return
        if not self.api_key:
            raise ConfigurationException("缺少 GEMINI_API_KEY", config_key="GEMINI_API_KEY")
        genai.configure(api_key=self.api_key)
        self._configured = True
        logger.info("Gemini provider initialized successfully")

    def _to_schema(self, schema: Dict[str, Any]):
        """递归地将JSON Schema转换为Gemini Schema"""
        kwargs: Dict[str, Any] = {
            "type": getattr(genai.protos.Type, schema.get("type", "string").upper()),
            "description": schema.get("description", ""),
        }
        if "properties" in schema:
            kwargs["properties"] = {
                name: self._to_schema(info) for name, info in schema["properties"].items()
            }
            kwargs["required"] = schema.get("required", [])
        if "items" in schema:
            kwargs["items"] = self._to_schema(schema["items"])
        return genai.protos.Schema(**kwargs)

    def _convert_tools_to_gemini_format(self, tools: List[Dict[str, Any]]) -> List[Any]:
        """将工具转换为Gemini Function Calling格式"""
        if not tools:
            return []
        return [
            genai.protos.Tool(
                function_declarations=[
                    genai.protos.FunctionDeclaration(
                        name=tool.get("name", ""),
                        description=tool.get("description", ""),
                        parameters=self._to_schema(tool.get("parameters", {"type": "object"}))
                    )
                    for tool in tools
                ]
            )
        ]

    def open_conversation(self, system_prompt: str, tools: List[Dict[str, Any]]) -> ChatHandle:
        self._ensure_configured()

        model = genai.GenerativeModel(
            model_name=self.model_id,
            system_instruction=system_prompt,
            tools=self._convert_tools_to_gemini_format(tools) or None,
            safety_settings=self.safety_settings,
            generation_config=genai.types.GenerationConfig(temperature=self.temperature),
        )
        logger.info(f"打开Gemini对话: model={self.model_id}, tools={len(tools or [])}")
        return GeminiChatHandle(model.start_chat(), self.model_id, self.timeout)
