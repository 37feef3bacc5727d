from __future__ import annotations
from typing import Any, Dict, List, Optional

from minbar import config
from minbar.errors import TransportError
from minbar.prompts import native_response_format
from minbar.utils import log


def openai_client():
    from openai import AsyncOpenAI
    project = config.OPENAI_PROJECT
    return AsyncOpenAI(project=project) if project else AsyncOpenAI()


class GenerationClient:
    """
    One outbound chat-completions call per request, no retry and no timeout
    beyond the SDK default. Every failure surfaces as TransportError.
    """

    def __init__(
        self,
        model: str = config.GEN_MODEL,
        temperature: Optional[float] = config.GEN_TEMP,
        native_schema: Optional[Dict[str, Any]] = None,
        client=None,
    ):
        self.model = model
        self.temperature = temperature
        self.native_schema = native_schema
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = openai_client()
        return self._client

    def _response_format(self) -> Dict[str, Any]:
        if self.native_schema is not None:
            return native_response_format(self.native_schema)
        return {"type": "json_object"}

    async def _create(self, messages: List[Dict[str, str]], **extra) -> str:
        kw: Dict[str, Any] = {"model": self.model, "messages": messages, **extra}
        if self.temperature is not None:
            kw["temperature"] = self.temperature
        try:
            r = await self.client.chat.completions.create(**kw)
            text = r.choices[0].message.content
        except Exception as e:
            raise TransportError(f"generation request failed: {e}") from e
        if not text or not text.strip():
            raise TransportError("generation service returned an empty response")
        return text

    async def generate(self, request_text: str, contract_text: str) -> str:
        log(f"generate model={self.model} native_schema={self.native_schema is not None}")
        messages = [
            {"role": "system", "content": contract_text},
            {"role": "user", "content": request_text},
        ]
        return await self._create(messages, response_format=self._response_format())

    async def complete(self, prompt: str) -> str:
        """Plain-text call (verse previews)."""
        return await self._create([{"role": "user", "content": prompt}])
