"""
Infrastructure adapter: OpenAI-compatible chat completions -> ILanguageModel.
All request/response wire details are confined here; the application layer
only sends a prompt and receives text.
"""

from typing import Any

import httpx

from src.domain.errors import LanguageModelError
from src.domain.ports.llm_port import ILanguageModel


class OpenAIChatAdapter(ILanguageModel):
    """POSTs a single user message to /chat/completions with a bearer token."""

    BASE_URL = "https://api.openai.com/v1"
    MODEL_ID = "gpt-3.5-turbo"
    TEMPERATURE = 0.7

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        base_url: str = BASE_URL,
        model: str = MODEL_ID,
        temperature: float = TEMPERATURE,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        self._api_key = api_key
        self._client = client
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._model = model
        self._temperature = temperature

    def request_body(self, prompt: str) -> dict:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature,
        }

    async def complete(self, prompt: str) -> str:
        try:
            response = await self._client.post(
                self._url,
                json=self.request_body(prompt),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
            )
        except httpx.HTTPError as exc:
            raise LanguageModelError(f"Chat completion request failed: {exc}") from exc

        if not response.is_success:
            raise LanguageModelError(f"HTTP error! status: {response.status_code}")

        try:
            data: Any = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LanguageModelError(f"Unexpected chat completion body: {exc}") from exc

        if not isinstance(content, str) or not content.strip():
            raise LanguageModelError("Chat completion returned no content")
        return content
