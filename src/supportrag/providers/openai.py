"""
OpenAI answer generator.
"""

from typing import Any

from openai import AsyncOpenAI

from supportrag.exceptions import ConfigurationMissing
from supportrag.providers.base import AnswerGenerator


class OpenAIAnswerGenerator(AnswerGenerator):
    """
    Answer generator backed by OpenAI chat completions.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 1000,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationMissing("OPENAI_API_KEY")

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        """Get a completion from OpenAI."""
        client = self._get_client()

        params: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        response = await client.chat.completions.create(**params)

        content = response.choices[0].message.content
        return content or ""
