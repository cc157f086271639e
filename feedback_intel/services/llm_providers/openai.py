"""OpenAI chat-completions provider."""

from typing import List, Optional

from openai import APIError, AsyncOpenAI
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError

from .base import BaseLLMProvider


class OpenAIProvider(BaseLLMProvider):
    name = "openai"
    default_model = "gpt-4o-mini"
    key_env_var = "FEEDBACK_INTEL_OPENAI_API_KEY"

    rate_limit_errors = (OpenAIRateLimitError,)
    auth_errors = (OpenAIAuthError,)
    api_errors = (APIError,)

    def _make_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt, system_prompt, temperature, max_tokens) -> str:
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=self._messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            stream=False,
        )
        return response.choices[0].message.content or ""

    @staticmethod
    def _messages(prompt: str, system_prompt: Optional[str]) -> List[dict]:
        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})
        return messages
