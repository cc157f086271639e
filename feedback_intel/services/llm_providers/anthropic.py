"""
Anthropic messages provider.

The system prompt travels in the separate ``system`` parameter, and the
reply is the concatenation of its text blocks.
"""

from anthropic import APIError, AsyncAnthropic
from anthropic import AuthenticationError as AnthropicAuthError
from anthropic import RateLimitError as AnthropicRateLimitError

from .base import BaseLLMProvider


class AnthropicProvider(BaseLLMProvider):
    name = "anthropic"
    default_model = "claude-sonnet-4-20250514"
    key_env_var = "FEEDBACK_INTEL_ANTHROPIC_API_KEY"

    rate_limit_errors = (AnthropicRateLimitError,)
    auth_errors = (AnthropicAuthError,)
    api_errors = (APIError,)

    def _make_client(self, api_key: str) -> AsyncAnthropic:
        return AsyncAnthropic(api_key=api_key)

    async def _complete(self, prompt, system_prompt, temperature, max_tokens) -> str:
        request = {
            "model": self.model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt
        response = await self.client.messages.create(**request)
        return "".join(getattr(block, "text", "") for block in response.content)
