"""
LLM Provider Base Class
=======================

A provider turns one prompt into one completion for the insight
summarizer. Subclasses implement ``_complete`` against their SDK and
declare which SDK exceptions mean "rate limited" or "bad key"; ``generate``
maps everything else onto LLMProviderError so callers handle a single
hierarchy.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""

    def __init__(self, message: str, provider: str = "unknown", original_error: Exception = None):
        self.message = message
        self.provider = provider
        self.original_error = original_error
        super().__init__(self.message)


class RateLimitError(LLMProviderError):
    pass


class AuthenticationError(LLMProviderError):
    pass


class BaseLLMProvider(ABC):
    name: str = "unknown"
    default_model: str = ""
    key_env_var: str = ""

    # SDK exception types, checked in this order
    rate_limit_errors: Tuple[Type[BaseException], ...] = ()
    auth_errors: Tuple[Type[BaseException], ...] = ()
    api_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, api_key: Optional[str], model: Optional[str] = None):
        if not api_key:
            raise AuthenticationError(
                f"{self.name} API key not found. Set {self.key_env_var} in environment.",
                provider=self.name,
            )
        self.model_name = model or self.default_model
        self.client = self._make_client(api_key)

    @abstractmethod
    def _make_client(self, api_key: str) -> Any:
        ...

    @abstractmethod
    async def _complete(self, prompt: str, system_prompt: Optional[str],
                        temperature: float, max_tokens: int) -> str:
        ...

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 512,
    ) -> str:
        """
        Generate a complete (non-streamed) response.

        Raises:
            RateLimitError: Provider throttled the request.
            AuthenticationError: Key rejected.
            LLMProviderError: Any other failure, including transport errors.
        """
        try:
            return await self._complete(prompt, system_prompt, temperature, max_tokens)
        except Exception as e:
            raise self._map_error(e) from e

    def _map_error(self, error: Exception) -> LLMProviderError:
        if isinstance(error, self.rate_limit_errors):
            return RateLimitError(f"{self.name} rate limit exceeded", provider=self.name, original_error=error)
        if isinstance(error, self.auth_errors):
            return AuthenticationError(f"{self.name} API key is invalid", provider=self.name, original_error=error)
        if isinstance(error, self.api_errors):
            return LLMProviderError(f"{self.name} API error: {error}", provider=self.name, original_error=error)
        return LLMProviderError(f"{self.name} generation failed: {error}", provider=self.name, original_error=error)

    def get_model_info(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": self.model_name}
