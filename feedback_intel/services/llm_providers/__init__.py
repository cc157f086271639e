from typing import Optional

from feedback_intel.config import settings

from .base import AuthenticationError, BaseLLMProvider, LLMProviderError, RateLimitError


def build_llm_provider(provider_name: str, api_key: Optional[str] = None,
                       model: Optional[str] = None) -> BaseLLMProvider:
    """Instantiate the named provider, falling back to configured key and model.

    Raises AuthenticationError when no key is available.
    """
    provider_type = provider_name.lower()
    model = model or settings.llm_model
    if provider_type == "openai":
        from .openai import OpenAIProvider
        return OpenAIProvider(api_key or settings.openai_api_key, model)
    elif provider_type == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(api_key or settings.anthropic_api_key, model)
    raise ValueError(f"Unsupported LLM provider: {provider_name}. Use 'openai' or 'anthropic'.")


__all__ = [
    "AuthenticationError",
    "BaseLLMProvider",
    "LLMProviderError",
    "RateLimitError",
    "build_llm_provider",
]
