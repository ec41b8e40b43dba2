from typing import Any

from .base import LLMProvider
from .providers import AzureOpenAIProvider, DeepSeekProvider, OpenAIProvider


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('openai', 'azure', 'deepseek')
        **config: Provider-specific configuration
            For OpenAI:
                - api_key: str (required)
                - model: str (default: 'gpt-4o-mini')
                - base_url: str | None
                - organization: str | None
            For Azure OpenAI:
                - api_key: str (required)
                - endpoint: str (required)
                - model: str (deployment name)
                - api_version: str (default: '2024-08-01-preview')
            For DeepSeek:
                - api_key: str (required)
                - model: str (default: 'deepseek-chat')
                - base_url: str (default: 'https://api.deepseek.com')

    Returns:
        Initialized LLM provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider(
        ...     "azure",
        ...     api_key="...",
        ...     endpoint="https://my-resource.openai.azure.com",
        ...     model="gpt-4o-mini"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "openai":
        if not config.get("api_key"):
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAIProvider(**config)

    if provider_lower in ("azure", "azure_openai"):
        if not config.get("api_key"):
            raise TypeError("Azure provider requires 'api_key' in config")
        if not config.get("endpoint"):
            raise TypeError("Azure provider requires 'endpoint' in config")
        return AzureOpenAIProvider(**config)

    if provider_lower == "deepseek":
        if not config.get("api_key"):
            raise TypeError("DeepSeek provider requires 'api_key' in config")
        return DeepSeekProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openai', 'azure', 'deepseek'"
    )
