from typing import Any

from openai import AsyncAzureOpenAI

from .openai import OpenAIProvider

DEFAULT_API_VERSION = "2024-08-01-preview"


class AzureOpenAIProvider(OpenAIProvider):
    """Azure OpenAI provider.

    Same request and fragment handling as OpenAIProvider; only the client
    differs. On Azure the model name is the deployment name.

    Hidden design decisions:
    - Endpoint and API version routing
    - Azure key authentication
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        model: str = "gpt-4o-mini",
        api_version: str = DEFAULT_API_VERSION,
        **client_kwargs: Any
    ):
        """Initialize Azure OpenAI provider.

        Args:
            api_key: Azure OpenAI API key
            endpoint: Resource endpoint, e.g. https://<name>.openai.azure.com
            model: Deployment name to use by default
            api_version: Azure OpenAI API version
            **client_kwargs: Additional kwargs for AsyncAzureOpenAI client
        """
        if not endpoint:
            raise TypeError("Azure provider requires a non-empty 'endpoint'")
        self._endpoint = endpoint
        self._api_version = api_version
        super().__init__(api_key=api_key, model=model, **client_kwargs)

    def _build_client(self, **client_kwargs: Any) -> AsyncAzureOpenAI:
        client_kwargs.pop("base_url", None)
        client_kwargs.pop("organization", None)
        return AsyncAzureOpenAI(
            azure_endpoint=self._endpoint,
            api_version=self._api_version,
            **client_kwargs
        )
