"""Wiring of settings into a ready-to-use set of components."""

from dataclasses import dataclass

import httpx
from loguru import logger

from .config import ModelProfile, Settings
from .conversation import ConversationStore, create_conversation_store
from .llm import LLMProvider, create_llm_provider
from .orchestrator import ChatOrchestrator
from .tools import Geocoder, SaveItineraryTool, ToolRegistry, create_default_registry


@dataclass
class ChatRuntime:
    """Everything a server or CLI session needs to run turns."""

    settings: Settings
    profile: ModelProfile
    llm: LLMProvider
    registry: ToolRegistry
    geocoder: Geocoder
    orchestrator: ChatOrchestrator
    store: ConversationStore

    async def aclose(self) -> None:
        """Close the provider client and the geocoding connection pool."""
        await self.geocoder.aclose()
        await self.llm.close()


def build_runtime(
    settings: Settings,
    llm: LLMProvider | None = None,
    http_client: httpx.AsyncClient | None = None
) -> ChatRuntime:
    """Build all components from settings.

    Args:
        settings: Process settings
        llm: Optional provider to use instead of the configured one
        http_client: Optional HTTP client for geocoding requests

    Returns:
        The assembled runtime

    Raises:
        ConfigurationError: If the model profile or provider credentials
            are missing or invalid
    """
    profile = settings.load_profile()
    if llm is None:
        llm = create_llm_provider(settings.llm_provider, **settings.provider_config(profile))

    registry, geocoder = create_default_registry(
        geocode_base_url=settings.geocode_base_url,
        geocode_user_agent=settings.geocode_user_agent,
        geocode_timeout=settings.geocode_timeout,
        geocode_max_concurrency=settings.geocode_max_concurrency,
        http_client=http_client,
    )
    orchestrator = ChatOrchestrator(
        llm=llm,
        tools=registry,
        extraction_tool=SaveItineraryTool(),
        config=settings.orchestrator_config(profile),
    )
    store = create_conversation_store(
        "memory",
        model=profile.model_name,
        system_prompt=profile.system_prompt,
    )

    logger.info(
        f"Runtime ready: provider={settings.llm_provider} model={profile.model_name} "
        f"tools={registry.names}"
    )
    return ChatRuntime(
        settings=settings,
        profile=profile,
        llm=llm,
        registry=registry,
        geocoder=geocoder,
        orchestrator=orchestrator,
        store=store,
    )
