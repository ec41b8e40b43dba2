"""Settings and model profile loading.

Everything the server needs is read once at startup into explicit objects
that are passed to the components that need them.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .llm.providers.azure import DEFAULT_API_VERSION
from .orchestrator import OrchestratorConfig
from .tools.geocode import DEFAULT_GEOCODE_URL, DEFAULT_USER_AGENT


class ModelProfile(BaseModel):
    """Model name, type and system prompt for a deployment.

    Attributes:
        model_name: Model (or Azure deployment) to call
        model_type: Free-form family tag, e.g. "chat" or "reasoning"
        system_prompt: Text of the system message seeding every conversation
    """

    model_config = ConfigDict(protected_namespaces=())

    model_name: str = Field(min_length=1)
    model_type: str = "chat"
    system_prompt: str = Field(min_length=1)

    @field_validator("model_name", "system_prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


def load_model_profile(path: str | Path) -> ModelProfile:
    """Load a model profile from a YAML file.

    Args:
        path: Path to a YAML mapping with model_name, model_type and
            system_prompt keys

    Returns:
        The validated profile

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"model config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    try:
        return ModelProfile.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"invalid model profile {path} ({fields})") from e


class Settings(BaseSettings):
    """Process settings, read from KAIYO_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="KAIYO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    llm_provider: Literal["openai", "azure", "deepseek"] = "openai"

    openai_api_key: str | None = None
    openai_base_url: str | None = None

    azure_openai_api_key: str | None = None
    azure_openai_endpoint: str | None = None
    azure_openai_api_version: str = DEFAULT_API_VERSION

    deepseek_api_key: str | None = None
    deepseek_base_url: str = "https://api.deepseek.com"

    model_config_path: Path | None = None
    model_name: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    max_planning_iterations: int = Field(default=3, ge=1)
    surface_planning_cutoff: bool = False

    stream_channel_capacity: int = Field(default=64, ge=1)
    disconnect_poll_interval: float = Field(default=0.25, gt=0.0)

    geocode_base_url: str = DEFAULT_GEOCODE_URL
    geocode_user_agent: str = DEFAULT_USER_AGENT
    geocode_timeout: float = Field(default=10.0, gt=0.0)
    geocode_max_concurrency: int = Field(default=2, ge=1)

    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    def load_profile(self) -> ModelProfile:
        """Model profile from ``model_config_path``, or from these settings.

        Raises:
            ConfigurationError: If the configured profile file is invalid
        """
        if self.model_config_path is not None:
            return load_model_profile(self.model_config_path)

        from .prompts import get_system_prompt
        return ModelProfile(model_name=self.model_name, system_prompt=get_system_prompt())

    def provider_config(self, profile: ModelProfile) -> dict[str, Any]:
        """Keyword arguments for ``create_llm_provider``.

        Raises:
            ConfigurationError: If the selected provider lacks credentials
        """
        if self.llm_provider == "openai":
            if not self.openai_api_key:
                raise ConfigurationError("KAIYO_OPENAI_API_KEY is required for the openai provider")
            return {
                "api_key": self.openai_api_key,
                "model": profile.model_name,
                "base_url": self.openai_base_url,
            }

        if self.llm_provider == "azure":
            if not self.azure_openai_api_key or not self.azure_openai_endpoint:
                raise ConfigurationError(
                    "KAIYO_AZURE_OPENAI_API_KEY and KAIYO_AZURE_OPENAI_ENDPOINT "
                    "are required for the azure provider"
                )
            return {
                "api_key": self.azure_openai_api_key,
                "endpoint": self.azure_openai_endpoint,
                "api_version": self.azure_openai_api_version,
                "model": profile.model_name,
            }

        if not self.deepseek_api_key:
            raise ConfigurationError("KAIYO_DEEPSEEK_API_KEY is required for the deepseek provider")
        return {
            "api_key": self.deepseek_api_key,
            "model": profile.model_name,
            "base_url": self.deepseek_base_url,
        }

    def orchestrator_config(self, profile: ModelProfile) -> OrchestratorConfig:
        """Build the orchestrator configuration for a profile."""
        from .prompts import get_extraction_instruction, get_narration_instruction

        return OrchestratorConfig(
            model=profile.model_name,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            max_planning_iterations=self.max_planning_iterations,
            surface_planning_cutoff=self.surface_planning_cutoff,
            narration_instruction=get_narration_instruction(),
            extraction_instruction=get_extraction_instruction(),
        )
