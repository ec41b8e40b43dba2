"""Unit tests for settings, model profiles and prompts."""
import os

import pytest

from kaiyo.config import ModelProfile, Settings, load_model_profile
from kaiyo.errors import ConfigurationError
from kaiyo.prompts import clear_cache, get_narration_instruction, get_system_prompt, load_prompt
from kaiyo.runtime import build_runtime


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test in an empty directory with no KAIYO_* variables."""
    for key in [k for k in os.environ if k.startswith("KAIYO_")]:
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    clear_cache()
    yield
    clear_cache()


class TestModelProfile:
    """Tests for model profile loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text(
            "model_name: gpt-4o\n"
            "model_type: chat\n"
            "system_prompt: |\n"
            "  You plan trips.\n"
        )

        profile = load_model_profile(path)

        assert profile == ModelProfile(model_name="gpt-4o", model_type="chat", system_prompt="You plan trips.")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_model_profile(tmp_path / "missing.yaml")

    def test_missing_model_name(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text("system_prompt: hi\n")

        with pytest.raises(ConfigurationError, match="model_name"):
            load_model_profile(path)

    def test_blank_system_prompt(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text("model_name: gpt-4o\nsystem_prompt: '   '\n")

        with pytest.raises(ConfigurationError, match="system_prompt"):
            load_model_profile(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_model_profile(path)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.llm_provider == "openai"
        assert settings.max_planning_iterations == 3
        assert settings.azure_openai_api_version == "2024-08-01-preview"
        assert settings.geocode_base_url == "https://nominatim.openstreetmap.org/search"

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("KAIYO_LLM_PROVIDER", "azure")
        monkeypatch.setenv("KAIYO_MAX_PLANNING_ITERATIONS", "5")

        settings = Settings(_env_file=None)

        assert settings.llm_provider == "azure"
        assert settings.max_planning_iterations == 5

    def test_reads_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text("KAIYO_MODEL_NAME=gpt-4.1-mini\n")
        assert Settings().model_name == "gpt-4.1-mini"

    def test_profile_falls_back_to_packaged_prompt(self):
        profile = Settings(_env_file=None, model_name="gpt-4o").load_profile()

        assert profile.model_name == "gpt-4o"
        assert profile.system_prompt == get_system_prompt()

    def test_orchestrator_config(self):
        settings = Settings(_env_file=None, max_planning_iterations=2, surface_planning_cutoff=True)
        config = settings.orchestrator_config(settings.load_profile())

        assert config.max_planning_iterations == 2
        assert config.surface_planning_cutoff is True
        assert config.narration_instruction == get_narration_instruction()

    def test_missing_credentials(self):
        settings = Settings(_env_file=None, llm_provider="azure", azure_openai_api_key="key")

        with pytest.raises(ConfigurationError, match="ENDPOINT"):
            build_runtime(settings)

    def test_azure_provider_config(self):
        settings = Settings(
            _env_file=None,
            llm_provider="azure",
            azure_openai_api_key="key",
            azure_openai_endpoint="https://example.openai.azure.com",
        )
        config = settings.provider_config(settings.load_profile())

        assert config["endpoint"] == "https://example.openai.azure.com"
        assert config["api_version"] == "2024-08-01-preview"


class TestPrompts:
    """Tests for prompt loading."""

    def test_packaged_prompts_exist(self):
        for name in ("system", "narrate", "extract"):
            assert load_prompt(name)

    def test_working_directory_override(self, tmp_path):
        (tmp_path / "prompts").mkdir()
        (tmp_path / "prompts" / "narrate.txt").write_text("Custom narration.\n")

        assert get_narration_instruction() == "Custom narration."

    def test_unknown_prompt(self):
        with pytest.raises(FileNotFoundError):
            load_prompt("does-not-exist")
