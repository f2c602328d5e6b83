"""Tests for the configuration system."""

from __future__ import annotations

import os

import pytest

from agent_workflows.config import (
    AnthropicConfig,
    LoggingConfig,
    OpenAIConfig,
    ProviderConfig,
    Settings,
    WorkflowDefaults,
    configure,
    get_settings,
    load_env,
)
from agent_workflows.config import settings as settings_module
from agent_workflows.logging import StructuredLogger


@pytest.fixture(autouse=True)
def reset_global_settings(monkeypatch):
    monkeypatch.setattr(settings_module, "_global_settings", None)


class TestProviderConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        config = OpenAIConfig()
        assert config.api_key == "sk-test"
        assert config.default_model == "gpt-4o-mini"
        assert config.timeout == 60.0

    def test_anthropic_max_tokens_default(self):
        assert AnthropicConfig().default_max_tokens == 4096

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"timeout": 0},
            {"max_retries": -1},
            {"default_temperature": 2.5},
            {"default_max_tokens": 0},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            ProviderConfig(**kwargs)


class TestWorkflowDefaults:
    def test_defaults(self):
        defaults = WorkflowDefaults()
        assert defaults.provider == "openai"
        assert defaults.max_steps == 5
        assert defaults.max_retries == 0
        assert defaults.quality_threshold == 90
        assert defaults.max_iterations == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"provider": "mystery"},
            {"max_steps": 0},
            {"retry_backoff": 0.5},
            {"timeout": -1},
            {"quality_threshold": 101},
            {"min_successful_agents": 0},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            WorkflowDefaults(**kwargs)


class TestLoggingConfig:
    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_build_logger(self):
        logger = LoggingConfig(level="DEBUG", format="text", logger_name="agent_workflows.cfg").build_logger()
        assert isinstance(logger, StructuredLogger)
        assert logger.name == "agent_workflows.cfg"
        assert logger.json_output is False


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WORKFLOW_OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("WORKFLOW_ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
        monkeypatch.setenv("WORKFLOW_PROVIDER", "Anthropic")
        monkeypatch.setenv("WORKFLOW_MAX_RETRIES", "2")
        monkeypatch.setenv("WORKFLOW_TIMEOUT", "30")
        monkeypatch.setenv("WORKFLOW_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.openai.api_key == "sk-env"
        assert settings.anthropic.default_model == "claude-3-5-haiku-latest"
        assert settings.workflow.provider == "anthropic"
        assert settings.workflow.max_retries == 2
        assert settings.workflow.timeout == 30.0
        assert settings.logging.level == "DEBUG"

    def test_from_env_validates(self, monkeypatch):
        monkeypatch.setenv("WORKFLOW_MAX_STEPS", "0")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_from_dict(self):
        settings = Settings.from_dict(
            {
                "openai": {"api_key": "sk-dict", "timeout": 10},
                "workflow": {"max_iterations": 3, "quality_threshold": 80},
                "logging": {"format": "text"},
            }
        )
        assert settings.openai.api_key == "sk-dict"
        assert settings.openai.timeout == 10
        assert settings.workflow.max_iterations == 3
        assert settings.logging.format == "text"

    def test_from_dict_schema_error(self):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            Settings.from_dict({"workflow": {"max_steps": "five"}})

    def test_from_dict_unknown_section(self):
        with pytest.raises(ValueError):
            Settings.from_dict({"database": {}})

    def test_from_toml_file(self, tmp_path):
        path = tmp_path / "workflows.toml"
        path.write_text('[workflow]\nprovider = "google"\nmax_retries = 1\n')

        settings = Settings.from_file(path)

        assert settings.workflow.provider == "google"
        assert settings.workflow.max_retries == 1

    def test_from_yaml_file(self, tmp_path):
        pytest.importorskip("yaml")
        path = tmp_path / "workflows.yaml"
        path.write_text("logging:\n  level: WARNING\n")

        assert Settings.from_file(path).logging.level == "WARNING"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / "nope.toml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "workflows.ini"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported"):
            Settings.from_file(path)

    def test_provider_config_lookup(self):
        settings = Settings()
        assert settings.provider_config("openai") is settings.openai
        assert settings.provider_config("workflow") is None
        assert settings.provider_config("custom") is None

    def test_to_dict(self):
        data = Settings().to_dict()
        assert set(data) == {"openai", "anthropic", "google", "workflow", "logging"}


class TestGlobalSettings:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_configure_with_settings(self):
        settings = Settings(workflow=WorkflowDefaults(max_iterations=2))
        assert configure(settings) is settings
        assert get_settings().workflow.max_iterations == 2

    def test_configure_section_override(self):
        configure(logging=LoggingConfig(level="ERROR"))
        assert get_settings().logging.level == "ERROR"


class TestLoadEnv:
    def test_loads_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AGENT_WORKFLOWS_TEST_VAR", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("AGENT_WORKFLOWS_TEST_VAR=hello\n")

        assert load_env(str(env_file)) is True

        assert os.environ["AGENT_WORKFLOWS_TEST_VAR"] == "hello"
        monkeypatch.delenv("AGENT_WORKFLOWS_TEST_VAR")
