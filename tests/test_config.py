"""Tests for application configuration."""

import pytest
from pydantic import ValidationError
import yaml

from conftest import make_config
from polytrans.config import AppConfig, get_config, load_config, reload_config
from polytrans.providers import ProviderType
from polytrans.router import RoutingStep


class TestAppConfigDefaults:
    """Defaults mirror the desktop client's settings."""

    def test_defaults(self):
        config = AppConfig()
        assert config.port == 8320
        assert config.temperature == 0.7
        assert config.translation_timeout == 30.0
        assert config.analysis_timeout == 60.0
        assert config.primary_provider is ProviderType.GEMINI
        assert config.explanation_language == "auto"
        assert config.routing_count == 1
        assert config.api_keys.configured() == []

    def test_default_routing_plan(self):
        plan = AppConfig().routing_plan()
        assert [step.provider for step in plan.steps] == [
            ProviderType.GEMINI,
            ProviderType.GROQ,
            ProviderType.OPENAI,
            ProviderType.GROK,
            ProviderType.CEREBRAS,
        ]
        assert plan.steps[0] == RoutingStep(ProviderType.GEMINI, "gemini-2.5-flash")


class TestAppConfigValidation:
    """Field validation."""

    @pytest.mark.parametrize("temperature", [-0.1, 2.1])
    def test_temperature_bounds(self, temperature):
        with pytest.raises(ValidationError):
            AppConfig(temperature=temperature)

    @pytest.mark.parametrize("count", [0, 6])
    def test_routing_count_bounds(self, count):
        with pytest.raises(ValidationError):
            make_config(routing_count=count)

    def test_too_many_steps(self):
        with pytest.raises(ValidationError):
            make_config(steps=[{"provider": "gemini"}] * 6)

    def test_unknown_provider(self):
        with pytest.raises(ValidationError):
            make_config(steps=[{"provider": "deepl"}])

    def test_empty_plan_uses_primary_provider(self):
        config = make_config(steps=[], **{"primary-provider": "groq"})
        assert config.routing_plan().steps == (RoutingStep(ProviderType.GROQ),)

    def test_blank_custom_endpoint(self):
        assert make_config(**{"custom-endpoint": "  "}).custom_endpoint is None

    def test_routing_depth_is_clamped(self):
        config = make_config(steps=[{"provider": "groq"}, {"provider": "openai"}], routing_count=4)
        assert config.routing_depth() == 2

    def test_endpoint_override_applies_to_primary_only(self):
        config = make_config(
            **{"primary-provider": "openai", "custom-endpoint": "http://localhost:1234/v1/chat/completions"}
        )
        assert config.endpoint_overrides() == {ProviderType.OPENAI: "http://localhost:1234/v1/chat/completions"}
        assert make_config().endpoint_overrides() == {}

    def test_validate_config(self):
        config = make_config(
            keys={"groq": "q"},
            steps=[{"provider": "gemini"}],
            routing_count=3,
            **{"custom-endpoint": "localhost:1234"},
        )
        errors = config.validate_config()
        assert any("Routing count" in e for e in errors)
        assert any("No API key" in e for e in errors)
        assert any("Custom endpoint" in e for e in errors)

    def test_valid_config_has_no_errors(self):
        assert make_config(keys={"gemini": "g"}).validate_config() == []


class TestConfigFiles:
    """YAML loading and saving."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "port": 9000,
                    "temperature": 0.2,
                    "primary-provider": "groq",
                    "explanation-language": "english",
                    "api-keys": {"groq": "gsk-test", "openai": ""},
                    "routing-steps": [
                        {"provider": "groq", "model": "llama-3.1-8b-instant"},
                        {"provider": "openai"},
                    ],
                    "routing-count": 2,
                }
            ),
            encoding="utf-8",
        )

        config = AppConfig.from_file(str(path))

        assert config.port == 9000
        assert config.primary_provider is ProviderType.GROQ
        assert config.explanation_language == "english"
        assert config.api_keys.configured() == ["groq"]
        assert config.routing_depth() == 2
        assert config.routing_plan().steps[0].model == "llama-3.1-8b-instant"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert AppConfig.from_file(str(path)).port == 8320

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.from_file(str(tmp_path / "missing.yaml"))

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        config = make_config(keys={"openai": "sk"}, routing_count=2, temperature=1.1)

        config.save_to_file(str(path))
        saved = yaml.safe_load(path.read_text(encoding="utf-8"))
        reloaded = AppConfig.from_file(str(path))

        assert saved["routing-count"] == 2
        assert saved["api-keys"]["openai"] == "sk"
        assert reloaded.temperature == 1.1
        assert reloaded.routing_plan() == config.routing_plan()


class TestGlobalConfig:
    """Process-wide configuration used by the server."""

    def test_load_and_reload(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("port: 9100\n", encoding="utf-8")

        assert load_config(str(path)).port == 9100
        assert get_config().port == 9100
        # No keys configured: reported as a warning, not an error
        assert "No API key" in capsys.readouterr().err

        path.write_text("port: 9200\n", encoding="utf-8")
        assert reload_config(str(path)).port == 9200
        assert get_config().port == 9200

    def test_environment_file_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("routing-count: 3\n", encoding="utf-8")
        monkeypatch.setenv("POLYTRANS_CONFIG_FILE", str(path))

        assert load_config().routing_count == 3

    def test_falls_back_to_defaults(self):
        assert load_config().port == 8320
