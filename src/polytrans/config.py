"""
Configuration management for polytrans.
Uses Pydantic for type-safe configuration with YAML file support.

This is the settings collaborator of the core: API keys, the routing plan and
the routing depth are read from here and handed to the router as plain values.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from .languages import AUTO_EXPLANATION_LANGUAGE
from .providers.base import ProviderType
from .router import MAX_ROUTING_STEPS, RoutingPlan, RoutingStep


class ApiKeys(BaseModel):
    """Per-provider API keys. An empty key means the provider is not configured."""
    model_config = ConfigDict(extra="ignore")

    groq: str = ""
    gemini: str = ""
    cerebras: str = ""
    openai: str = ""
    grok: str = ""

    def as_mapping(self) -> Dict[ProviderType, str]:
        return {provider: getattr(self, provider.value) for provider in ProviderType}

    def configured(self) -> List[str]:
        return [provider.value for provider, key in self.as_mapping().items() if key.strip()]


class RoutingStepConfig(BaseModel):
    """One routing step as written in the config file."""
    provider: ProviderType
    model: Optional[str] = None

    def to_step(self) -> RoutingStep:
        return RoutingStep(self.provider, self.model)


def _default_routing_steps() -> List[RoutingStepConfig]:
    return [
        RoutingStepConfig(provider=ProviderType.GEMINI, model="gemini-2.5-flash"),
        RoutingStepConfig(provider=ProviderType.GROQ, model="llama-3.3-70b-versatile"),
        RoutingStepConfig(provider=ProviderType.OPENAI, model="gpt-4o"),
        RoutingStepConfig(provider=ProviderType.GROK, model="grok-beta"),
        RoutingStepConfig(provider=ProviderType.CEREBRAS, model="gpt-oss-120b"),
    ]


class AppConfig(BaseSettings):
    """Main application configuration."""
    model_config = SettingsConfigDict(
        env_prefix="POLYTRANS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Server configuration
    port: int = 8320
    debug: bool = False

    # Outbound HTTP
    proxy_url: Optional[str] = Field(default=None, alias="proxy-url")
    translation_timeout: float = Field(default=30.0, gt=0, alias="translation-timeout")
    analysis_timeout: float = Field(default=60.0, gt=0, alias="analysis-timeout")

    # Model behaviour
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    primary_provider: ProviderType = Field(default=ProviderType.GEMINI, alias="primary-provider")
    custom_endpoint: Optional[str] = Field(default=None, alias="custom-endpoint")
    explanation_language: str = Field(
        default=AUTO_EXPLANATION_LANGUAGE, alias="explanation-language"
    )

    # Provider keys and routing
    api_keys: ApiKeys = Field(default_factory=ApiKeys, alias="api-keys")
    routing_steps: List[RoutingStepConfig] = Field(
        default_factory=_default_routing_steps, alias="routing-steps"
    )
    routing_count: int = Field(default=1, ge=1, le=MAX_ROUTING_STEPS, alias="routing-count")

    @field_validator("custom_endpoint", mode="before")
    @classmethod
    def blank_endpoint_is_none(cls, v: Any) -> Any:
        """Treat a blank endpoint as unset."""
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("routing_steps")
    @classmethod
    def limit_routing_steps(cls, v: List[RoutingStepConfig]) -> List[RoutingStepConfig]:
        if len(v) > MAX_ROUTING_STEPS:
            raise ValueError(f"At most {MAX_ROUTING_STEPS} routing steps are supported")
        return v

    @model_validator(mode="after")
    def ensure_routing_plan(self) -> "AppConfig":
        """An empty plan falls back to the primary provider with its default model."""
        if not self.routing_steps:
            self.routing_steps = [RoutingStepConfig(provider=self.primary_provider)]
        return self

    @classmethod
    def from_file(cls, config_file: str) -> "AppConfig":
        """Load configuration from a YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f)

        if not yaml_config:
            yaml_config = {}

        return cls(**yaml_config)

    def save_to_file(self, config_file: str) -> None:
        """Save configuration to a YAML file."""
        config_path = Path(config_file)

        config_dict = self.model_dump(by_alias=True, exclude_none=True, mode="json")

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def routing_plan(self) -> RoutingPlan:
        return RoutingPlan(tuple(step.to_step() for step in self.routing_steps))

    def routing_depth(self) -> int:
        """Configured depth, clamped to the plan length."""
        return max(1, min(self.routing_count, len(self.routing_steps)))

    def endpoint_overrides(self) -> Dict[ProviderType, str]:
        """The custom endpoint only applies to the primary provider."""
        if not self.custom_endpoint:
            return {}
        return {self.primary_provider: self.custom_endpoint}

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not (1 <= self.port <= 65535):
            errors.append(f"Port {self.port} is out of valid range (1-65535)")

        if self.routing_count > len(self.routing_steps):
            errors.append(
                f"Routing count {self.routing_count} exceeds the {len(self.routing_steps)} configured steps"
            )

        active = self.routing_plan().effective_steps(self.routing_depth())
        if not any(getattr(self.api_keys, step.provider.value).strip() for step in active):
            errors.append("No API key is configured for any provider in the active routing steps")

        if self.custom_endpoint and not self.custom_endpoint.startswith(("http://", "https://")):
            errors.append(f"Custom endpoint is not an http(s) URL: {self.custom_endpoint}")

        return errors


# Global configuration instance, used by the HTTP server only
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load configuration from file or environment."""
    global _config

    config_file = config_file or os.environ.get("POLYTRANS_CONFIG_FILE")

    if config_file:
        _config = AppConfig.from_file(config_file)
    else:
        config_locations = [
            "config.yaml",
            "config/config.yaml",
            os.path.expanduser("~/.polytrans/config.yaml"),
        ]

        for location in config_locations:
            if Path(location).exists():
                _config = AppConfig.from_file(location)
                break
        else:
            _config = AppConfig()

    errors = _config.validate_config()
    if errors:
        print("Configuration warnings:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)

    return _config


def reload_config(config_file: Optional[str] = None) -> AppConfig:
    """Reload configuration from file."""
    global _config
    _config = None
    return load_config(config_file)
