"""Configuration management for lmchat."""

import os
import re
from typing import Any

import httpx
import yaml
from dotenv import load_dotenv

from lmchat.llm.models import CompletionDefaults, ServiceProfile
from lmchat.llm.registry import ServiceRegistry

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Map provider names to environment variable names
PROVIDER_KEY_MAP = {
    "openai": "OPENAI_API_KEY",
    "mlc": "MLC_AI_API_KEY",
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def expand_env(value: str) -> str:
    """Replace ``${NAME}`` references with environment values (unset -> "")."""
    return _ENV_PATTERN.sub(lambda match: os.getenv(match.group(1), ""), value)


class Configuration:
    """Manages configuration and environment variables for lmchat."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys and provider base URLs
        self.config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config(self.config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Configuration":
        """Build a configuration from an in-memory dictionary."""
        instance = cls.__new__(cls)
        cls.load_env()
        instance.config_path = None
        instance._config = config
        return instance

    @property
    def active_service(self) -> str:
        """Name of the provider selected under ``llm.active``."""
        return self._config.get("llm", {}).get("active", "openai")

    def get_service_registry(self) -> ServiceRegistry:
        """Build the service registry from ``llm.providers``.

        Returns:
            Registry with one ServiceProfile per configured provider.

        Raises:
            ValueError: If a provider lacks ``base_path`` or ``model``.
        """
        providers = self._config.get("llm", {}).get("providers", {})
        if not providers:
            raise ValueError(
                "llm.providers must define at least one provider in config.yaml"
            )

        profiles = {}
        for name, provider_config in providers.items():
            for key in ("base_path", "model"):
                if key not in provider_config:
                    raise ValueError(
                        f"llm.providers.{name}.{key} must be explicitly "
                        "configured in config.yaml"
                    )

            base_path = expand_env(str(provider_config["base_path"])).rstrip("/")
            options: dict[str, Any] = {
                "requires_key_validation": bool(
                    provider_config.get("requires_key_validation", True)
                ),
            }
            if "validation_endpoint" in provider_config:
                options["validation_endpoint"] = expand_env(
                    str(provider_config["validation_endpoint"])
                )

            if "completion_endpoint" in provider_config:
                profiles[name] = ServiceProfile(
                    name=name,
                    base_path=base_path,
                    model=provider_config["model"],
                    completion_endpoint=expand_env(
                        str(provider_config["completion_endpoint"])
                    ),
                    **options,
                )
            else:
                profiles[name] = ServiceProfile.from_base_path(
                    name, base_path, provider_config["model"], **options
                )

        return ServiceRegistry(profiles)

    def get_completion_defaults(self) -> CompletionDefaults:
        """Get fallback completion parameters from ``llm.defaults``.

        Raises:
            ValueError: If temperature or max_tokens are out of range.
        """
        defaults_config = self._config.get("llm", {}).get("defaults", {})
        fallback = CompletionDefaults()

        temperature = defaults_config.get("temperature", fallback.temperature)
        max_tokens = defaults_config.get("max_tokens", fallback.max_tokens)
        system_message = defaults_config.get(
            "system_message", fallback.system_message
        )

        if not isinstance(temperature, int | float) or not 0 <= temperature <= 2:
            raise ValueError("llm.defaults.temperature must be between 0 and 2")
        if not isinstance(max_tokens, int) or max_tokens < 1:
            raise ValueError("llm.defaults.max_tokens must be a positive integer")
        if not isinstance(system_message, str) or not system_message:
            raise ValueError("llm.defaults.system_message must be a non-empty string")

        return CompletionDefaults(
            temperature=float(temperature),
            max_tokens=max_tokens,
            system_message=system_message,
        )

    def api_key_for(self, service: str, *, required: bool = True) -> str:
        """Get the API key for ``service`` from the environment.

        Returns:
            The API key, or "" when it is absent and not required.

        Raises:
            ValueError: If the key is required but not set.
        """
        env_key = PROVIDER_KEY_MAP.get(service, f"{service.upper()}_API_KEY")
        api_key = os.getenv(env_key, "")
        if required and not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables "
                f"for provider '{service}'"
            )
        return api_key

    @property
    def llm_api_key(self) -> str:
        """Get the API key for the active LLM provider."""
        return self.api_key_for(self.active_service)

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client timeouts.

        Raises:
            ValueError: If a timeout is not positive.
        """
        http_config = self._config.get("llm", {}).get("http_client", {})
        result = {
            "connect_timeout": http_config.get("connect_timeout", 10.0),
            "read_timeout": http_config.get("read_timeout", 60.0),
            "write_timeout": http_config.get("write_timeout", 10.0),
            "pool_timeout": http_config.get("pool_timeout", 10.0),
        }
        for key, value in result.items():
            if value is not None and value <= 0:
                raise ValueError(f"llm.http_client.{key} must be positive")
        return result

    def get_http_timeout(self) -> httpx.Timeout:
        """Timeouts for the client's httpx.AsyncClient."""
        http_config = self.get_http_client_config()
        return httpx.Timeout(
            connect=http_config["connect_timeout"],
            read=http_config["read_timeout"],
            write=http_config["write_timeout"],
            pool=http_config["pool_timeout"],
        )

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Keyword arguments for ``configure_logging``.

        Raises:
            ValueError: If the level is not a standard logging level name.
        """
        logging_config = self._config.get("logging", {})
        level = str(logging_config.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of: {list(VALID_LOG_LEVELS)}"
            )
        return {
            "level": level,
            "colors": bool(logging_config.get("colors", True)),
        }
