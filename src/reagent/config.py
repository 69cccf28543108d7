from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    EnvSettingsSource,
    JsonConfigSettingsSource,
)


DEFAULT_CONFIG_PATH = Path(".reagent") / "config.json"
DEFAULT_SYS_PROMPT = "You are a helpful assistant named {name}."

LongTermMemoryMode = Literal["agent_control", "static_control", "both"]


class Config(BaseSettings):
    """
    Runtime configuration loaded from environment variables, .env, and JSON.
    """

    openai_api_key: Optional[SecretStr] = Field(
        default=None, description="OpenAI API key used for LLM access."
    )
    api_base: Optional[str] = Field(
        default=None, description="Optional OpenAI-compatible base URL."
    )
    model_name: str = Field(
        default="gpt-4o", description="Default model name for the agent runtime."
    )
    temperature: float = Field(default=0.7, description="Sampling temperature.")
    stream: bool = Field(
        default=False, description="Stream partial model output while reasoning."
    )
    model_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts per model call, including the first, for transient errors.",
    )
    agent_name: str = Field(default="Friday", description="Name of the agent.")
    sys_prompt: Optional[str] = Field(
        default=None, description="System prompt; defaults to a generic assistant prompt."
    )
    max_iters: int = Field(
        default=10, ge=1, description="Maximum reasoning/acting iterations per reply."
    )
    parallel_tool_calls: bool = Field(
        default=False, description="Run the actions of one reasoning step concurrently."
    )
    long_term_memory_mode: LongTermMemoryMode = Field(
        default="both", description="How long-term memory is consulted and recorded."
    )
    enable_meta_tool: bool = Field(
        default=False, description="Let the model reset its equipped tools."
    )
    finish_function_name: str = Field(
        default="generate_response",
        description="Name of the reserved completion action.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
        protected_namespaces=(),
    )

    @model_validator(mode="after")
    def _apply_defaults(self) -> "Config":
        """
        Fills derived defaults and validates cross-field constraints.

        Returns:
            The validated configuration instance.
        """
        if self.sys_prompt is None:
            self.sys_prompt = DEFAULT_SYS_PROMPT.format(name=self.agent_name)
        if not self.finish_function_name.strip():
            raise ValueError("Completion action name must not be empty.")
        return self

    @staticmethod
    def _secret_to_str(secret: Optional[SecretStr]) -> Optional[str]:
        """Return the underlying secret value if present."""

        if secret is None:
            return None
        return secret.get_secret_value()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """
        Loads configuration from a JSON file when present.

        Args:
            path: Optional override path for the JSON config file.

        Returns:
            A validated configuration object.
        """
        config_path = path or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return cls()

        json_source = JsonConfigSettingsSource(cls, json_file=config_path)
        dotenv_source = DotEnvSettingsSource(cls)
        env_source = EnvSettingsSource(cls)
        merged: dict[str, object] = {}
        merged.update(json_source())
        merged.update(dotenv_source())
        merged.update(env_source())
        return cls.model_validate(merged)

    def get_openai_api_key(self) -> Optional[str]:
        """
        Returns the OpenAI API key for runtime usage.

        Returns:
            The OpenAI API key or None if unset.
        """
        return self._secret_to_str(self.openai_api_key)

    def get_model_name(self) -> str:
        """
        Returns the configured model name.

        Returns:
            The model name string.
        """
        return self.model_name

    def get_sys_prompt(self) -> str:
        """Returns the effective system prompt."""

        return self.sys_prompt or DEFAULT_SYS_PROMPT.format(name=self.agent_name)
