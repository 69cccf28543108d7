"""Resolution, overriding and caching of runtime configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from reagent.config import DEFAULT_CONFIG_PATH, DEFAULT_SYS_PROMPT, Config

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "REAGENT_CONFIG"


class ConfigProvider:
    """
    Resolves where configuration comes from and hands out one validated instance.

    The JSON path is taken from the constructor, then from the ``REAGENT_CONFIG``
    environment variable, then from the default location. Overrides are applied on
    top of the loaded values and validated with the same rules.

    Args:
        path: Optional explicit path for the JSON config file.
        overrides: Field values that win over every other source.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._path = path
        self._overrides = dict(overrides or {})
        self._config: Optional[Config] = None

    def resolve_path(self) -> Path:
        """
        Returns the JSON config path that will be read.

        Returns:
            The explicit path, the environment path, or the default path.
        """
        if self._path is not None:
            return Path(self._path)
        from_env = os.environ.get(CONFIG_PATH_ENV)
        if from_env:
            return Path(from_env)
        return DEFAULT_CONFIG_PATH

    def load(self) -> Config:
        """
        Reads configuration from its sources and caches the result.

        Returns:
            A validated configuration object.

        Raises:
            pydantic.ValidationError: If loaded values or overrides are invalid.
        """
        path = self.resolve_path()
        config = Config.load(path)
        if self._overrides:
            values = config.model_dump()
            if config.sys_prompt == DEFAULT_SYS_PROMPT.format(name=config.agent_name):
                # Derived prompt; re-derive it from the overridden name.
                values.pop("sys_prompt")
            values.update(self._overrides)
            config = Config.model_validate(values)
        logger.debug(
            "Loaded configuration",
            extra={"config_path": str(path), "overrides": sorted(self._overrides)},
        )
        self._config = config
        return config

    def get(self) -> Config:
        """Returns the cached configuration, loading it on first use."""

        if self._config is None:
            return self.load()
        return self._config
