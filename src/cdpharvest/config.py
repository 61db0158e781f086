"""Configuration for cdpharvest, read from the environment and an optional .env file."""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cdpharvest.collector.views import CollectorSettings

load_dotenv()

logger = logging.getLogger(__name__)

PLACEHOLDER_PUBLICATION = 'YOUR_PUBLICATION_NAME'


def _get_number(env_var: str, default: float) -> float:
    """Parse a non-negative number from the environment, falling back to ``default``."""
    env_value = os.getenv(env_var)
    if env_value:
        try:
            parsed = float(env_value)
            if parsed < 0:
                return default
            return parsed
        except (ValueError, TypeError):
            logger.warning(f'Ignoring invalid value for {env_var}: {env_value!r}')

    return default


class EnvConfig(BaseSettings):
    """Environment variable configuration using pydantic-settings."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='allow'
    )

    # Target
    SUBSTACK_PUBLICATION: str = Field(default=PLACEHOLDER_PUBLICATION)
    OUTPUT_DIR: str = Field(default='./exports')

    # Browser connection
    CDP_HOST: str = Field(default='127.0.0.1')
    CDP_PORT: int = Field(default=9222)
    CDP_COMMAND_TIMEOUT: float = Field(default=30.0)

    # Collection policy
    CDPHARVEST_STALL_THRESHOLD: int = Field(default=5)
    CDPHARVEST_REVEAL_SETTLE: float = Field(default=1.5)
    CDPHARVEST_NAVIGATION_SETTLE: float = Field(default=5.0)

    # Logging
    CDPHARVEST_LOGGING_LEVEL: str = Field(default='info')
    CDP_LOGGING_LEVEL: str = Field(default='WARNING')


class Config:
    """Configuration facade.

    Re-reads environment variables on every access so tests and the CLI can
    override values at runtime.
    """

    _instance: 'Config | None' = None

    def __new__(cls) -> 'Config':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def SUBSTACK_PUBLICATION(self) -> str:
        return os.getenv('SUBSTACK_PUBLICATION', PLACEHOLDER_PUBLICATION)

    @property
    def OUTPUT_DIR(self) -> Path:
        return Path(os.getenv('OUTPUT_DIR', './exports')).expanduser()

    @property
    def CDP_HOST(self) -> str:
        return os.getenv('CDP_HOST', '127.0.0.1')

    @property
    def CDP_PORT(self) -> int:
        return int(_get_number('CDP_PORT', 9222))

    @property
    def CDP_COMMAND_TIMEOUT(self) -> float:
        return _get_number('CDP_COMMAND_TIMEOUT', 30.0)

    @property
    def STALL_THRESHOLD(self) -> int:
        return max(1, int(_get_number('CDPHARVEST_STALL_THRESHOLD', 5)))

    @property
    def REVEAL_SETTLE(self) -> float:
        return _get_number('CDPHARVEST_REVEAL_SETTLE', 1.5)

    @property
    def NAVIGATION_SETTLE(self) -> float:
        return _get_number('CDPHARVEST_NAVIGATION_SETTLE', 5.0)

    @property
    def LOGGING_LEVEL(self) -> str:
        return os.getenv('CDPHARVEST_LOGGING_LEVEL', 'info').lower()

    @property
    def CDP_LOGGING_LEVEL(self) -> str:
        return os.getenv('CDP_LOGGING_LEVEL', 'WARNING').upper()

    @property
    def is_publication_configured(self) -> bool:
        return bool(self.SUBSTACK_PUBLICATION) and self.SUBSTACK_PUBLICATION != PLACEHOLDER_PUBLICATION

    def collector_settings(self, **overrides: Any) -> CollectorSettings:
        """Build CollectorSettings from the environment; non-None overrides win."""
        values: dict[str, Any] = {
            'stall_threshold': self.STALL_THRESHOLD,
            'reveal_settle': self.REVEAL_SETTLE,
            'navigation_settle': self.NAVIGATION_SETTLE,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return CollectorSettings(**values)

    def load_config(self) -> dict[str, Any]:
        """Validated snapshot of the effective configuration.

        Unlike the properties, this goes through EnvConfig so malformed values
        raise a ValidationError instead of falling back to defaults.
        """
        env_config = EnvConfig()
        return {
            'publication': env_config.SUBSTACK_PUBLICATION,
            'output_dir': env_config.OUTPUT_DIR,
            'cdp': {
                'host': env_config.CDP_HOST,
                'port': env_config.CDP_PORT,
                'command_timeout': env_config.CDP_COMMAND_TIMEOUT,
            },
            'collector': CollectorSettings(
                stall_threshold=env_config.CDPHARVEST_STALL_THRESHOLD,
                reveal_settle=env_config.CDPHARVEST_REVEAL_SETTLE,
                navigation_settle=env_config.CDPHARVEST_NAVIGATION_SETTLE,
            ).model_dump(),
            'logging_level': env_config.CDPHARVEST_LOGGING_LEVEL.lower(),
            'cdp_logging_level': env_config.CDP_LOGGING_LEVEL.upper(),
        }


# Create singleton instance
CONFIG = Config()
