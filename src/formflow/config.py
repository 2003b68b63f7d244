"""
Configuration for formflow.

Handles environment variables, default settings and logging setup.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

from .registry import DEFAULT_CHOICE_OPTIONS


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default).lower()).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Engine-wide settings."""

    # Logging
    log_level: str = "WARNING"

    # Schema handling: when strict, unknown field types and condition
    # operators raise SchemaError instead of degrading with a warning
    strict_schema: bool = False

    # Injected into choice fields declared without options
    default_choice_options: Tuple[str, ...] = field(default=DEFAULT_CHOICE_OPTIONS)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create configuration from environment variables (and a .env file).

        Unset variables fall back to the class field defaults.
        """
        load_dotenv()
        _defaults = cls()

        options_env = os.getenv("FORMFLOW_DEFAULT_CHOICE_OPTIONS")
        if options_env:
            options = tuple(o.strip() for o in options_env.split(",") if o.strip())
        else:
            options = _defaults.default_choice_options

        return cls(
            log_level=os.getenv("FORMFLOW_LOG_LEVEL", _defaults.log_level).upper(),
            strict_schema=_env_flag("FORMFLOW_STRICT_SCHEMA", _defaults.strict_schema),
            default_choice_options=options or _defaults.default_choice_options,
        )


_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the current configuration, loading it from the environment once."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def update_config(**kwargs) -> EngineConfig:
    """Update configuration settings."""
    config = get_config()
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a basic stderr handler for the formflow logger hierarchy.

    Args:
        level: Level name; defaults to the configured log_level
    """
    level_name = (level or get_config().log_level).upper()
    logger = logging.getLogger("formflow")
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
