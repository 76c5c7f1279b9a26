"""
Application Configuration

All settings of the API server and the attention playground live in one
dataclass, so they are easy to print, override and test.

Classes:
    AppConfig: Server and playground settings
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = "TRANSFORMER_GUIDE_"


@dataclass
class AppConfig:
    """
    Configuration for the API server and the attention playground.

    Attributes:
        host: Interface the API server binds to
        port: Port the API server listens on
        log_level: Level name for the package logger ("DEBUG", "INFO", ...)
        min_heads: Smallest head count the playground form accepts
        max_heads: Largest head count the playground form accepts
        default_heads: Head count used when the form sends none
        min_temperature: Lowest temperature the form accepts
        max_temperature: Highest temperature the form accepts
        default_temperature: Temperature used when the form sends none
        default_sentence: Sentence pre-filled in the playground

    Environment variables (see from_env):
        TRANSFORMER_GUIDE_HOST, TRANSFORMER_GUIDE_PORT, TRANSFORMER_GUIDE_LOG_LEVEL,
        TRANSFORMER_GUIDE_MAX_HEADS, ... (upper-cased field names)
    """

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    min_heads: int = 1
    max_heads: int = 12
    default_heads: int = 4
    min_temperature: float = 0.1
    max_temperature: float = 2.0
    default_temperature: float = 1.0
    default_sentence: str = "The quick brown fox jumps over the lazy dog."

    def __post_init__(self):
        if not 1 <= self.min_heads <= self.default_heads <= self.max_heads:
            raise ValueError(
                "Head bounds must satisfy 1 <= min_heads <= default_heads <= max_heads, "
                f"got {self.min_heads}, {self.default_heads}, {self.max_heads}"
            )
        if not 0 < self.min_temperature <= self.default_temperature <= self.max_temperature:
            raise ValueError(
                "Temperature bounds must satisfy "
                "0 < min_temperature <= default_temperature <= max_temperature, "
                f"got {self.min_temperature}, {self.default_temperature}, "
                f"{self.max_temperature}"
            )
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in (0, 65536), got {self.port}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build a config from TRANSFORMER_GUIDE_* environment variables.

        Unset variables keep their defaults. Values are converted to the
        field's type.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            AppConfig instance

        Raises:
            ValueError: If a variable cannot be converted
        """
        environ = os.environ if environ is None else environ

        overrides = {}
        for config_field in fields(cls):
            key = ENV_PREFIX + config_field.name.upper()
            if key not in environ:
                continue

            raw_value = environ[key]
            field_type = config_field.type
            if field_type in (int, "int"):
                converter = int
            elif field_type in (float, "float"):
                converter = float
            else:
                converter = str

            try:
                overrides[config_field.name] = converter(raw_value)
            except ValueError as error:
                raise ValueError(f"Invalid value for {key}: {raw_value!r}") from error

        return cls(**overrides)
