"""
multisink Configuration Module.

Nested settings: each concern is a sub-settings class with its own
environment variable prefix.

Usage:
    from multisink.config import settings

    settings.diagnostics.level     # DiagnosticsLevel.WARNING
    settings.targets.error_policy  # ErrorPolicy.LOG
"""

from functools import cached_property

from pydantic_settings import BaseSettings, SettingsConfigDict

from .diagnostics import DiagnosticsFormat, DiagnosticsLevel, DiagnosticsSettings
from .targets import TargetDefaultsSettings


class Settings(BaseSettings):
    """Composite settings aggregating the diagnostics and target-default domains."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @cached_property
    def diagnostics(self) -> DiagnosticsSettings:
        return DiagnosticsSettings()

    @cached_property
    def targets(self) -> TargetDefaultsSettings:
        return TargetDefaultsSettings()


# Singleton instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "DiagnosticsFormat",
    "DiagnosticsLevel",
    "DiagnosticsSettings",
    "TargetDefaultsSettings",
]
