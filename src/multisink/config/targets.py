"""
Target Defaults Configuration.

Values applied by the target normalizer when a descriptor leaves a shared
field unspecified.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from multisink.levels import ErrorPolicy, Level, RenderStyle


class TargetDefaultsSettings(BaseSettings):
    """
    Target defaults.
    Prefix: MULTISINK_TARGET_
    """

    model_config = SettingsConfigDict(
        env_prefix="MULTISINK_TARGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    log_level: str = Field(default=Level.TRACE.name, description="Minimum level accepted by a target")
    style: RenderStyle = Field(default=RenderStyle.TEXT, description="Render style (JSON or TEXT)")
    error_policy: ErrorPolicy = Field(default=ErrorPolicy.LOG, description="Delivery failure policy")
    color: bool = Field(default=False, description="ANSI-style text output")
    uniform_length: bool = Field(default=False, description="Pad level and source columns")
    full_timestamps: bool = Field(default=False, description="ISO-8601 timestamps instead of HH:MM:SS.mmm")
    https: bool = Field(default=True, description="Default transport for POST targets")
    http_timeout: Optional[float] = Field(
        default=None,
        description="Timeout in seconds for POST targets; unset means no timeout",
    )

    @property
    def level(self) -> Level:
        return Level.parse(self.log_level)
