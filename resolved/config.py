"""Configuration model and validation."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

DEFAULT_STALE_KEYWORDS = (
    "TODO",
    "FIXME",
    "HACK",
    "XXX",
    "WORKAROUND",
    "remove when",
    "remove after",
    "remove once",
    "blocked by",
    "waiting for",
    "until",
)


class IconConfig(BaseModel):
    """Icons used when formatting issue summaries."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    stale: str = Field("⚠ ", strict=True, description="Closed item still referenced")
    closed: str = Field("✓ ", strict=True, description="Any item that is not open")
    open: str = Field(" ", strict=True, description="Open item")


class ResolvedConfig(BaseModel):
    """Validated configuration for a resolved session."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = Field(True, strict=True)
    cache_ttl: int = Field(
        300, strict=True, gt=0, description="Seconds a fetched state stays valid"
    )
    debounce_ms: int = Field(
        500, strict=True, ge=0, description="Delay before re-scanning an edited buffer"
    )
    stale_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STALE_KEYWORDS),
        description="Words that mark a reference as possibly stale",
    )
    keyword_case_sensitive: bool = Field(False, strict=True)
    icons: IconConfig = Field(default_factory=IconConfig)
    batch_size: int = Field(20, strict=True, gt=0)
    progress_throttle_ms: int = Field(500, strict=True, ge=0)
    max_concurrent_fetches: int = Field(8, strict=True, gt=0)

    @property
    def progress_throttle_seconds(self) -> float:
        return self.progress_throttle_ms / 1000


def setup_config(opts: Mapping[str, Any] | None = None) -> ResolvedConfig:
    """Validate user options and return the effective configuration.

    Args:
        opts: User supplied options; ``None`` or an empty mapping gives defaults

    Returns:
        Validated ResolvedConfig

    Raises:
        ConfigError: If any option has an invalid type or value
    """
    if opts is None:
        opts = {}
    if not isinstance(opts, Mapping):
        raise ConfigError(
            f"Configuration must be a mapping, got {type(opts).__name__}"
        )

    try:
        return ResolvedConfig.model_validate(dict(opts))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
