"""Environment-based configuration for the comparison driver."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

from scopecodecs.codecs import CANDIDATE_CODECS, REFERENCE_CODECS
from scopecodecs.constants import REFERENCE_CODEC_KEY, SizesMode

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and SCOPECODECS_* environment variables."""

    # Logging
    log_level: str = "WARNING"

    # Candidate codecs compared against the reference, in report order
    codecs: Annotated[list[str], NoDecode] = []

    # Size report
    sizes: SizesMode = SizesMode.SCOPES
    sizes_reference: str = REFERENCE_CODEC_KEY

    # Round-trip every candidate through its own decoder
    verify: bool = False

    @field_validator("codecs", mode="before")
    @classmethod
    def _parse_codecs(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("codecs")
    @classmethod
    def _validate_codecs(cls, v: list[str]) -> list[str]:
        unknown = [c for c in v if c not in CANDIDATE_CODECS]
        if unknown:
            raise ValueError(
                f"Unknown codec(s): {', '.join(unknown)}. "
                f"Valid: {', '.join(CANDIDATE_CODECS)}"
            )
        seen: set[str] = set()
        dupes: list[str] = []
        for c in v:
            if c in seen:
                dupes.append(c)
            seen.add(c)
        if dupes:
            logger.warning(
                "Duplicate codecs in SCOPECODECS_CODECS: %s",
                ", ".join(dupes),
            )
        return v

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f"Unknown log level '{v}'")
        return v.upper()

    @field_validator("sizes_reference")
    @classmethod
    def _validate_sizes_reference(cls, v: str) -> str:
        if v not in REFERENCE_CODECS:
            raise ValueError(
                "Valid values for 'sizes_reference' are: "
                f"{', '.join(REFERENCE_CODECS)}"
            )
        return v

    @model_validator(mode="after")
    def _reference_requires_map_sizes(self) -> Self:
        if (
            self.sizes is SizesMode.SCOPES
            and self.sizes_reference != REFERENCE_CODEC_KEY
        ):
            raise ValueError(
                f"sizes_reference='{self.sizes_reference}' requires sizes='map'"
            )
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SCOPECODECS_",
        "extra": "ignore",
    }
