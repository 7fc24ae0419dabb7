"""
Configuration for the client notes parser.

Two layers:
- Settings: process-wide values read from the environment (NOTES_PARSER_*) or a .env file.
- ParserConfig: per-engine options, validated when the engine is constructed.
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notes_parser.core.patterns import FIELD_VARIATIONS


class ConfigurationError(ValueError):
    """Raised at construction time when caller-supplied configuration is malformed."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTES_PARSER_", env_file=".env", extra="ignore")

    app_name: str = "Client Notes Parser"
    log_level: str = "INFO"

    confidence_threshold: float = 0.6
    enable_fuzzy_matching: bool = True
    enable_caching: bool = True
    client_type: Optional[str] = None

    cache_max_entries: int = 100
    cache_ttl_hours: float = 24.0
    cache_min_confidence: float = 0.9
    parse_timeout_seconds: float = 10.0

    pdf_x_tolerances: List[float] = [1.5, 2.0, 2.5, 3.0]
    pdf_line_tolerance: float = 3.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


class ParserConfig(BaseModel):
    enable_fuzzy_matching: bool = True
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    enable_caching: bool = True
    client_type: Optional[str] = None
    custom_patterns: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Field name -> extra label synonyms for that field",
    )

    @field_validator("custom_patterns")
    @classmethod
    def _known_fields_only(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        unknown = sorted(set(value) - set(FIELD_VARIATIONS))
        if unknown:
            raise ValueError(f"custom_patterns names unknown fields: {', '.join(unknown)}")
        return value

    @field_validator("client_type")
    @classmethod
    def _normalize_client_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return value or None

    @classmethod
    def build(cls, **options) -> "ParserConfig":
        """Validate options, converting pydantic errors into ConfigurationError."""
        try:
            return cls(**options)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ParserConfig":
        settings = settings or get_settings()
        return cls.build(
            enable_fuzzy_matching=settings.enable_fuzzy_matching,
            confidence_threshold=settings.confidence_threshold,
            enable_caching=settings.enable_caching,
            client_type=settings.client_type,
        )
