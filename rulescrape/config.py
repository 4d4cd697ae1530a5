"""Configuration for extraction using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RulesSettings(BaseSettings):
    """Settings for loading extraction rules."""

    model_config = SettingsConfigDict(
        env_prefix="RULES_",
    )

    rules_file: str | None = Field(
        default=None,
        description="Path to a YAML or JSON rules file",
    )

    ruleset: str = Field(
        default="default",
        description="Name of the ruleset to load from the rules file",
    )


class DocumentSettings(BaseSettings):
    """Settings for reading documents."""

    model_config = SettingsConfigDict(
        env_prefix="DOCUMENT_",
    )

    encoding: str = Field(
        default="utf-8",
        description="Encoding of HTML documents",
    )


class BatchSettings(BaseSettings):
    """Settings for extracting many documents."""

    model_config = SettingsConfigDict(
        env_prefix="BATCH_",
    )

    workers: int = Field(
        default=4,
        ge=1,
        description="Number of worker threads running independent extractions",
    )

    glob: str = Field(
        default="*.html",
        description="Glob pattern selecting documents inside a directory",
    )


class ExtractionSettings(BaseSettings):
    """Global settings for the whole extraction pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="RULESCRAPE_",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)
    document: DocumentSettings = Field(default_factory=DocumentSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)


# Global settings instance that can be accessed throughout the application
_settings: ExtractionSettings | None = None


def get_settings() -> ExtractionSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ExtractionSettings()
    return _settings


def set_settings(settings: ExtractionSettings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings
