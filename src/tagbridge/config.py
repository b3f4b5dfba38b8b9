from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tagbridge.model import PictureType


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING")  # DEBUG, INFO, WARNING, ERROR
    # Message format; the rich handler adds its own time and level columns
    format: str = Field(default="%(message)s")
    hash_paths: bool = Field(default=False)


class WriteConfig(BaseModel):
    """Tag write configuration."""

    # ID3v2 minor version written to MP3s: 3 or 4
    id3_version: int = Field(default=4, ge=3, le=4)
    # ID3v1 handling, mutagen semantics: 0 remove, 1 update existing, 2 always write
    id3v1: int = Field(default=1, ge=0, le=2)
    # Joins list values written to single-valued fields
    multi_value_separator: str = Field(default="; ")


class PicturesConfig(BaseModel):
    """Picture export configuration."""

    export_prefix: str = Field(default="")
    default_types: list[str] = Field(default_factory=lambda: ["FrontCover"])

    @field_validator("default_types")
    @classmethod
    def _known_types(cls, value: list[str]) -> list[str]:
        return [PictureType.parse(item).label for item in value]

    @property
    def picture_types(self) -> list[PictureType]:
        return [PictureType.parse(item) for item in self.default_types]


class BatchConfig(BaseModel):
    """Batch read configuration."""

    workers: int = Field(default=4, ge=1)
    continue_on_error: bool = Field(default=True)


class Config(BaseModel):
    """
    Main configuration for tagbridge.

    Loads from TOML file with optional environment variable overrides.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    write: WriteConfig = Field(default_factory=WriteConfig)
    pictures: PicturesConfig = Field(default_factory=PicturesConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        TAGBRIDGE_<SECTION>_<KEY> (e.g., TAGBRIDGE_WRITE_ID3_VERSION)

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """
        Merge environment variable overrides into config dictionary.

        Returns a new dictionary with env vars applied, ready for Pydantic validation.
        """
        env_prefix = "TAGBRIDGE_"

        logging_config = cls._section(config_dict, "logging")
        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_config["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_config["format"] = log_format
        if log_hash_paths := os.getenv(f"{env_prefix}LOGGING_HASH_PATHS"):
            logging_config["hash_paths"] = log_hash_paths.lower() in ("true", "1", "yes")

        write = cls._section(config_dict, "write")
        if id3_version := os.getenv(f"{env_prefix}WRITE_ID3_VERSION"):
            write["id3_version"] = id3_version
        if id3v1 := os.getenv(f"{env_prefix}WRITE_ID3V1"):
            write["id3v1"] = id3v1
        if separator := os.getenv(f"{env_prefix}WRITE_MULTI_VALUE_SEPARATOR"):
            write["multi_value_separator"] = separator

        pictures = cls._section(config_dict, "pictures")
        if prefix := os.getenv(f"{env_prefix}PICTURES_EXPORT_PREFIX"):
            pictures["export_prefix"] = prefix
        if default_types := os.getenv(f"{env_prefix}PICTURES_DEFAULT_TYPES"):
            pictures["default_types"] = [t.strip() for t in default_types.split(",") if t.strip()]

        batch = cls._section(config_dict, "batch")
        if workers := os.getenv(f"{env_prefix}BATCH_WORKERS"):
            batch["workers"] = workers
        if continue_on_error := os.getenv(f"{env_prefix}BATCH_CONTINUE_ON_ERROR"):
            batch["continue_on_error"] = continue_on_error.lower() in ("true", "1", "yes")

        return config_dict


## Tests


def test_config_defaults():
    config = Config()
    assert config.write.id3_version == 4
    assert config.write.id3v1 == 1
    assert config.write.multi_value_separator == "; "
    assert config.pictures.default_types == ["FrontCover"]
    assert config.batch.workers == 4


def test_config_from_dict():
    config = Config.model_validate(
        {
            "write": {"id3_version": 3},
            "pictures": {"default_types": ["back-cover", "3"]},
        }
    )
    assert config.write.id3_version == 3
    assert config.pictures.default_types == ["BackCover", "FrontCover"]
    assert config.pictures.picture_types == [PictureType.BACK_COVER, PictureType.FRONT_COVER]


def test_config_env_overrides(
    monkeypatch,  # pyright: ignore[reportMissingParameterType,reportUnknownParameterType]
):
    monkeypatch.setenv("TAGBRIDGE_WRITE_ID3_VERSION", "3")  # pyright: ignore[reportUnknownMemberType]
    monkeypatch.setenv("TAGBRIDGE_BATCH_WORKERS", "8")  # pyright: ignore[reportUnknownMemberType]
    monkeypatch.setenv("TAGBRIDGE_LOGGING_HASH_PATHS", "yes")  # pyright: ignore[reportUnknownMemberType]

    config = Config.load()
    assert config.write.id3_version == 3
    assert config.batch.workers == 8
    assert config.logging.hash_paths is True


def test_config_load_nonexistent_file():
    config = Config.load(Path("/nonexistent/config.toml"))
    assert config.write.id3_version == 4
