from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator


class SubmitPolicy(str, Enum):
    NAME = "name"
    NAME_AND_DATE = "name_and_date"


class Standards(BaseModel):
    cr: float = Field(default=30, ge=0)
    ac: float = Field(default=50, ge=0)
    tbt: float = Field(default=1000, ge=0)


class StorageConfig(BaseModel):
    directory: Path = Path("data")
    slot: str = "userData"

    @field_validator("slot")
    @classmethod
    def validate_slot(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("storage.slot cannot be empty")
        if any(char in cleaned for char in ("/", "\\")):
            raise ValueError("storage.slot must be a plain name, not a path")
        return cleaned

    @property
    def slot_path(self) -> Path:
        return self.directory / f"{self.slot}.json"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Path | None = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown logging level '{value}'")
        return normalized


class DashboardConfig(BaseModel):
    version: int = 1
    storage: StorageConfig = Field(default_factory=StorageConfig)
    standards: Standards = Field(default_factory=Standards)
    submit_policy: SubmitPolicy = SubmitPolicy.NAME_AND_DATE
    clear_code: str = "923"
    unknown_name: str = "unknown"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("Only dashboard config version=1 is supported")
        return value

    @field_validator("unknown_name")
    @classmethod
    def validate_unknown_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("unknown_name cannot be blank")
        return value.strip()

    @classmethod
    def default(cls) -> "DashboardConfig":
        return cls()


def raise_config_error(context: str, error: ValidationError) -> ValueError:
    details = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in error.errors())
    return ValueError(f"{context} validation failed: {details}")
