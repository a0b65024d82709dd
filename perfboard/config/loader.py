from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from perfboard.config.schemas import DashboardConfig, raise_config_error


class ConfigLoader:
    @staticmethod
    def load_yaml(path: Path | str) -> dict[str, Any]:
        source = Path(path)
        with source.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"YAML root must be a mapping: {source}")
        return payload

    @classmethod
    def load_dashboard_config(cls, path: Path | str) -> DashboardConfig:
        payload = cls.load_yaml(path)
        try:
            return DashboardConfig.model_validate(payload)
        except ValidationError as error:
            raise raise_config_error("dashboard.yaml", error) from error

    @classmethod
    def load_or_default(cls, path: Path | str) -> DashboardConfig:
        if not Path(path).exists():
            return DashboardConfig.default()
        return cls.load_dashboard_config(path)
