from __future__ import annotations

from dataclasses import dataclass, field

from perfboard.config.schemas import DashboardConfig


@dataclass
class ValidationReport:
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class RuntimeValidator:
    @staticmethod
    def validate_storage(config: DashboardConfig) -> ValidationReport:
        report = ValidationReport()
        base_dir = config.storage.directory

        if base_dir.exists() and not base_dir.is_dir():
            report.errors.append(f"storage.directory exists but is not a directory: {base_dir}")
            return report

        if not base_dir.exists():
            report.warnings.append(f"storage.directory does not exist and will be created on first save: {base_dir}")
            return report

        slot_path = config.storage.slot_path
        if slot_path.exists() and not slot_path.is_file():
            report.errors.append(f"Storage slot '{config.storage.slot}' is not a regular file: {slot_path}")

        return report

    @staticmethod
    def validate_safeguards(config: DashboardConfig) -> ValidationReport:
        report = ValidationReport()
        if not config.clear_code.strip():
            report.warnings.append("clear_code is empty: delete-all is not guarded by a confirmation code")
        return report
