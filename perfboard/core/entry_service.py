from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable

from perfboard.config.schemas import DashboardConfig, SubmitPolicy
from perfboard.core.entries import Entry, PayloadDecodeError, decode_payload, normalize_entry
from perfboard.core.repository import EntryRepository, JsonFileRepository, StorageError

logger = logging.getLogger(__name__)


class ConfirmationError(ValueError):
    """Wrong confirmation code for a destructive action."""


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


class LoadStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class LoadResult:
    status: LoadStatus
    entries: list[Entry] = field(default_factory=list)
    notice: Notice | None = None


@dataclass
class ActionResult:
    ok: bool
    notice: Notice
    entries: list[Entry] = field(default_factory=list)
    affected: int = 0


class EntryService:
    def __init__(
        self,
        repository: EntryRepository,
        policy: SubmitPolicy = SubmitPolicy.NAME_AND_DATE,
        clear_code: str = "923",
        today: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self.policy = policy
        self.clear_code = clear_code
        self.today = today

    @classmethod
    def from_config(cls, config: DashboardConfig) -> "EntryService":
        repository = JsonFileRepository(
            directory=config.storage.directory,
            slot=config.storage.slot,
            unknown_name=config.unknown_name,
        )
        return cls(repository, policy=config.submit_policy, clear_code=config.clear_code)

    def load(self) -> LoadResult:
        try:
            payload = self.repository.read_payload()
            if payload is None:
                logger.info("Storage slot is empty")
                return LoadResult(LoadStatus.NO_DATA, notice=Notice(NoticeLevel.INFO, "暂无数据，请先录入数据"))
            entries = decode_payload(payload, today=self.today(), unknown_name=self.repository.unknown_name)
        except (PayloadDecodeError, StorageError) as error:
            logger.error("Failed to load entries: %s", error)
            return LoadResult(LoadStatus.FAILED, notice=Notice(NoticeLevel.ERROR, "读取数据失败，请检查数据格式"))

        if not entries:
            logger.info("Storage slot decoded to zero usable entries")
            return LoadResult(LoadStatus.EMPTY, notice=Notice(NoticeLevel.WARNING, "没有有效数据，请重新录入"))

        logger.info("Loaded %d entries", len(entries))
        return LoadResult(LoadStatus.OK, entries=entries)

    def submit(self, entry: Entry | dict[str, Any]) -> ActionResult:
        if isinstance(entry, dict):
            name = entry.get("name")
            if not isinstance(name, str) or not name.strip():
                return ActionResult(False, Notice(NoticeLevel.ERROR, "请输入姓名"))
            entry = normalize_entry(entry, today=self.today(), unknown_name=self.repository.unknown_name)

        current = self.load()
        if current.status == LoadStatus.FAILED:
            return ActionResult(False, Notice(NoticeLevel.ERROR, "保存数据失败：已有数据无法读取"))

        kept = [item for item in current.entries if not self._replaced_by(item, entry)]
        updated = [*kept, entry]
        try:
            self.repository.save(updated)
        except StorageError:
            logger.exception("Failed to save entry for %s", entry.name)
            return ActionResult(False, Notice(NoticeLevel.ERROR, "保存数据失败"), entries=current.entries)

        replaced = len(current.entries) - len(kept)
        logger.info("Saved entry %s/%s (replaced %d)", entry.name, entry.date, replaced)
        return ActionResult(True, Notice(NoticeLevel.SUCCESS, "数据保存成功!"), entries=updated, affected=replaced)

    def delete(self, name: str, entry_date: date) -> ActionResult:
        name = name.strip()
        current = self.load()
        if current.status == LoadStatus.FAILED:
            return ActionResult(False, current.notice)

        kept = [item for item in current.entries if item.key != (name, entry_date)]
        removed = len(current.entries) - len(kept)
        if removed == 0:
            return ActionResult(
                False,
                Notice(NoticeLevel.INFO, f"未找到 {name} 在 {entry_date.isoformat()} 的数据"),
                entries=current.entries,
            )

        try:
            self.repository.save(kept)
        except StorageError:
            logger.exception("Failed to delete entries for %s/%s", name, entry_date)
            return ActionResult(False, Notice(NoticeLevel.ERROR, "删除数据失败"), entries=current.entries)

        logger.info("Deleted %d entries for %s/%s", removed, name, entry_date)
        return ActionResult(True, Notice(NoticeLevel.SUCCESS, "数据删除成功"), entries=kept, affected=removed)

    def check_clear_code(self, code: str) -> None:
        if code != self.clear_code:
            raise ConfirmationError("Confirmation code does not match")

    def clear_all(self, code: str) -> ActionResult:
        try:
            self.check_clear_code(code)
        except ConfirmationError:
            logger.warning("Rejected delete-all attempt with a wrong confirmation code")
            return ActionResult(False, Notice(NoticeLevel.ERROR, "密码错误"))

        try:
            self.repository.clear()
        except StorageError:
            logger.exception("Failed to clear storage slot")
            return ActionResult(False, Notice(NoticeLevel.ERROR, "删除数据失败"))

        logger.info("Cleared all entries")
        return ActionResult(True, Notice(NoticeLevel.SUCCESS, "所有数据已删除"))

    def import_payload(self, text: str) -> ActionResult:
        try:
            incoming = decode_payload(text, today=self.today(), unknown_name=self.repository.unknown_name)
        except PayloadDecodeError as error:
            logger.error("Rejected import: %s", error)
            return ActionResult(False, Notice(NoticeLevel.ERROR, "导入失败，请检查数据格式"))

        if not incoming:
            return ActionResult(False, Notice(NoticeLevel.WARNING, "没有有效数据，请重新录入"))

        current = self.load()
        if current.status == LoadStatus.FAILED:
            return ActionResult(False, Notice(NoticeLevel.ERROR, "导入失败：已有数据无法读取"))

        updated = [*current.entries, *incoming]
        try:
            self.repository.save(updated)
        except StorageError:
            logger.exception("Failed to save imported entries")
            return ActionResult(False, Notice(NoticeLevel.ERROR, "保存数据失败"), entries=current.entries)

        logger.info("Imported %d entries", len(incoming))
        return ActionResult(
            True,
            Notice(NoticeLevel.SUCCESS, f"已导入 {len(incoming)} 条数据"),
            entries=updated,
            affected=len(incoming),
        )

    def _replaced_by(self, existing: Entry, new: Entry) -> bool:
        if self.policy == SubmitPolicy.NAME:
            return existing.name == new.name
        return existing.key == new.key
