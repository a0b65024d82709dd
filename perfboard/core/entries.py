from __future__ import annotations

import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COUNT_FIELDS = ("websites", "orders", "main_products", "ac_count")
NUMERIC_FIELDS = (*COUNT_FIELDS, "tbt_amount")


class PayloadDecodeError(ValueError):
    """Stored payload is not JSON, or is neither an array nor an object."""


class Entry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    date: date
    websites: int = Field(default=0, ge=0)
    orders: int = Field(default=0, ge=0)
    main_products: int = Field(default=0, ge=0, alias="mainProducts")
    ac_count: int = Field(default=0, ge=0, alias="acCount")
    tbt_amount: float = Field(default=0.0, ge=0, alias="tbtAmount")

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name cannot be blank")
        return value

    @property
    def key(self) -> tuple[str, date]:
        return self.name, self.date

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def coerce_number(value: Any) -> float:
    """Parse a stored numeric field; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(number, 0.0)


def coerce_date(value: Any, today: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and ISO_DATE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return today
    return today


def coerce_name(value: Any, unknown_name: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return unknown_name


def normalize_entry(raw: dict[str, Any], today: date | None = None, unknown_name: str = "unknown") -> Entry:
    """Build an Entry from a loosely-typed stored object.

    Missing or blank names fall back to ``unknown_name``, missing or malformed
    dates to ``today``, and every numeric field to 0 when absent or unparsable.
    Counts are truncated to whole numbers.
    """
    today = today or date.today()
    fields = Entry.model_fields
    values: dict[str, Any] = {
        "name": coerce_name(raw.get("name"), unknown_name),
        "date": coerce_date(raw.get("date"), today),
    }
    for field_name in NUMERIC_FIELDS:
        wire_key = fields[field_name].alias or field_name
        number = coerce_number(raw.get(wire_key, raw.get(field_name)))
        values[field_name] = int(number) if field_name in COUNT_FIELDS else number
    return Entry(**values)


def decode_payload(text: str, today: date | None = None, unknown_name: str = "unknown") -> list[Entry]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise PayloadDecodeError(f"Payload is not valid JSON: {error.msg} (line {error.lineno})") from error
    except ValueError as error:
        raise PayloadDecodeError(f"Payload is not valid JSON: {error}") from error

    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise PayloadDecodeError(f"Payload must be a JSON array or object, got {type(payload).__name__}")

    today = today or date.today()
    entries: list[Entry] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            logger.warning("Skipping payload item %d: expected an object, got %s", index, type(item).__name__)
            continue
        entries.append(normalize_entry(item, today=today, unknown_name=unknown_name))
    return entries


def encode_entries(entries: list[Entry]) -> str:
    return json.dumps([entry.to_wire() for entry in entries], ensure_ascii=False, indent=2)
