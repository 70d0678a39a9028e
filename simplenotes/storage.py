from __future__ import annotations
import json
import logging
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .config import DEFAULT_SLOT_QUOTA, STORAGE_KEY, get_env_int
from .db import init_db, session_scope
from .models import Note, Slot, utcnow

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised inside the gateway when the durable slot cannot be written."""


class QuotaExceededError(StorageError):
    def __init__(self, size: int, quota: int):
        super().__init__(f"snapshot of {size} bytes exceeds slot quota of {quota} bytes")
        self.size = size
        self.quota = quota


class DecodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    notes: list[Note] = Field(default_factory=list)
    error: Optional[str] = None
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def encode_notes(notes: Iterable[Note]) -> str:
    return json.dumps([n.to_record() for n in notes], ensure_ascii=False)


def decode_notes(raw: Optional[str]) -> DecodeResult:
    """
    Decode a snapshot into notes without ever raising.

    - missing/empty input decodes to no notes
    - invalid JSON, or JSON that is not an array, is an error with no notes
    - entries that are not valid note records are skipped
    - a repeated id keeps its first occurrence
    """
    if not raw:
        return DecodeResult()
    try:
        data = json.loads(raw)
    except ValueError as e:
        return DecodeResult(error=f"invalid JSON: {e}")
    if not isinstance(data, list):
        return DecodeResult(error=f"expected a JSON array, got {type(data).__name__}")

    notes: list[Note] = []
    seen: set[str] = set()
    skipped = 0
    for item in data:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            note = Note.model_validate(item)
        except ValidationError:
            skipped += 1
            continue
        if note.id in seen:
            skipped += 1
            continue
        seen.add(note.id)
        notes.append(note)
    return DecodeResult(notes=notes, skipped=skipped)


class NoteGateway:
    """Reads and writes the whole note collection in one key-value slot."""

    def __init__(self, key: str = STORAGE_KEY, quota: Optional[int] = None):
        self.key = key
        if quota is None:
            quota = get_env_int("SIMPLENOTES_SLOT_QUOTA", DEFAULT_SLOT_QUOTA)
        self.quota = quota

    def read_raw(self) -> Optional[str]:
        init_db()
        with session_scope() as s:
            slot = s.get(Slot, self.key)
            return slot.value if slot else None

    def write_raw(self, value: str) -> None:
        size = len(value.encode("utf-8"))
        if size > self.quota:
            raise QuotaExceededError(size, self.quota)
        init_db()
        with session_scope() as s:
            s.merge(Slot(key=self.key, value=value, updated_at=utcnow()))

    def load(self) -> list[Note]:
        try:
            raw = self.read_raw()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Could not read slot %r: %s", self.key, e)
            return []
        result = decode_notes(raw)
        if not result.ok:
            logger.warning("Ignoring unreadable slot %r: %s", self.key, result.error)
            return []
        if result.skipped:
            logger.warning("Skipped %d invalid note record(s) in slot %r", result.skipped, self.key)
        return result.notes

    def save(self, notes: Iterable[Note]) -> bool:
        """Overwrite the slot with the full collection. Failures are logged, not raised."""
        try:
            self.write_raw(encode_notes(notes))
        except (StorageError, SQLAlchemyError, OSError) as e:
            logger.warning("Could not save notes to slot %r: %s", self.key, e)
            return False
        logger.debug("Saved notes to slot %r", self.key)
        return True
