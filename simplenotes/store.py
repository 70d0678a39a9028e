from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional
from pydantic import ValidationError

from .coalescer import WriteCoalescer
from .config import DEFAULT_QUIET_PERIOD
from .ids import new_id
from .models import Note, utcnow
from .storage import NoteGateway

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"title", "content", "pinned", "color"})
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})
_ALIASES = {"createdAt": "created_at", "updatedAt": "updated_at"}


def _normal_query(text: Optional[str]) -> str:
    return (text or "").strip().casefold()


def _by_recency(notes: Iterable[Note]) -> list[Note]:
    # sorted() is stable with reverse=True, so equal timestamps keep collection order
    return sorted(notes, key=lambda n: n.updated_at, reverse=True)


def _matches(note: Note, query: str) -> bool:
    return query in note.title.casefold() or query in note.content.casefold()


class NoteStore:
    """
    In-memory note collection with an active-note pointer and a search query.

    Every mutation replaces the affected note with a new value and hands a
    snapshot of the collection to the write coalescer. Nothing here raises on
    unknown ids; those intents are no-ops.
    """

    def __init__(
        self,
        gateway: Optional[NoteGateway] = None,
        notes: Optional[Iterable[Note]] = None,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        coalescer: Optional[WriteCoalescer] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.gateway = gateway if gateway is not None else NoteGateway()
        self._notes: list[Note] = []
        seen: set[str] = set()
        for note in notes or ():
            if note.id not in seen:
                seen.add(note.id)
                self._notes.append(note)
        self._coalescer = coalescer or WriteCoalescer(self.gateway.save, quiet_period)
        self._clock = clock
        self._new_id = id_factory
        self.active_id: Optional[str] = self._notes[0].id if self._notes else None
        self.search_query = ""
        self._closed = False

    @classmethod
    def open(cls, gateway: Optional[NoteGateway] = None, **kwargs: Any) -> "NoteStore":
        """Build a store seeded from the durable slot."""
        gateway = gateway if gateway is not None else NoteGateway()
        notes = gateway.load()
        logger.info("Loaded %d note(s)", len(notes))
        return cls(gateway, notes, **kwargs)

    def __enter__(self) -> "NoteStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------- queries ----------
    @property
    def notes(self) -> tuple[Note, ...]:
        return tuple(self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        return next((n for n in self._notes if n.id == note_id), None)

    def active_note(self) -> Optional[Note]:
        if self.active_id is None:
            return None
        return self.get(self.active_id)

    def visible_notes(self) -> list[Note]:
        """Pinned notes first, each group newest-first, then the search filter."""
        pinned = _by_recency(n for n in self._notes if n.pinned)
        others = _by_recency(n for n in self._notes if not n.pinned)
        ordered = pinned + others
        if not self.search_query:
            return ordered
        return [n for n in ordered if _matches(n, self.search_query)]

    # ---------- intents ----------
    def create_note(self) -> Note:
        note_id = self._new_id()
        while self._index(note_id) is not None:
            note_id = self._new_id()
        now = self._clock()
        note = Note(id=note_id, created_at=now, updated_at=now)
        self._notes.insert(0, note)
        self.active_id = note.id
        self._changed()
        return note

    def select_note(self, note_id: str) -> None:
        if self.get(note_id) is not None:
            self.active_id = note_id

    def update_note(self, note_id: str, changes: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        """
        Merge ``changes`` into the note and refresh ``updated_at``.

        ``id``, ``created_at`` and ``updated_at`` are ignored if present;
        unknown keys and values that fail validation are dropped and the rest
        still applies.
        """
        index = self._index(note_id)
        if index is None:
            return
        current = self._notes[index]
        clean = self._clean_changes(current, {**(changes or {}), **fields})
        if not clean:
            return
        stamp = max(self._clock(), current.updated_at)
        self._notes[index] = Note.model_validate({**current.model_dump(), **clean, "updated_at": stamp})
        self._changed()

    def toggle_pin(self, note_id: str) -> None:
        note = self.get(note_id)
        if note is None:
            return
        self.update_note(note_id, {"pinned": not note.pinned})

    def delete_note(self, note_id: str) -> None:
        index = self._index(note_id)
        if index is None:
            return
        del self._notes[index]
        if self.active_id == note_id:
            # max() keeps the first of equal timestamps
            self.active_id = max(self._notes, key=lambda n: n.updated_at).id if self._notes else None
        self._changed()

    def set_search_query(self, text: Optional[str]) -> None:
        self.search_query = _normal_query(text)

    def import_notes(self, notes: Iterable[Note]) -> int:
        """Append notes whose id is not in the collection yet. Returns how many were added."""
        known = {n.id for n in self._notes}
        added = 0
        for note in notes:
            if note.id in known:
                continue
            known.add(note.id)
            self._notes.append(note)
            added += 1
        if added:
            self._changed()
        return added

    # ---------- persistence ----------
    def manual_save(self) -> bool:
        """Write the collection now, bypassing the quiet period."""
        return bool(self._coalescer.write_now(self._notes))

    def close(self) -> None:
        """Write any pending snapshot and stop the coalescer. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._coalescer.flush()

    # ---------- internals ----------
    def _index(self, note_id: str) -> Optional[int]:
        for i, note in enumerate(self._notes):
            if note.id == note_id:
                return i
        return None

    def _changed(self) -> None:
        if self._closed:
            logger.debug("Store is closed; change will not be persisted")
            return
        self._coalescer.schedule(self._notes)

    def _clean_changes(self, current: Note, changes: Mapping[str, Any]) -> dict[str, Any]:
        base = current.model_dump()
        clean: dict[str, Any] = {}
        for key, value in changes.items():
            name = _ALIASES.get(key, key)
            if name in PROTECTED_FIELDS:
                continue
            if name not in EDITABLE_FIELDS:
                logger.debug("Ignoring unknown note field %r", key)
                continue
            try:
                checked = Note.model_validate({**base, name: value})
            except ValidationError:
                logger.debug("Ignoring invalid value for note field %r", key)
                continue
            clean[name] = getattr(checked, name)
        return clean
