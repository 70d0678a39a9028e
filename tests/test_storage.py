import json

from conftest import make_note
from simplenotes.db import session_scope
from simplenotes.models import Slot
from simplenotes.storage import NoteGateway, decode_notes, encode_notes


def test_load_missing_slot_is_empty(db_path):
    assert NoteGateway().load() == []


def test_save_then_load_round_trip(db_path):
    gw = NoteGateway()
    notes = [make_note("a", 3, title="A", pinned=True, color="yellow"), make_note("b", 1, content="body")]
    assert gw.save(notes) is True
    assert gw.load() == notes

    # whole-collection overwrite, not a merge
    assert gw.save(notes[1:]) is True
    assert [n.id for n in gw.load()] == ["b"]


def test_slot_holds_camel_case_json_array(db_path):
    NoteGateway().save([make_note("a", 2, title="T")])
    with session_scope() as s:
        raw = s.get(Slot, "notes_app_data_v1").value
    records = json.loads(raw)
    assert isinstance(records, list)
    assert set(records[0]) == {"id", "title", "content", "createdAt", "updatedAt", "pinned", "color"}
    assert records[0]["color"] is None


def test_load_corrupt_slot_degrades_to_empty(db_path):
    gw = NoteGateway()
    gw.write_raw("not json")
    assert gw.load() == []
    gw.write_raw(json.dumps({"id": "a"}))
    assert gw.load() == []
    gw.write_raw("null")
    assert gw.load() == []


def test_decode_result_keeps_failure_observable():
    bad = decode_notes("not json")
    assert not bad.ok and bad.notes == []
    obj = decode_notes('{"notes": []}')
    assert "array" in obj.error
    assert decode_notes(None).ok


def test_decode_defaults_missing_fields_and_skips_bad_records():
    raw = json.dumps([
        {"id": "old", "createdAt": "2023-05-01T10:00:00.000Z", "updatedAt": "2023-05-01T10:00:00"},
        {"title": "no id"},
        "junk",
        {"id": "old", "createdAt": "2023-05-01T10:00:00Z", "updatedAt": "2023-05-01T10:00:00Z", "title": "dup"},
    ])
    result = decode_notes(raw)
    assert result.ok
    assert result.skipped == 3
    [note] = result.notes
    assert (note.title, note.content, note.pinned, note.color) == ("", "", False, None)
    assert note.updated_at.utcoffset().total_seconds() == 0


def test_save_over_quota_is_swallowed(db_path):
    gw = NoteGateway()
    gw.save([make_note("keep")])
    small = NoteGateway(quota=10)
    assert small.save([make_note("big", content="x" * 100)]) is False
    # prior snapshot untouched
    assert [n.id for n in gw.load()] == ["keep"]


def test_encode_matches_records():
    notes = [make_note("a", 1)]
    assert json.loads(encode_notes(notes)) == [notes[0].to_record()]


def test_null_text_fields_default_and_survive_resave(db_path):
    gw = NoteGateway()
    gw.write_raw(json.dumps([
        {"id": "a", "title": None, "content": None, "pinned": None,
         "createdAt": "2023-05-01T10:00:00Z", "updatedAt": "2023-05-01T10:00:00Z"},
        {"id": "b", "title": "kept", "content": None,
         "createdAt": "2023-05-01T10:00:00Z", "updatedAt": "2023-05-02T10:00:00Z"},
    ]))
    notes = gw.load()
    assert [(n.id, n.title, n.content, n.pinned) for n in notes] == [("a", "", "", False), ("b", "kept", "", False)]

    assert gw.save(notes) is True
    records = json.loads(gw.read_raw())
    assert [r["id"] for r in records] == ["a", "b"]
    assert records[0]["title"] == "" and records[1]["content"] == ""


def test_quota_reads_environment(monkeypatch):
    monkeypatch.setenv("SIMPLENOTES_SLOT_QUOTA", "42")
    assert NoteGateway().quota == 42
    monkeypatch.setenv("SIMPLENOTES_SLOT_QUOTA", "lots")
    assert NoteGateway().quota == 5 * 1024 * 1024
    assert NoteGateway(quota=7).quota == 7


def test_quota_from_environment_rejects_large_snapshot(db_path, monkeypatch):
    monkeypatch.setenv("SIMPLENOTES_SLOT_QUOTA", "10")
    assert NoteGateway().save([make_note("big", content="x" * 100)]) is False
    assert NoteGateway().load() == []
