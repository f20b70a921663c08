import pytest

from interviewiq.errors import PersistenceError
from interviewiq.services.session_store import SessionRecordStore


@pytest.mark.asyncio
async def test_append_only_jsonl_store(tmp_path):
    store = SessionRecordStore(path=tmp_path / "nested" / "sessions.jsonl")

    await store.append({"sessionId": "s1", "role": "Backend Engineer", "summary": []})
    await store.append({"sessionId": "s2", "role": "Data Analyst", "summary": [{"question": "Q"}]})

    lines = (tmp_path / "nested" / "sessions.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2

    rows = store.read_all()
    assert [row["sessionId"] for row in rows] == ["s1", "s2"]
    assert all("timestamp" in row for row in rows)
    assert store.get("s2")["role"] == "Data Analyst"
    assert store.get("missing") is None


@pytest.mark.asyncio
async def test_unwritable_store_raises_persistence_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SessionRecordStore(path=blocker / "sessions.jsonl")

    with pytest.raises(PersistenceError):
        await store.append({"sessionId": "s1"})
