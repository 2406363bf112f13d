import asyncio
import json
import os

import pytest

from voxline.errors import InvalidKeyError, RecordCorruptError, RecordNotFoundError
from voxline.store import DataStore


@pytest.fixture
def store(tmp_path):
    return DataStore(tmp_path / "data")


@pytest.mark.asyncio
async def test_write_then_read_returns_equal_value(store):
    value = {"name": "Maria", "numbers": ["+5511961234567"], "active": True, "n": 1.5, "x": None}
    await store.write("contacts.json", value)
    assert await store.read("contacts.json", {}) == value


@pytest.mark.asyncio
async def test_read_unwritten_key_returns_default_without_creating_file(store):
    default = {"fresh": True}
    result = await store.read("missing.json", default)
    assert result is default
    assert store.base_dir.is_dir()
    assert not (store.base_dir / "missing.json").exists()


@pytest.mark.asyncio
async def test_overwrite_replaces_record(store):
    await store.write("k.json", {"a": 1, "b": 2})
    await store.write("k.json", {"c": 3})
    assert await store.read("k.json", None) == {"c": 3}


@pytest.mark.asyncio
async def test_file_is_pretty_printed_utf8(store):
    await store.write("voice.json", {"nome": "João", "tipo": "masc"})
    text = (store.base_dir / "voice.json").read_text(encoding="utf-8")
    assert text == '{\n  "nome": "João",\n  "tipo": "masc"\n}'


@pytest.mark.asyncio
async def test_write_creates_nested_base_dir(tmp_path):
    store = DataStore(tmp_path / "a" / "b" / "c")
    await store.write("x.json", [1, 2, 3])
    assert json.loads((tmp_path / "a" / "b" / "c" / "x.json").read_text()) == [1, 2, 3]


@pytest.mark.asyncio
async def test_corrupt_record_falls_back_to_default(store):
    store.base_dir.mkdir(parents=True)
    (store.base_dir / "bad.json").write_text('{"truncated": ', encoding="utf-8")
    assert await store.read("bad.json", "fallback") == "fallback"
    with pytest.raises(RecordCorruptError) as excinfo:
        await store.load("bad.json")
    assert excinfo.value.key == "bad.json"


@pytest.mark.asyncio
async def test_empty_file_is_treated_as_corrupt(store):
    store.base_dir.mkdir(parents=True)
    (store.base_dir / "empty.json").write_text("", encoding="utf-8")
    assert await store.read("empty.json", []) == []
    with pytest.raises(RecordCorruptError):
        await store.load("empty.json")


@pytest.mark.asyncio
async def test_record_that_is_not_utf8_falls_back_to_default(store):
    store.base_dir.mkdir(parents=True)
    (store.base_dir / "bin.json").write_bytes(b'{"a": "\xff\xfe"}')
    assert await store.read("bin.json", "dflt") == "dflt"
    with pytest.raises(RecordCorruptError):
        await store.load("bin.json")


@pytest.mark.asyncio
async def test_load_missing_raises_not_found(store):
    with pytest.raises(RecordNotFoundError):
        await store.load("nope.json")


@pytest.mark.asyncio
async def test_keys_outside_base_dir_are_rejected(tmp_path, store):
    assert await store.read("../outside.json", 42) == 42
    with pytest.raises(InvalidKeyError):
        await store.write("../outside.json", {"x": 1})
    with pytest.raises(InvalidKeyError):
        await store.load("nested/inner.json")
    assert not (tmp_path / "outside.json").exists()


@pytest.mark.asyncio
async def test_malformed_keys_are_rejected(store):
    assert await store.read("a\x00b.json", "dflt") == "dflt"
    with pytest.raises(InvalidKeyError):
        await store.load("a\x00b.json")
    with pytest.raises(InvalidKeyError):
        await store.write("a\x00b.json", {"x": 1})
    assert list(store.base_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_write_failure_propagates(store):
    with pytest.raises(TypeError):
        await store.write("obj.json", {"bad": object()})
    assert not (store.base_dir / "obj.json").exists()


@pytest.mark.asyncio
async def test_failed_write_keeps_previous_record(store):
    await store.write("k.json", {"v": 1})
    with pytest.raises(TypeError):
        await store.write("k.json", {"v": {1, 2}})
    assert await store.read("k.json", None) == {"v": 1}
    assert [p.name for p in store.base_dir.iterdir()] == ["k.json"]


@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs non-root POSIX permissions")
@pytest.mark.asyncio
async def test_write_permission_error_propagates(store):
    store.base_dir.mkdir(parents=True)
    store.base_dir.chmod(0o500)
    try:
        with pytest.raises(PermissionError):
            await store.write("k.json", {"v": 1})
    finally:
        store.base_dir.chmod(0o700)


@pytest.mark.asyncio
async def test_concurrent_updates_do_not_lose_increments(store):
    def bump(counter):
        return {"count": counter["count"] + 1}

    await asyncio.gather(*(store.update("counter.json", {"count": 0}, bump) for _ in range(25)))
    assert await store.read("counter.json", None) == {"count": 25}


@pytest.mark.asyncio
async def test_concurrent_writes_leave_one_complete_value(store):
    values = [{"writer": i, "payload": "x" * 1000} for i in range(10)]
    await asyncio.gather(*(store.write("race.json", v) for v in values))
    assert await store.read("race.json", None) in values


@pytest.mark.asyncio
async def test_update_returns_written_value(store):
    result = await store.update("list.json", [], lambda items: items + ["a"])
    assert result == ["a"]
    assert await store.load("list.json") == ["a"]


@pytest.mark.asyncio
async def test_idle_key_locks_are_released(store):
    await store.write("a.json", 1)
    await asyncio.gather(*(store.update("b.json", 0, lambda n: n + 1) for _ in range(5)))
    assert store._locks == {}
    assert store._lock_users == {}
    assert await store.read("b.json", None) == 5
