import json

import pytest

from liverpath.application.ports.record_store import RecordKey, RecordKind
from liverpath.application.services.history_service import CancellationToken
from liverpath.exceptions import CorruptRecordError, OperationCancelled, RecordNotFoundError

from conftest import make_record, make_result

EMAIL = "doc@example.com"


def assert_newest_first(records):
    dates = [r.date for r in records]
    assert dates == sorted(dates, reverse=True)


@pytest.mark.asyncio
async def test_list_is_empty_for_new_account(history):
    assert await history.list(EMAIL) == []


@pytest.mark.asyncio
async def test_append_prepends_and_returns_newest_first(history):
    await history.append(EMAIL, make_record("a", minutes=0))
    out = await history.append(EMAIL, make_record("b", minutes=5))

    assert [r.id for r in out] == ["b", "a"]
    assert [r.id for r in await history.list(EMAIL)] == ["b", "a"]


@pytest.mark.asyncio
async def test_list_sorts_regardless_of_stored_order(history, records):
    await records.write_history(EMAIL, [make_record("old", minutes=0), make_record("new", minutes=30), make_record("mid", minutes=10)])
    out = await history.list(EMAIL)
    assert [r.id for r in out] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_ordering_holds_after_mixed_operations(history):
    await history.append(EMAIL, make_record("a", minutes=10))
    await history.append(EMAIL, make_record("b", minutes=-20))
    await history.append(EMAIL, make_record("c", minutes=5))
    await history.replace(EMAIL, "b", make_result("NAFLD"))
    assert_newest_first(await history.list(EMAIL))

    await history.clear(EMAIL)
    await history.append(EMAIL, make_record("d", minutes=1))
    await history.append(EMAIL, make_record("e", minutes=-1))
    out = await history.list(EMAIL)
    assert_newest_first(out)
    assert [r.id for r in out] == ["d", "e"]


@pytest.mark.asyncio
async def test_replace_swaps_result_and_keeps_identity(history):
    original = make_record("a")
    await history.append(EMAIL, original)

    out = await history.replace(EMAIL, "a", make_result("Autoimmune hepatitis"))

    assert len(out) == 1
    assert out[0].id == original.id
    assert out[0].date == original.date
    assert out[0].image_reference == original.image_reference
    assert out[0].result.differential_diagnosis == "Autoimmune hepatitis"
    stored = await history.get(EMAIL, "a")
    assert stored.result.differential_diagnosis == "Autoimmune hepatitis"


@pytest.mark.asyncio
async def test_replace_unknown_id_raises_and_writes_nothing(history, store):
    await history.append(EMAIL, make_record("a"))
    key_before = dict(store._data)

    with pytest.raises(RecordNotFoundError):
        await history.replace(EMAIL, "missing", make_result("NAFLD"))

    assert store._data == key_before


@pytest.mark.asyncio
async def test_replace_with_cancelled_token_does_not_write(history):
    await history.append(EMAIL, make_record("a"))
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        await history.replace(EMAIL, "a", make_result("NAFLD"), cancel_token=token)

    assert (await history.get(EMAIL, "a")).result.differential_diagnosis == "NASH"


@pytest.mark.asyncio
async def test_get_unknown_record(history):
    with pytest.raises(RecordNotFoundError):
        await history.get(EMAIL, "nope")


@pytest.mark.asyncio
async def test_clear_only_affects_one_account(history):
    await history.append(EMAIL, make_record("a"))
    await history.append("other@example.com", make_record("b"))

    await history.clear(EMAIL)
    await history.clear(EMAIL)

    assert await history.list(EMAIL) == []
    assert [r.id for r in await history.list("other@example.com")] == ["b"]


def stored_ids(store):
    return [item.get("id") for item in json.loads(store.raw(RecordKey(EMAIL, RecordKind.HISTORY)))]


@pytest.mark.asyncio
async def test_append_keeps_entries_that_fail_validation(history, store):
    broken = make_record("b", minutes=5).model_dump(mode="json", by_alias=True)
    broken["result"]["recommendations"] = None
    readable = make_record("a").model_dump(mode="json", by_alias=True)
    await store.write(RecordKey(EMAIL, RecordKind.HISTORY), json.dumps([broken, readable]))

    out = await history.append(EMAIL, make_record("c", minutes=10))

    assert [r.id for r in out] == ["c", "a"]
    assert stored_ids(store) == ["c", "a", "b"]
    assert json.loads(store.raw(RecordKey(EMAIL, RecordKind.HISTORY)))[2] == broken


@pytest.mark.asyncio
async def test_replace_keeps_entries_that_fail_validation(history, store):
    readable = make_record("a").model_dump(mode="json", by_alias=True)
    await store.write(RecordKey(EMAIL, RecordKind.HISTORY), json.dumps([readable, {"id": "b"}]))

    await history.replace(EMAIL, "a", make_result("NAFLD"))

    assert stored_ids(store) == ["a", "b"]
    assert (await history.get(EMAIL, "a")).result.differential_diagnosis == "NAFLD"


@pytest.mark.asyncio
async def test_append_refuses_to_overwrite_unparseable_history(history, store):
    key = RecordKey(EMAIL, RecordKind.HISTORY)
    await store.write(key, "{not json")

    with pytest.raises(CorruptRecordError):
        await history.append(EMAIL, make_record("a"))
    assert store.raw(key) == "{not json"

    await history.clear(EMAIL)
    await history.append(EMAIL, make_record("a"))
    assert stored_ids(store) == ["a"]
