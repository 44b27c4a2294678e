from __future__ import annotations

import logging

import pytest

from tracker.db import LogStore, le_u32, open_kv
from tracker.errors import RecordNotFound
from tracker.types.record import validate_record_bytes

from tests.fakes import block, contract, diff
from tracker.types.chain import ChangeKind
from tracker.types.record import ContractStateRecord


def _record_bytes(block_index: int, n: int = 1) -> bytes:
    c = contract(n)
    return ContractStateRecord(
        block_index=block_index,
        block_timestamp=block(block_index).timestamp,
        contract_id=c.id,
        contract_hash=c.hash,
        script=c.script,
        manifest=c.manifest.to_json(),
        change_kind=ChangeKind.CREATED,
        causing_txid="",
    ).encode()


def test_append_assigns_gapless_ids_from_one(store: LogStore):
    ids = [store.append(_record_bytes(i)) for i in range(5)]
    assert ids == [1, 2, 3, 4, 5]
    assert store.last_id == 5
    assert store.next_id == 6


def test_keys_are_little_endian_u32(kv, store: LogStore):
    store.append(_record_bytes(1))
    store.append(_record_bytes(2))
    assert kv.get(le_u32(1)) == _record_bytes(1)
    assert kv.get(le_u32(2)) == _record_bytes(2)
    assert le_u32(258) == b"\x02\x01\x00\x00"


def test_get_unknown_id_raises(store: LogStore):
    store.append(_record_bytes(0))
    assert store.get(1) == _record_bytes(0)
    with pytest.raises(RecordNotFound):
        store.get(2)
    with pytest.raises(RecordNotFound):
        store.get(0)


def test_replay_stops_at_first_gap(kv):
    for i in (1, 2, 3, 5, 6):
        kv.put(le_u32(i), _record_bytes(i))
    store = LogStore(kv, validator=validate_record_bytes)
    assert [seq for seq, _ in store.replay_all()] == [1, 2, 3]
    assert store.next_id == 4


def test_replay_stops_at_corrupt_record(kv, caplog):
    kv.put(le_u32(1), _record_bytes(1))
    kv.put(le_u32(2), _record_bytes(2))
    kv.put(le_u32(3), b"\xff not json")
    kv.put(le_u32(4), _record_bytes(4))
    store = LogStore(kv, validator=validate_record_bytes)
    with caplog.at_level(logging.WARNING, logger="tracker.db.log_store"):
        loaded = list(store.replay_all())
    assert [seq for seq, _ in loaded] == [1, 2]
    assert store.last_id == 2
    assert any("corrupt record" in r.getMessage() for r in caplog.records)


def test_append_after_gap_overwrites_orphan_with_warning(kv, caplog):
    kv.put(le_u32(1), _record_bytes(1))
    kv.put(le_u32(3), _record_bytes(3))  # not reachable: 2 is missing
    store = LogStore(kv, validator=validate_record_bytes)
    assert store.append(_record_bytes(10)) == 2
    with caplog.at_level(logging.WARNING, logger="tracker.db.log_store"):
        assert store.append(_record_bytes(11)) == 3
    assert kv.get(le_u32(3)) == _record_bytes(11)
    assert any("orphaned" in r.getMessage() for r in caplog.records)


def test_restart_resumes_after_last_id(tmp_path):
    uri = f"sqlite:///{tmp_path / 'log.db'}"
    first = LogStore(open_kv(uri), validator=validate_record_bytes)
    for i in range(4):
        first.append(_record_bytes(i))
    first.close()

    second = LogStore(open_kv(uri), validator=validate_record_bytes)
    replayed = list(second.replay_all())
    assert len(replayed) == 4
    assert second.append(_record_bytes(99)) == 5
    second.close()


def test_last_id_without_replay_scans_lazily(kv):
    for i in (1, 2):
        kv.put(le_u32(i), _record_bytes(i))
    store = LogStore(kv)
    assert store.last_id == 2
    assert store.append(b"{}") == 3


def test_empty_log(store: LogStore):
    assert list(store.replay_all()) == []
    assert store.last_id == 0
    assert store.next_id == 1


def test_diff_helper_parses_node_names():
    assert diff("Added", contract(1)).kind is ChangeKind.CREATED
    assert diff("changed", contract(1)).kind is ChangeKind.UPDATED
