# -*- coding: utf-8 -*-
"""
Property tests for the per-block index and the query parameter parser:
- since(start, k) returns exactly the first k distinct blocks >= start,
  ascending, with records inside a block kept in insertion order.
- Any decimal int32 parses back to itself; anything wider is rejected.
"""
from __future__ import annotations

from hypothesis import given, settings, strategies as st

from tracker.index import StateIndex
from tracker.query import INT32_MAX, INT32_MIN, get_states, parse_int32
from tracker.types.chain import ChangeKind
from tracker.types.record import ContractStateRecord


def _rec(block_index: int, contract_id: int) -> ContractStateRecord:
    return ContractStateRecord(
        block_index=block_index,
        block_timestamp=block_index,
        contract_id=contract_id,
        contract_hash="0x" + f"{contract_id:040x}",
        script=b"\x40",
        manifest={},
        change_kind=ChangeKind.CREATED,
        causing_txid="",
    )


blocks = st.lists(st.integers(min_value=0, max_value=50), max_size=60)


@settings(max_examples=100, deadline=None)
@given(block_indices=blocks, start=st.integers(min_value=-5, max_value=60), k=st.integers(min_value=-2, max_value=12))
def test_since_matches_reference(block_indices, start, k):
    idx = StateIndex()
    for cid, b in enumerate(block_indices):
        idx.add(_rec(b, cid))

    wanted = sorted({b for b in block_indices if b >= start})[: max(k, 0)]
    expected = [(b, cid) for b in wanted for cid, bb in enumerate(block_indices) if bb == b]

    got = [(r.block_index, r.contract_id) for r in idx.since(start, k)]
    assert got == expected
    assert idx.record_count == len(block_indices)
    assert idx.block_count == len(set(block_indices))


@given(st.integers(min_value=INT32_MIN, max_value=INT32_MAX))
def test_parse_int32_accepts_decimal_text(n: int):
    assert parse_int32(str(n)) == n
    assert parse_int32(n) == n


@given(st.one_of(st.integers(max_value=INT32_MIN - 1), st.integers(min_value=INT32_MAX + 1)))
def test_parse_int32_rejects_out_of_range(n: int):
    assert parse_int32(n) is None
    assert parse_int32(str(n)) is None
    assert get_states(StateIndex(), [n, 1]) is None
