"""
tracker.collector — turn one block's contract change-set into logged records.

For every diff, in the order the host's change-set yields them:

    attribute → fetch token metadata → encode → append to log → add to index

A record is in the log and in the index before the next diff is looked at, so
the attributor's "most recent record" is always the true current top. The
index writer lock is held for the whole block.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from tracker import logging as tlog
from tracker.attribution import TxAttributor
from tracker.db.log_store import LogStore
from tracker.index import StateIndex
from tracker.metadata import TokenMetadataFetcher
from tracker.metrics import tracker_metrics
from tracker.types.chain import Block, ChangeKind, ContractDiff, ExecutedTransaction
from tracker.types.record import ContractStateRecord

log = logging.getLogger(__name__)


class RecordBuilder:
    def __init__(
        self,
        store: LogStore,
        index: StateIndex,
        attributor: TxAttributor,
        fetcher: TokenMetadataFetcher,
    ) -> None:
        self.store = store
        self.index = index
        self.attributor = attributor
        self.fetcher = fetcher

    def build_records(
        self,
        snapshot: Any,
        block: Block,
        diffs: Iterable[ContractDiff],
        executed: Iterable[ExecutedTransaction],
    ) -> List[ContractStateRecord]:
        executed = tuple(executed)
        out: List[ContractStateRecord] = []

        with tlog.trace_scope(component="collector", block=block.index), self.index.writer():
            for diff in diffs:
                record = self._build_one(snapshot, block, diff, executed)
                seq = self.store.append(record.encode())
                record = record.with_sequence_id(seq)
                self.index.add(record)
                out.append(record)

                tracker_metrics.record_appended(record.change_kind.value)
                log.info(
                    "contract state logged",
                    extra={
                        "sequence_id": seq,
                        "contract": record.contract_hash,
                        "state": record.change_kind.value,
                        "txid": record.causing_txid,
                        "token": record.token.symbol if record.token else None,
                    },
                )

        tracker_metrics.set_last_block(block.index)
        tracker_metrics.set_index_size(self.index.block_count, self.index.record_count)
        return out

    def _build_one(
        self,
        snapshot: Any,
        block: Block,
        diff: ContractDiff,
        executed: tuple,
    ) -> ContractStateRecord:
        item = diff.item
        kind = ChangeKind.parse(diff.kind)
        txid = self.attributor.attribute(
            block, kind, item.script_hash, item.script, self.index.top, executed
        )
        token = self.fetcher.fetch(snapshot, item)
        return ContractStateRecord(
            block_index=block.index,
            block_timestamp=block.timestamp,
            contract_id=item.id,
            contract_hash=item.hash,
            script=item.script,
            manifest=item.manifest.to_json(),
            change_kind=kind,
            causing_txid=txid,
            token=token,
        )


__all__ = ["RecordBuilder"]
