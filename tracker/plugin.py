from __future__ import annotations

"""
tracker.plugin
==============

Host-facing facade. A node embeds one `ContractTracker` and drives it from its
persistence pipeline:

    tracker = ContractTracker(cfg, invoker=EngineInvoker(node.engine_factory))

    # for every block, in order, after the block executed:
    tracker.on_persist(snapshot, block, diffs, executed)
    tracker.on_commit(snapshot)                 # nothing to do

    # from RPC worker threads, at any time:
    tracker.get_contract_states(["100", "10"])

Construction opens the configured KV store and replays the contract log into
the in-memory index. Records decoded during replay are logged at DEBUG and a
one-line summary at INFO.
"""

import logging
import typing as t

from tracker import logging as tlog
from tracker.attribution import TxAttributor
from tracker.collector import RecordBuilder
from tracker.config import Config, load_config
from tracker.db import KV, LogStore, open_kv
from tracker.index import StateIndex
from tracker.metadata import TokenMetadataFetcher
from tracker.metrics import tracker_metrics
from tracker.query import get_states
from tracker.types.chain import Block, ContractDiff, ExecutedTransaction
from tracker.types.record import ContractStateRecord, validate_record_bytes
from tracker.vm.invoke import Invoker

log = logging.getLogger(__name__)


class ContractTracker:
    def __init__(
        self,
        config: t.Optional[Config] = None,
        *,
        invoker: Invoker,
        kv: t.Optional[KV] = None,
    ) -> None:
        self.config = config or load_config()
        if kv is None:
            self.config.ensure_dirs()
            kv = open_kv(self.config.db_uri)
        self.store = LogStore(kv, validator=validate_record_bytes)
        self.index = StateIndex()
        self.fetcher = TokenMetadataFetcher(
            invoker,
            standard=self.config.token.standard,
            gas_limit=self.config.token.probe_gas_limit,
        )
        self.builder = RecordBuilder(self.store, self.index, TxAttributor(), self.fetcher)
        self._closed = False
        self.load()

    # --- Startup ---

    def load(self) -> int:
        """Rebuild the index from the durable log. Returns the number of records."""
        loaded = 0
        with tlog.trace_scope(component="replay"), self.index.writer():
            for seq, value in self.store.replay_all():
                record = ContractStateRecord.decode(value, sequence_id=seq)
                self.index.add(record)
                loaded += 1
                log.debug(
                    "contract state loaded",
                    extra={
                        "sequence_id": seq,
                        "contract": record.contract_hash,
                        "state": record.change_kind.value,
                        "block": record.block_index,
                    },
                )
        tracker_metrics.set_index_size(self.index.block_count, self.index.record_count)
        log.info(
            "contract log replayed",
            extra={
                "records": loaded,
                "blocks": self.index.block_count,
                "next_id": self.store.next_id,
            },
        )
        return loaded

    # --- Host hooks ---

    def on_persist(
        self,
        snapshot: t.Any,
        block: Block,
        diffs: t.Iterable[ContractDiff],
        executed: t.Iterable[ExecutedTransaction],
    ) -> t.List[ContractStateRecord]:
        return self.builder.build_records(snapshot, block, diffs, executed)

    def on_commit(self, snapshot: t.Any) -> None:
        pass

    def should_throw_exception_from_commit(self, exc: BaseException) -> bool:
        return False

    # --- Queries ---

    def get_contract_states(self, params: t.Optional[t.Sequence[t.Any]]) -> t.Optional[list]:
        return get_states(self.index, params)

    def stats(self) -> t.Dict[str, int]:
        return {
            "blocks": self.index.block_count,
            "records": self.index.record_count,
            "lastSequenceId": self.store.last_id,
        }

    # --- Lifecycle ---

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.store.close()

    def __enter__(self) -> "ContractTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ContractTracker"]
