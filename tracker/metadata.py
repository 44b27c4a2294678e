"""
tracker.metadata — token metadata for token-standard contracts.

A contract qualifies when one of its declared standards matches the configured
token standard after lowercasing and stripping punctuation ("NEP-5", "nep5",
"Nep_5" all match "NEP-5"). For a qualifying contract four read-only probes
run, in order:

    name()        -> ByteString
    symbol()      -> ByteString
    decimals()    -> Integer
    totalSupply() -> Integer

Each probe runs against its own `snapshot.clone()` under a fixed gas ceiling.
A fault, an empty result stack, a wrong result type or an engine error on any
probe means *no* metadata for the record. There is no partial result and no
retry.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional, Tuple

from tracker.config import DEFAULT_PROBE_GAS_LIMIT, DEFAULT_TOKEN_STANDARD
from tracker.errors import InvocationError
from tracker.metrics import tracker_metrics
from tracker.types.chain import ContractState
from tracker.types.record import TokenMetadata
from tracker.types.stack import StackItem, StackItemType
from tracker.vm.invoke import Invoker

log = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^0-9a-z]")

# (method, expected result type, converter)
PROBES: Tuple[Tuple[str, StackItemType, Callable[[StackItem], Any]], ...] = (
    ("name", StackItemType.BYTE_STRING, StackItem.as_string),
    ("symbol", StackItemType.BYTE_STRING, StackItem.as_string),
    ("decimals", StackItemType.INTEGER, StackItem.as_int),
    ("totalSupply", StackItemType.INTEGER, StackItem.as_int),
)


def normalize_standard(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


class TokenMetadataFetcher:
    def __init__(
        self,
        invoker: Invoker,
        *,
        standard: str = DEFAULT_TOKEN_STANDARD,
        gas_limit: int = DEFAULT_PROBE_GAS_LIMIT,
    ) -> None:
        if gas_limit <= 0:
            raise ValueError("gas_limit must be positive")
        self.invoker = invoker
        self.standard = normalize_standard(standard)
        self.gas_limit = gas_limit

    def supports(self, contract: ContractState) -> bool:
        return any(
            normalize_standard(s) == self.standard
            for s in contract.manifest.supported_standards
        )

    def fetch(self, snapshot: Any, contract: ContractState) -> Optional[TokenMetadata]:
        if not self.supports(contract):
            return None

        values = []
        for method, expected, convert in PROBES:
            value = self._probe(snapshot, contract, method, expected, convert)
            if value is None:
                log.debug(
                    "token metadata dropped",
                    extra={"contract": contract.hash, "method": method},
                )
                return None
            values.append(value)

        name, symbol, decimals, total_supply = values
        return TokenMetadata(
            name=name, symbol=symbol, decimals=decimals, total_supply=total_supply
        )

    def _probe(
        self,
        snapshot: Any,
        contract: ContractState,
        method: str,
        expected: StackItemType,
        convert: Callable[[StackItem], Any],
    ) -> Optional[Any]:
        view = snapshot.clone() if hasattr(snapshot, "clone") else snapshot
        try:
            result = self.invoker.invoke(
                view, contract.script_hash, method, gas_limit=self.gas_limit
            )
        except InvocationError as e:
            log.warning(
                "token probe raised",
                extra={"contract": contract.hash, "method": method, "reason": e.message},
            )
            tracker_metrics.token_probe(method, "error")
            return None

        if result.faulted:
            tracker_metrics.token_probe(method, "fault")
            return None
        item = result.top
        if item is None:
            tracker_metrics.token_probe(method, "empty")
            return None
        if item.type != expected:
            tracker_metrics.token_probe(method, "shape")
            return None
        try:
            value = convert(item)
        except (TypeError, ValueError):
            # undecodable ByteString / non-integral payload
            tracker_metrics.token_probe(method, "shape")
            return None

        tracker_metrics.token_probe(method, "ok")
        return value


__all__ = ["TokenMetadataFetcher", "normalize_standard", "PROBES"]
