"""
RPC models: typed JSON shapes returned by the tracker's JSON-RPC methods.

Record objects are returned as produced by `ContractStateRecord.to_json()`;
they are the persisted shape and clients already depend on it byte for byte.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StatsView(BaseModel):
    """Size of the in-memory index and the durable log."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)
    blocks: int = Field(ge=0)
    records: int = Field(ge=0)
    last_sequence_id: int = Field(alias="lastSequenceId", ge=0)


__all__ = ["StatsView"]
