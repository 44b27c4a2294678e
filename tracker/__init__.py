"""
Contract Tracker.

Records every contract deployment, update and destruction seen while a node
persists blocks, keeps the records in a durable append-only log, and answers
"contract changes since block N" queries over JSON-RPC.

    from tracker import ContractTracker, load_config
    tracker = ContractTracker(load_config(), invoker=node_invoker)
"""

from .config import Config, load_config
from .plugin import ContractTracker
from .version import __version__

__all__ = ["Config", "ContractTracker", "load_config", "__version__"]
