"""
Integration layer: transfers, configuration, snapshots and operation dispatch
"""

from .amm_engine import AmmTxResult, apply_operation, apply_operations
from .config import LedgerConfig, build_ledger, load_config
from .operations import parse_operation, operation_to_dict
from .snapshot import LedgerSnapshot, snapshot_from_ledger
from .transfers import AssetTransferService, InMemoryAssetTransferService, TransferError

__all__ = [
    "AmmTxResult",
    "apply_operation",
    "apply_operations",
    "LedgerConfig",
    "build_ledger",
    "load_config",
    "parse_operation",
    "operation_to_dict",
    "LedgerSnapshot",
    "snapshot_from_ledger",
    "AssetTransferService",
    "InMemoryAssetTransferService",
    "TransferError",
]
