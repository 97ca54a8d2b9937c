from .orchestrator import MintOrchestrator, describe_error
from .session import (
    STAGE_TEXT,
    AwaitingWallet,
    Done,
    Idle,
    MintSession,
    MintStage,
    Submitted,
    TxPending,
    Uploaded,
    Uploading,
    checkpoint_from_dict,
    checkpoint_to_dict,
)

__all__ = [
    "STAGE_TEXT",
    "AwaitingWallet",
    "Done",
    "Idle",
    "MintOrchestrator",
    "MintSession",
    "MintStage",
    "Submitted",
    "TxPending",
    "Uploaded",
    "Uploading",
    "checkpoint_from_dict",
    "checkpoint_to_dict",
    "describe_error",
]
