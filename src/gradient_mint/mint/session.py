"""Mint session state as a tagged union of per-stage records.

Each stage record carries only the data that is valid at that point, so a
transaction hash without an uploaded URI cannot be represented. ``Idle`` may
carry a checkpoint left behind by a failed attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from ..chain.client import ConfirmationReceipt
from ..schema import UploadResult


class MintStage(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    AWAITING_WALLET = "awaitingWallet"
    TX_PENDING = "txPending"
    DONE = "done"


STAGE_TEXT = {
    MintStage.IDLE: "",
    MintStage.UPLOADING: "Uploading to IPFS...",
    MintStage.AWAITING_WALLET: "Confirm the transaction in your wallet...",
    MintStage.TX_PENDING: "Transaction submitted, waiting for confirmation...",
    MintStage.DONE: "Done: NFT minted!",
}


@dataclass(frozen=True)
class Uploaded:
    """Upload finished but no transaction was submitted."""

    upload: UploadResult
    artifact_digest: str


@dataclass(frozen=True)
class Submitted:
    """A transaction was submitted but its confirmation was not observed."""

    upload: UploadResult
    transaction_hash: str


Checkpoint = Union[Uploaded, Submitted]


@dataclass(frozen=True)
class Idle:
    stage: ClassVar[MintStage] = MintStage.IDLE
    checkpoint: Optional[Checkpoint] = None


@dataclass(frozen=True)
class Uploading:
    stage: ClassVar[MintStage] = MintStage.UPLOADING


@dataclass(frozen=True)
class AwaitingWallet:
    stage: ClassVar[MintStage] = MintStage.AWAITING_WALLET
    upload: UploadResult
    artifact_digest: str


@dataclass(frozen=True)
class TxPending:
    stage: ClassVar[MintStage] = MintStage.TX_PENDING
    upload: UploadResult
    transaction_hash: str


@dataclass(frozen=True)
class Done:
    stage: ClassVar[MintStage] = MintStage.DONE
    upload: UploadResult
    transaction_hash: str
    receipt: ConfirmationReceipt


SessionState = Union[Idle, Uploading, AwaitingWallet, TxPending, Done]


class MintSession:
    """What a caller observes about the current mint attempt."""

    def __init__(self) -> None:
        self.state: SessionState = Idle()
        self.last_error: Optional[str] = None
        # raw upstream response behind last_error, when the failure had one
        self.error_payload: Any = None

    @property
    def stage(self) -> MintStage:
        return self.state.stage

    @property
    def stage_text(self) -> str:
        return STAGE_TEXT[self.stage]

    @property
    def upload(self) -> Optional[UploadResult]:
        state = self.state
        if isinstance(state, Idle):
            return state.checkpoint.upload if state.checkpoint is not None else None
        if isinstance(state, Uploading):
            return None
        return state.upload

    @property
    def artifact_uri(self) -> Optional[str]:
        upload = self.upload
        return upload.canonical_uri if upload is not None else None

    @property
    def transaction_hash(self) -> Optional[str]:
        state = self.state
        if isinstance(state, (TxPending, Done)):
            return state.transaction_hash
        if isinstance(state, Idle) and isinstance(state.checkpoint, Submitted):
            return state.checkpoint.transaction_hash
        return None

    @property
    def receipt(self) -> Optional[ConfirmationReceipt]:
        return self.state.receipt if isinstance(self.state, Done) else None

    @property
    def checkpoint(self) -> Optional[Checkpoint]:
        return self.state.checkpoint if isinstance(self.state, Idle) else None

    def snapshot(self) -> dict[str, Optional[str]]:
        receipt = self.receipt
        return {
            "stage": self.stage.value,
            "artifact_uri": self.artifact_uri,
            "transaction_hash": self.transaction_hash,
            "last_error": self.last_error,
            "token_id": str(receipt.token_id) if receipt and receipt.token_id is not None else None,
        }


def checkpoint_to_dict(checkpoint: Checkpoint) -> dict[str, Any]:
    data: dict[str, Any] = {"upload": checkpoint.upload.to_payload()}
    if isinstance(checkpoint, Submitted):
        data["kind"] = "submitted"
        data["transaction_hash"] = checkpoint.transaction_hash
    else:
        data["kind"] = "uploaded"
        data["artifact_digest"] = checkpoint.artifact_digest
    return data


def checkpoint_from_dict(data: dict[str, Any]) -> Checkpoint:
    upload = UploadResult.model_validate(data["upload"])
    kind = data.get("kind")
    if kind == "submitted":
        return Submitted(upload, data["transaction_hash"])
    if kind == "uploaded":
        return Uploaded(upload, data["artifact_digest"])
    raise ValueError(f"Unknown checkpoint kind: {kind!r}")
