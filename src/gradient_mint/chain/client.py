from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

# keccak("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


@dataclass(frozen=True)
class ConfirmationReceipt:
    transaction_hash: str
    block_number: Optional[int]
    status: int
    token_id: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    def matches(self, transaction_hash: str) -> bool:
        return self.transaction_hash.lower() == transaction_hash.lower()


class ChainClient(ABC):
    """Wallet/chain collaborator: submits a contract call and awaits its receipt."""

    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @property
    def default_account(self) -> Optional[str]:
        return None

    @abstractmethod
    async def submit_transaction(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        """Submit the call and return its transaction hash."""
        raise NotImplementedError

    @abstractmethod
    async def wait_for_confirmation(self, transaction_hash: str) -> ConfirmationReceipt:
        raise NotImplementedError


@lru_cache(maxsize=None)
def _load_abi_text(filename: str) -> str:
    return Path(__file__).with_name(filename).read_text(encoding="utf-8")


def load_mint_abi() -> list[dict[str, Any]]:
    return json.loads(_load_abi_text("MintNFT.abi.json"))


def token_id_from_logs(logs: list[Any], contract_address: Optional[str] = None) -> Optional[int]:
    """Return the token id of the first ERC-721 mint ``Transfer`` in ``logs``."""
    for log in logs:
        topics = [_hex(t) for t in log.get("topics", [])]
        if len(topics) != 4 or topics[0].lower() != TRANSFER_TOPIC:
            continue
        if contract_address and str(log.get("address", "")).lower() != contract_address.lower():
            continue
        if int(topics[1], 16) != 0:
            continue
        return int(topics[3], 16)
    return None


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text
