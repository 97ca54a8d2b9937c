from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..canonical import sha256_text, stable_json
from ..errors import ChainError, WalletError
from .client import ChainClient, ConfirmationReceipt

logger = logging.getLogger(__name__)

DEV_ACCOUNT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


@dataclass(frozen=True)
class SubmittedCall:
    transaction_hash: str
    contract_address: str
    function_name: str
    args: tuple[Any, ...]


class SimulatedChain(ChainClient):
    """In-process ledger: every submitted call is mined on the next wait."""

    def __init__(self, account: Optional[str] = DEV_ACCOUNT, first_token_id: int = 1):
        self._account = account
        self._next_token_id = first_token_id
        self._block_number = 0
        self._pending: dict[str, SubmittedCall] = {}
        self._receipts: dict[str, ConfirmationReceipt] = {}
        self.calls: list[SubmittedCall] = []

    @property
    def provider_id(self) -> str:
        return "simulated"

    @property
    def default_account(self) -> Optional[str]:
        return self._account

    async def submit_transaction(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        if not self._account:
            raise WalletError("No wallet account connected")
        names = {entry.get("name") for entry in abi if entry.get("type") == "function"}
        if function_name not in names:
            raise ChainError(f"Contract ABI has no function '{function_name}'")

        nonce = len(self.calls)
        digest = sha256_text(stable_json([contract_address.lower(), function_name, list(args), nonce]))
        call = SubmittedCall(
            transaction_hash=f"0x{digest}",
            contract_address=contract_address,
            function_name=function_name,
            args=tuple(args),
        )
        self.calls.append(call)
        self._pending[call.transaction_hash] = call
        logger.info(f"Simulated submit {function_name} -> {call.transaction_hash}")
        return call.transaction_hash

    async def wait_for_confirmation(self, transaction_hash: str) -> ConfirmationReceipt:
        if transaction_hash in self._receipts:
            return self._receipts[transaction_hash]
        if transaction_hash not in self._pending:
            raise ChainError(f"Unknown transaction {transaction_hash}")

        self._pending.pop(transaction_hash)
        self._block_number += 1
        receipt = ConfirmationReceipt(
            transaction_hash=transaction_hash,
            block_number=self._block_number,
            status=1,
            token_id=self._next_token_id,
        )
        self._next_token_id += 1
        self._receipts[transaction_hash] = receipt
        return receipt
