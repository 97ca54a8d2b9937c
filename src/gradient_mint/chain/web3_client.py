from __future__ import annotations

import logging
from typing import Any, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from ..errors import ChainError, MintError, WalletError
from .client import ChainClient, ConfirmationReceipt, token_id_from_logs

logger = logging.getLogger(__name__)

USER_REJECTED_CODE = 4001


def classify_submit_error(exc: Exception) -> MintError:
    """Map a submission failure onto a wallet rejection or a chain error."""
    message = str(exc)
    code: Any = None
    if exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
        message = exc.args[0].get("message", message)
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict) and isinstance(rpc_response.get("error"), dict):
        code = rpc_response["error"].get("code", code)
        message = rpc_response["error"].get("message", message)

    lowered = message.lower()
    if code == USER_REJECTED_CODE or "rejected" in lowered or "denied" in lowered:
        return WalletError(f"Transaction rejected in wallet: {message}")
    return ChainError(f"Transaction submission failed: {message}")


class Web3ChainClient(ChainClient):
    """Contract calls over a JSON-RPC node via ``web3.AsyncWeb3``.

    With a private key the transaction is signed locally and sent raw;
    otherwise the node's own ``from`` account signs it.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: Optional[str] = None,
        account: Optional[str] = None,
        confirmation_timeout_sec: float = 120.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        self._w3 = w3 if w3 is not None else AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._signer = self._w3.eth.account.from_key(private_key) if private_key else None
        self._account = account
        self._timeout = confirmation_timeout_sec

    @property
    def provider_id(self) -> str:
        return "web3"

    @property
    def default_account(self) -> Optional[str]:
        if self._signer is not None:
            return self._signer.address
        return self._account

    async def submit_transaction(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        sender = self.default_account
        if not sender:
            raise WalletError("No wallet account connected")
        sender = Web3.to_checksum_address(sender)
        call_args = [_checksum_if_address(a) for a in args]

        try:
            contract = self._w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
            call = contract.get_function_by_name(function_name)(*call_args)
            if self._signer is not None:
                tx = await call.build_transaction(
                    {
                        "from": sender,
                        "nonce": await self._w3.eth.get_transaction_count(sender),
                        "chainId": await self._w3.eth.chain_id,
                    }
                )
                signed = self._signer.sign_transaction(tx)
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = await call.transact({"from": sender})
        except Exception as e:
            raise classify_submit_error(e) from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Submitted {function_name} to {contract_address}: {tx_hex}")
        return tx_hex

    async def wait_for_confirmation(self, transaction_hash: str) -> ConfirmationReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(transaction_hash, timeout=self._timeout)
        except TimeExhausted as e:
            raise ChainError(
                f"Transaction {transaction_hash} not confirmed within {self._timeout:.0f}s; it may still be mined"
            ) from e
        except Exception as e:
            raise ChainError(f"Waiting for {transaction_hash} failed: {e}") from e

        return ConfirmationReceipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber"),
            status=int(receipt.get("status", 0)),
            token_id=token_id_from_logs(list(receipt.get("logs", []))),
        )


def _checksum_if_address(value: Any) -> Any:
    if isinstance(value, str) and Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return value
