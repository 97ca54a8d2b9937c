from __future__ import annotations

from ..config import ChainConfig, resolve_secret
from .client import ChainClient
from .simulated import DEV_ACCOUNT, SimulatedChain


def build_chain_client(config: ChainConfig) -> ChainClient:
    if config.provider == "simulated":
        return SimulatedChain(account=config.account or DEV_ACCOUNT)

    from .web3_client import Web3ChainClient

    return Web3ChainClient(
        rpc_url=config.rpc_url,
        private_key=resolve_secret(config.private_key_env),
        account=config.account,
        confirmation_timeout_sec=config.confirmation_timeout_sec,
    )
