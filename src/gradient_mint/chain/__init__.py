from .client import ChainClient, ConfirmationReceipt, load_mint_abi, token_id_from_logs
from .registry import build_chain_client
from .simulated import SimulatedChain

__all__ = [
    "ChainClient",
    "ConfirmationReceipt",
    "SimulatedChain",
    "build_chain_client",
    "load_mint_abi",
    "token_id_from_logs",
]
