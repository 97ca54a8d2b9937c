from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ConfigurationError

CONFIG_FILENAME = "mint.toml"


class ResumePolicy(str, Enum):
    RESTART = "restart"
    REUSE_UPLOAD = "reuse_upload"


class LocalStorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    root: Path = Path(".gradient_mint/store")


class PinningStorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    endpoint: str = "https://node.lighthouse.storage/api/v0/add"
    token_env: str = "STORAGE_TOKEN"
    content_id_field: str = "Hash"
    timeout_sec: float = Field(default=120.0, gt=0)


class StorageProvidersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    local: Optional[LocalStorageConfig] = None
    pinning: Optional[PinningStorageConfig] = None


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_provider: str = "local"
    providers: StorageProvidersConfig = StorageProvidersConfig()

    @field_validator("default_provider")
    @classmethod
    def validate_default_provider(cls, v: str) -> str:
        if not v:
            raise ValueError("default_provider cannot be empty")
        return v

    @model_validator(mode="after")
    def check_default_provider_exists(self) -> "StorageConfig":
        provider_names = set()
        if self.providers.local is not None:
            provider_names.add("local")
        if self.providers.pinning is not None:
            provider_names.add("pinning")
        if not provider_names:
            provider_names.add("local")
        if self.default_provider not in provider_names:
            raise ValueError(
                f"default_provider '{self.default_provider}' is not configured. "
                f"Available providers: {sorted(provider_names)}"
            )
        return self


class ChainConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    provider: Literal["web3", "simulated"] = "simulated"
    rpc_url: str = "https://mainnet.base.org"
    contract_address: Optional[str] = None
    contract_address_env: str = "CONTRACT_ADDRESS"
    private_key_env: str = "MINTER_PRIVATE_KEY"
    account: Optional[str] = None
    function_name: str = "mintNFT"
    confirmation_timeout_sec: float = Field(default=120.0, gt=0)


class MetadataConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name_prefix: str = "Gradient NFT"
    description: str = "Generated with gradient effect on Base"


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    upload_url: str = "http://127.0.0.1:8000/api/ipfs/upload"


class MintConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    uri_scheme: str = "ipfs"
    resume_policy: ResumePolicy = ResumePolicy.RESTART
    preflight_chain: bool = True
    journal_path: Optional[Path] = None
    pending_path: Path = Path(".gradient_mint/pending.json")
    storage: StorageConfig = StorageConfig()
    chain: ChainConfig = ChainConfig()
    metadata: MetadataConfig = MetadataConfig()
    server: ServerConfig = ServerConfig()

    @field_validator("uri_scheme")
    @classmethod
    def validate_uri_scheme(cls, v: str) -> str:
        v = v.strip().rstrip(":/")
        if not v:
            raise ValueError("uri_scheme cannot be empty")
        return v


def resolve_secret(env_name: str) -> Optional[str]:
    value = (os.getenv(env_name) or "").strip()
    return value or None


def resolve_contract_address(chain: ChainConfig) -> Optional[str]:
    if chain.contract_address and chain.contract_address.strip():
        return chain.contract_address.strip()
    return resolve_secret(chain.contract_address_env)


def load_config(config_path: Path) -> MintConfig:
    if not config_path.exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}\n"
            "Run 'gradient-mint init' or copy mint.toml.example to mint.toml",
            path=config_path,
        )

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore

    try:
        text = config_path.read_text(encoding="utf-8")
        data = tomllib.loads(text)
    except Exception as e:
        raise ConfigurationError(f"Failed to parse TOML: {e}", path=config_path) from e

    try:
        return MintConfig.model_validate(data)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration: {e}", path=config_path) from e


def find_config(start_dir: Optional[Path] = None) -> Path:
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        current = current.parent

    return start_dir / CONFIG_FILENAME
