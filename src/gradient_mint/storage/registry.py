from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import (
    LocalStorageConfig,
    MintConfig,
    StorageConfig,
    find_config,
    load_config,
    resolve_secret,
)
from ..errors import ConfigurationError
from .client import StorageClient
from .pipeline import UploadPipeline
from .providers.local import LocalStorage
from .providers.pinning import PinningStorage


class StorageRegistry:
    def __init__(self, config: StorageConfig):
        self._config = config
        self._providers: dict[str, StorageClient] = {}

    @classmethod
    def from_config_file(cls, config_path: Optional[Path] = None) -> "StorageRegistry":
        if config_path is None:
            config_path = find_config()
        config = load_config(config_path)
        return cls(config.storage)

    @property
    def config(self) -> StorageConfig:
        return self._config

    def get_provider(self, name: str) -> StorageClient:
        if name in self._providers:
            return self._providers[name]

        provider = self._instantiate_provider(name)
        self._providers[name] = provider
        return provider

    def get_default_provider(self) -> StorageClient:
        return self.get_provider(self._config.default_provider)

    def credential_for(self, name: str) -> Optional[str]:
        if name == "pinning" and self._config.providers.pinning is not None:
            return resolve_secret(self._config.providers.pinning.token_env)
        return None

    def credential_hint(self, name: str) -> str:
        if name == "pinning" and self._config.providers.pinning is not None:
            return self._config.providers.pinning.token_env
        return "storage credential"

    def _instantiate_provider(self, name: str) -> StorageClient:
        if name == "local":
            return LocalStorage(self._config.providers.local or LocalStorageConfig())

        if name == "pinning":
            if self._config.providers.pinning is None:
                raise ConfigurationError(
                    "Provider 'pinning' is not configured in mint.toml. "
                    "Add [storage.providers.pinning] section."
                )
            return PinningStorage(self._config.providers.pinning)

        available = self._get_available_providers()
        raise ConfigurationError(
            f"Unknown storage provider: '{name}'. Available providers: {sorted(available)}"
        )

    def _get_available_providers(self) -> set[str]:
        providers = {"local"}
        if self._config.providers.pinning is not None:
            providers.add("pinning")
        return providers


def build_upload_pipeline(config: MintConfig, provider_override: Optional[str] = None) -> UploadPipeline:
    registry = StorageRegistry(config.storage)
    name = provider_override or config.storage.default_provider
    storage = registry.get_provider(name)
    return UploadPipeline(
        storage,
        credential=registry.credential_for(name),
        scheme=config.uri_scheme,
        credential_hint=registry.credential_hint(name),
    )
