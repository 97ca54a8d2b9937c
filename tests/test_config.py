from __future__ import annotations

from pathlib import Path

import pytest

from gradient_mint.config import (
    ChainConfig,
    MintConfig,
    ResumePolicy,
    find_config,
    load_config,
    resolve_contract_address,
)
from gradient_mint.errors import ConfigurationError

REPO_ROOT = Path(__file__).resolve().parents[1]


class TestLoadConfig:
    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "mint.toml"
        config_file.write_text("""
resume_policy = "reuse_upload"

[storage]
default_provider = "pinning"

[storage.providers.pinning]
endpoint = "https://api.pinata.cloud/pinning/pinFileToIPFS"
content_id_field = "IpfsHash"

[chain]
provider = "web3"
contract_address = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
""")
        config = load_config(config_file)

        assert config.resume_policy is ResumePolicy.REUSE_UPLOAD
        assert config.storage.default_provider == "pinning"
        assert config.storage.providers.pinning.content_id_field == "IpfsHash"
        assert config.chain.provider == "web3"
        assert config.uri_scheme == "ipfs"

    def test_example_config_is_valid(self) -> None:
        config = load_config(REPO_ROOT / "mint.toml.example")
        assert config.storage.default_provider == "pinning"

    def test_missing_config_produces_helpful_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "mint.toml")

        error_msg = str(exc_info.value)
        assert "not found" in error_msg.lower()
        assert "gradient-mint init" in error_msg

    def test_invalid_toml_produces_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "mint.toml"
        config_file.write_text("this is not valid [toml")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)
        assert "toml" in str(exc_info.value).lower()
        assert exc_info.value.path == config_file

    def test_unknown_keys_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "mint.toml"
        config_file.write_text("""
[chain]
private_key = "0xdeadbeef"
""")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)
        assert "private_key" in str(exc_info.value)

    def test_unconfigured_default_provider_produces_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "mint.toml"
        config_file.write_text("""
[storage]
default_provider = "pinning"
""")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)

        error_msg = str(exc_info.value)
        assert "pinning" in error_msg
        assert "local" in error_msg

    def test_uri_scheme_normalized(self) -> None:
        assert MintConfig(uri_scheme="ar://").uri_scheme == "ar"


class TestFindConfig:
    def test_walks_up_parent_directories(self, tmp_path: Path) -> None:
        (tmp_path / "mint.toml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config(nested) == (tmp_path / "mint.toml").resolve()

    def test_returns_default_location_when_absent(self, tmp_path: Path) -> None:
        found = find_config(tmp_path)
        assert found.name == "mint.toml"


class TestResolveContractAddress:
    def test_explicit_address_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTRACT_ADDRESS", "0xenv")
        assert resolve_contract_address(ChainConfig(contract_address=" 0xfile ")) == "0xfile"

    def test_falls_back_to_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTRACT_ADDRESS", "0xenv")
        assert resolve_contract_address(ChainConfig()) == "0xenv"

    def test_blank_environment_is_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTRACT_ADDRESS", "   ")
        assert resolve_contract_address(ChainConfig()) is None
