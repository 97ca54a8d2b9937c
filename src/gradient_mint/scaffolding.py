"""Starter configuration rendered from Jinja templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .config import CONFIG_FILENAME, ResumePolicy, load_config

TEMPLATE_DIR = Path(__file__).with_name("templates")


@dataclass
class ScaffoldResult:
    """Result of scaffold generation."""

    config_path: Path
    files_created: list[str]


def _create_template_env(template_dir: Optional[Path] = None) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_config_scaffold(
    target_dir: Path,
    storage_provider: str = "local",
    chain_provider: str = "simulated",
    rpc_url: str = "https://mainnet.base.org",
    pinning_endpoint: str = "https://node.lighthouse.storage/api/v0/add",
    resume_policy: ResumePolicy = ResumePolicy.RESTART,
    uri_scheme: str = "ipfs",
    port: int = 8000,
    template_dir: Optional[Path] = None,
    force: bool = False,
) -> ScaffoldResult:
    """Render ``mint.toml`` into target_dir and check that it loads.

    Raises:
        FileExistsError: If the config already exists and force=False.
        ConfigurationError: If the rendered file does not validate.
    """
    config_path = target_dir / CONFIG_FILENAME
    if config_path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {config_path}")

    env = _create_template_env(template_dir)
    params = {
        "storage_provider": storage_provider,
        "chain_provider": chain_provider,
        "rpc_url": rpc_url,
        "pinning_endpoint": pinning_endpoint,
        "resume_policy": ResumePolicy(resume_policy).value,
        "uri_scheme": uri_scheme,
        "port": port,
    }

    target_dir.mkdir(parents=True, exist_ok=True)
    content = env.get_template("mint.toml.j2").render(**params)
    config_path.write_text(content, encoding="utf-8")
    load_config(config_path)

    return ScaffoldResult(config_path=config_path, files_created=[CONFIG_FILENAME])
