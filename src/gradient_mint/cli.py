from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .canonical import stable_json
from .chain.registry import build_chain_client
from .config import MintConfig, ResumePolicy, find_config, load_config, resolve_contract_address
from .errors import ConfigurationError, MintError, PreconditionError, RenderError, ValidationError
from .mint.orchestrator import MintOrchestrator
from .mint.session import Checkpoint, Done, MintSession, checkpoint_from_dict, checkpoint_to_dict
from .render.compositor import GradientCompositor
from .render.types import RenderedArtifact, SourceImage
from .scaffolding import render_config_scaffold
from .schema import GradientSpec
from .storage.registry import StorageRegistry, build_upload_pipeline

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()
logger = logging.getLogger(__name__)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")):
    """Blend a gradient over a photo, publish it, and mint it."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, markup=False)],
        force=True,
    )


def _load(config_path: Optional[Path]) -> MintConfig:
    if config_path is not None:
        return load_config(config_path)
    found = find_config()
    if found.exists():
        return load_config(found)
    logger.debug("No mint.toml found; using defaults")
    return MintConfig()


def _parse_gradient(value: str) -> GradientSpec:
    try:
        return GradientSpec.model_validate(value)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid gradient '{value}'", detail=str(e)) from e


def _fail(message: str, code: int) -> typer.Exit:
    console.print(f"[bold red]{escape(message)}[/bold red]")
    return typer.Exit(code=code)


def _print_stage(session: MintSession) -> None:
    if session.stage_text:
        console.print(f"[cyan]{session.stage_text}[/cyan]")


def _load_checkpoint(path: Path) -> Optional[Checkpoint]:
    if not path.exists():
        return None
    try:
        return checkpoint_from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (ValueError, KeyError) as e:
        raise ConfigurationError(f"Unreadable mint checkpoint: {e}", path=path) from e


def _save_checkpoint(path: Path, session: MintSession) -> None:
    checkpoint = session.checkpoint
    if checkpoint is None:
        if isinstance(session.state, Done):
            path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(stable_json(checkpoint_to_dict(checkpoint)), encoding="utf-8")


def _report(session: MintSession) -> None:
    if session.last_error:
        console.print(f"[bold red]{escape(session.last_error)}[/bold red]")
        if session.transaction_hash:
            console.print(
                f"[yellow]Transaction {session.transaction_hash} may still be mined. "
                "Run 'gradient-mint resume' before minting again.[/yellow]"
            )
        elif session.artifact_uri:
            console.print(f"Uploaded metadata kept: {session.artifact_uri}")
        raise typer.Exit(code=1)

    receipt = session.receipt
    table = Table(title="Mint")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Metadata URI", session.artifact_uri or "")
    table.add_row("Transaction", session.transaction_hash or "")
    if receipt is not None:
        table.add_row("Block", str(receipt.block_number))
        table.add_row("Token ID", "" if receipt.token_id is None else str(receipt.token_id))
    console.print(table)
    console.print("[bold green]NFT minted[/bold green]")


def _run_session(config: MintConfig, coro: Coroutine[Any, Any, MintSession]) -> None:
    try:
        session = asyncio.run(coro)
    except PreconditionError as e:
        raise _fail(e.message, 2) from e
    _save_checkpoint(config.pending_path, session)
    _report(session)


@app.command()
def init(
    directory: Path = typer.Argument(Path("."), file_okay=False),
    storage: str = typer.Option("local", "--storage", help="local or pinning"),
    chain: str = typer.Option("simulated", "--chain", help="simulated or web3"),
    rpc_url: str = typer.Option("https://mainnet.base.org", "--rpc-url"),
    resume_policy: ResumePolicy = typer.Option(ResumePolicy.RESTART, "--resume-policy"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing mint.toml"),
):
    """Write a starter mint.toml."""
    try:
        result = render_config_scaffold(
            directory,
            storage_provider=storage,
            chain_provider=chain,
            rpc_url=rpc_url,
            resume_policy=resume_policy,
            force=force,
        )
    except FileExistsError as e:
        console.print(f"[bold red]Config already exists:[/bold red] {directory / 'mint.toml'}")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=2) from e
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e

    console.print(f"[bold green]Created[/bold green] {result.config_path}")


@app.command()
def render(
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    gradient: str = typer.Option(..., "--gradient", "-g", help="Two colors, e.g. '#ff0080,#7928ca'"),
    output: Path = typer.Option(Path("gradient-nft.png"), "--output", "-o"),
    opacity: float = typer.Option(0.4, "--opacity", min=0.0, max=1.0),
):
    """Blend a gradient over IMAGE and write a PNG."""
    try:
        spec = _parse_gradient(gradient)
    except ValidationError as e:
        raise _fail(e.message, 2) from e
    try:
        artifact = GradientCompositor(opacity).render(SourceImage.from_path(image), spec)
    except RenderError as e:
        raise _fail(e.message, 1) from e

    artifact.save(output)
    console.print(f"Wrote {output} ({artifact.width}x{artifact.height}, sha256 {artifact.digest[:12]})")


@app.command()
def upload(
    artifact_path: Path = typer.Argument(..., exists=True, dir_okay=False),
    name: Optional[str] = typer.Option(None, "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default storage provider"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """Publish an already rendered image and its metadata document."""
    try:
        config = _load(config_path)
        pipeline = build_upload_pipeline(config, provider_override=provider)
        source = SourceImage.from_path(artifact_path)
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e
    except RenderError as e:
        raise _fail(e.message, 1) from e

    artifact = RenderedArtifact(
        data=source.data,
        width=source.width,
        height=source.height,
        mime_type=source.mime_type,
        filename=artifact_path.name,
    )
    descriptor = artifact.describe(
        name or config.metadata.name_prefix,
        description if description is not None else config.metadata.description,
    )
    try:
        result = asyncio.run(pipeline.upload(artifact, descriptor))
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e
    except MintError as e:
        raise _fail(f"Upload failed: {e.message}", 1) from e

    console.print(f"[bold green]Metadata[/bold green] {result.canonical_uri}")
    console.print(f"Image {result.image_uri}")


@app.command()
def mint(
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    gradient: str = typer.Option(..., "--gradient", "-g", help="Two colors, e.g. '#ff0080,#7928ca'"),
    account: Optional[str] = typer.Option(None, "--account", help="Recipient and signer address"),
    remote: bool = typer.Option(False, "--remote", help="Upload through the HTTP upload endpoint"),
    name: Optional[str] = typer.Option(None, "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default storage provider"),
    allow_resubmit: bool = typer.Option(
        False, "--allow-resubmit", help="Mint even though an earlier transaction is unconfirmed"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """Render, upload and mint IMAGE in one run."""
    try:
        config = _load(config_path)
        spec = _parse_gradient(gradient)
        source = SourceImage.from_path(image)
        orchestrator = MintOrchestrator.from_config(
            config, remote=remote, storage_provider=provider, on_change=_print_stage
        )
        checkpoint = _load_checkpoint(config.pending_path)
    except (ConfigurationError, ValidationError) as e:
        raise _fail(e.message, 2) from e
    except RenderError as e:
        raise _fail(e.message, 1) from e

    if checkpoint is not None:
        orchestrator.restore(checkpoint)

    _run_session(
        config,
        orchestrator.mint_image(
            source,
            spec,
            account,
            name=name,
            description=description,
            allow_resubmit=allow_resubmit,
        ),
    )


@app.command()
def resume(config_path: Optional[Path] = typer.Option(None, "--config", "-c")):
    """Wait again for the transaction of an interrupted mint."""
    try:
        config = _load(config_path)
        orchestrator = MintOrchestrator.from_config(config, on_change=_print_stage)
        checkpoint = _load_checkpoint(config.pending_path)
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e

    if checkpoint is None:
        raise _fail("No interrupted mint to resume", 2)
    orchestrator.restore(checkpoint)
    _run_session(config, orchestrator.resume_confirmation())


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """Run the HTTP upload endpoint."""
    import uvicorn

    from .server.app import create_app

    try:
        config = _load(config_path)
        api = create_app(config)
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e

    uvicorn.run(api, host=host or config.server.host, port=port or config.server.port)


@app.command()
def doctor(config_path: Optional[Path] = typer.Option(None, "--config", "-c")):
    """Check configuration, credentials and collaborators."""
    try:
        config = _load(config_path)
    except ConfigurationError as e:
        raise _fail(e.message, 2) from e

    table = Table(title="gradient-mint doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")
    problems = 0

    def row(check: str, ok: bool, detail: str) -> None:
        nonlocal problems
        if not ok:
            problems += 1
        table.add_row(check, "[green]ok[/green]" if ok else "[red]missing[/red]", detail)

    registry = StorageRegistry(config.storage)
    name = config.storage.default_provider
    try:
        storage = registry.get_provider(name)
        needs = storage.requires_credential
        row("storage", True, name)
        row(
            "storage credential",
            not needs or registry.credential_for(name) is not None,
            registry.credential_hint(name) if needs else "not required",
        )
    except ConfigurationError as e:
        row("storage", False, escape(e.message))

    try:
        chain = build_chain_client(config.chain)
        row("chain", True, chain.provider_id)
        row("account", chain.default_account is not None, chain.default_account or "pass --account to mint")
    except MintError as e:
        row("chain", False, escape(e.message))

    contract = resolve_contract_address(config.chain)
    row("contract address", contract is not None, contract or config.chain.contract_address_env)

    console.print(table)
    if problems:
        raise typer.Exit(code=2)


if __name__ == "__main__":
    app()
