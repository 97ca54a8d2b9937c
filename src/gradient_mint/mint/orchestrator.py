from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, NoReturn, Optional

from ..chain.client import ChainClient, load_mint_abi
from ..chain.registry import build_chain_client
from ..config import MetadataConfig, MintConfig, ResumePolicy, resolve_contract_address
from ..errors import (
    ChainError,
    ConfigurationError,
    MintBusyError,
    MintError,
    PreconditionError,
    WalletError,
)
from ..journal import MintJournal
from ..render.compositor import GradientCompositor
from ..render.types import RenderedArtifact, SourceImage
from ..schema import GradientSpec, UploadDescriptor, UploadResult
from ..storage.pipeline import Uploader
from ..storage.registry import build_upload_pipeline
from ..storage.remote import RemoteUploader
from .session import (
    AwaitingWallet,
    Checkpoint,
    Done,
    Idle,
    MintSession,
    SessionState,
    Submitted,
    TxPending,
    Uploaded,
    Uploading,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[MintSession], None]


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, MintError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class MintOrchestrator:
    """Drives render -> upload -> wallet-sign -> chain-confirm for one caller.

    Stage failures never escape ``mint``: they are recorded on the session as
    ``last_error`` and the stage reverts to idle, keeping whatever URI or
    transaction hash was already obtained. Precondition violations and
    concurrent calls raise instead, without touching any collaborator.
    """

    def __init__(
        self,
        uploader: Uploader,
        chain: ChainClient,
        contract_address: Optional[str],
        compositor: Optional[GradientCompositor] = None,
        *,
        abi: Optional[list[dict[str, Any]]] = None,
        function_name: str = "mintNFT",
        resume_policy: ResumePolicy = ResumePolicy.RESTART,
        preflight_chain: bool = True,
        metadata: Optional[MetadataConfig] = None,
        journal: Optional[MintJournal] = None,
        on_change: Optional[SessionListener] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._uploader = uploader
        self._chain = chain
        self._contract_address = contract_address
        self._compositor = compositor or GradientCompositor()
        self._abi = abi if abi is not None else load_mint_abi()
        self._function_name = function_name
        self.resume_policy = resume_policy
        self.preflight_chain = preflight_chain
        self._metadata = metadata or MetadataConfig()
        self._journal = journal
        self._on_change = on_change
        self._clock = clock
        self._busy = False
        self._artifact: Optional[RenderedArtifact] = None
        self.session = MintSession()

    @classmethod
    def from_config(
        cls,
        config: MintConfig,
        *,
        uploader: Optional[Uploader] = None,
        chain: Optional[ChainClient] = None,
        remote: bool = False,
        storage_provider: Optional[str] = None,
        on_change: Optional[SessionListener] = None,
    ) -> "MintOrchestrator":
        if uploader is None:
            if remote:
                uploader = RemoteUploader(config.server.upload_url)
            else:
                uploader = build_upload_pipeline(config, provider_override=storage_provider)
        if chain is None:
            chain = build_chain_client(config.chain)
        journal = MintJournal(config.journal_path) if config.journal_path else None
        return cls(
            uploader=uploader,
            chain=chain,
            contract_address=resolve_contract_address(config.chain),
            function_name=config.chain.function_name,
            resume_policy=config.resume_policy,
            preflight_chain=config.preflight_chain,
            metadata=config.metadata,
            journal=journal,
            on_change=on_change,
        )

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def artifact(self) -> Optional[RenderedArtifact]:
        return self._artifact

    def reset(self) -> MintSession:
        if self._busy:
            raise MintBusyError("Cannot reset while a mint is in progress")
        self.session = MintSession()
        self._artifact = None
        self._record("reset")
        return self.session

    def restore(self, checkpoint: Checkpoint) -> MintSession:
        """Seed an idle session with a checkpoint saved by an earlier process."""
        if self._busy:
            raise MintBusyError("Cannot restore while a mint is in progress")
        if not isinstance(self.session.state, Idle):
            raise PreconditionError("Only an idle session can be restored")
        self.session.state = Idle(checkpoint)
        self._record("restored")
        return self.session

    def render(self, source: SourceImage, gradient: GradientSpec) -> RenderedArtifact:
        return self._compositor.render(source, gradient)

    def describe(
        self,
        artifact: RenderedArtifact,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> UploadDescriptor:
        if name is None:
            name = f"{self._metadata.name_prefix} #{int(self._clock() * 1000)}"
        return artifact.describe(name, description if description is not None else self._metadata.description)

    async def mint(
        self,
        artifact: Optional[RenderedArtifact],
        account: Optional[str] = None,
        descriptor: Optional[UploadDescriptor] = None,
        *,
        allow_resubmit: bool = False,
    ) -> MintSession:
        self._claim()
        try:
            return await self._mint(artifact, account, descriptor, allow_resubmit)
        finally:
            self._busy = False

    async def mint_image(
        self,
        source: SourceImage,
        gradient: GradientSpec,
        account: Optional[str] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        allow_resubmit: bool = False,
    ) -> MintSession:
        self._claim()
        try:
            try:
                artifact = self.render(source, gradient)
            except Exception as e:
                return self._fail(e, self.session.checkpoint)
            descriptor = self.describe(artifact, name, description)
            return await self._mint(artifact, account, descriptor, allow_resubmit)
        finally:
            self._busy = False

    async def resume_confirmation(self) -> MintSession:
        """Wait again for a transaction whose confirmation was not observed."""
        self._claim()
        try:
            checkpoint = self.session.checkpoint
            if not isinstance(checkpoint, Submitted):
                self._reject("No submitted transaction to wait for")
            self.session.last_error = None
            self.session.error_payload = None
            return await self._confirm(checkpoint.upload, checkpoint.transaction_hash)
        finally:
            self._busy = False

    def _claim(self) -> None:
        # check-and-set happens before the first await, so it is atomic on the loop
        if self._busy:
            raise MintBusyError()
        if isinstance(self.session.state, Done):
            raise PreconditionError("This mint session is complete; reset it to mint again")
        self._busy = True

    async def _mint(
        self,
        artifact: Optional[RenderedArtifact],
        account: Optional[str],
        descriptor: Optional[UploadDescriptor],
        allow_resubmit: bool,
    ) -> MintSession:
        account = account or self._chain.default_account
        self._check_preconditions(artifact, account, allow_resubmit)

        checkpoint = self.session.checkpoint
        self.session.last_error = None
        self.session.error_payload = None
        self._artifact = artifact
        if descriptor is None:
            descriptor = self.describe(artifact)

        upload = self._reusable_upload(checkpoint, artifact)
        if upload is not None:
            logger.info(f"Reusing upload {upload.canonical_uri} from the previous attempt")
        else:
            self._enter(Uploading())
            try:
                upload = await self._uploader.upload(artifact, descriptor)
            except Exception as e:
                return self._fail(e)

        self._enter(AwaitingWallet(upload, artifact.digest))
        try:
            tx_hash = await self._submit(upload, account)
        except Exception as e:
            return self._fail(e, Uploaded(upload, artifact.digest))

        return await self._confirm(upload, tx_hash)

    async def _submit(self, upload: UploadResult, account: Optional[str]) -> str:
        if not account:
            raise WalletError("Connect a wallet to mint")
        if not self._contract_address:
            raise ConfigurationError("Contract address not configured")

        tx_hash = await self._chain.submit_transaction(
            self._contract_address,
            self._abi,
            self._function_name,
            [account, upload.canonical_uri],
        )
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ChainError("Wallet returned no transaction identifier")
        return tx_hash

    async def _confirm(self, upload: UploadResult, tx_hash: str) -> MintSession:
        self._enter(TxPending(upload, tx_hash))
        try:
            receipt = await self._chain.wait_for_confirmation(tx_hash)
            if not receipt.matches(tx_hash):
                raise ChainError(f"Receipt is for {receipt.transaction_hash}, expected {tx_hash}")
            if not receipt.succeeded:
                raise ChainError(f"Transaction {tx_hash} reverted")
        except Exception as e:
            logger.warning(f"Transaction {tx_hash} may still be mined; do not resubmit blindly")
            return self._fail(e, Submitted(upload, tx_hash))

        self._enter(Done(upload, tx_hash, receipt))
        self._artifact = None
        return self.session

    def _check_preconditions(
        self,
        artifact: Optional[RenderedArtifact],
        account: Optional[str],
        allow_resubmit: bool,
    ) -> None:
        if artifact is None or not artifact.data:
            self._reject("Apply the gradient first: there is no artifact to mint")
        if self.preflight_chain:
            if not account:
                self._reject("Connect a wallet to mint")
            if not self._contract_address:
                self._reject("Contract address not configured")

        checkpoint = self.session.checkpoint
        if isinstance(checkpoint, Submitted):
            if not allow_resubmit:
                self._reject(
                    f"Transaction {checkpoint.transaction_hash} may still be mined; "
                    "wait for it with resume or pass allow_resubmit to mint again"
                )
            logger.warning(f"Minting again while {checkpoint.transaction_hash} is unconfirmed")

    def _reusable_upload(self, checkpoint: Optional[Checkpoint], artifact: RenderedArtifact) -> Optional[UploadResult]:
        if self.resume_policy is not ResumePolicy.REUSE_UPLOAD:
            return None
        if isinstance(checkpoint, Uploaded) and checkpoint.artifact_digest == artifact.digest:
            return checkpoint.upload
        return None

    def _reject(self, message: str) -> NoReturn:
        self.session.last_error = message
        self._record("rejected", error=message)
        logger.warning(message)
        raise PreconditionError(message)

    def _fail(self, exc: BaseException, checkpoint: Optional[Checkpoint] = None) -> MintSession:
        message = f"Mint failed: {describe_error(exc)}"
        if isinstance(exc, MintError):
            logger.error(message)
        else:
            logger.exception(message)
        self.session.last_error = message
        self.session.error_payload = getattr(exc, "payload", None)
        self._enter(Idle(checkpoint))
        return self.session

    def _enter(self, state: SessionState) -> None:
        self.session.state = state
        logger.info(f"Mint stage -> {state.stage.value}")
        self._record("stage")
        if self._on_change is None:
            return
        # listeners observe the session; they cannot stop a stage transition
        try:
            self._on_change(self.session)
        except Exception as e:
            logger.warning(f"Session listener failed at {state.stage.value}: {describe_error(e)}")

    def _record(self, event: str, **fields: Any) -> None:
        if self._journal is None:
            return
        snapshot = self.session.snapshot()
        snapshot.update(fields)
        try:
            self._journal.record(event, **snapshot)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write mint journal {self._journal.log_path}: {e}")
