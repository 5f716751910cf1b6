"""Run a complete CCTP V2 transfer.

The four stages run strictly in order, one transfer per call:

1. **Approve**: grant TokenMessengerV2 allowance over USDC (EVM sources only)
2. **Burn**: ``depositForBurn()`` or the Solana ``deposit_for_burn`` instruction
3. **Attest**: poll Circle's Iris API until the burn message is signed
4. **Mint**: relay message and attestation with ``receiveMessage()``
   or Starknet ``receive_message``

The driver does not know the chains. It talks to a
:py:class:`~cctp_bridge.cctp.adapter.SourceChainAdapter` and a
:py:class:`~cctp_bridge.cctp.adapter.DestinationChainAdapter`
created from the configuration.

Example::

    from dotenv import load_dotenv

    from cctp_bridge.cctp.bridge import bridge_usdc_cctp, create_destination_adapter, create_source_adapter
    from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig

    load_dotenv()
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia)
    result = bridge_usdc_cctp(
        config,
        create_source_adapter(config),
        create_destination_adapter(config),
    )
    print(f"Minted in {result.mint.transaction_id}")
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable

import requests
from tabulate import tabulate

from cctp_bridge.cctp.adapter import (
    CCTPBurnReceipt,
    CCTPMintReceipt,
    DestinationChainAdapter,
    SourceChainAdapter,
)
from cctp_bridge.cctp.attestation import AttestationRetryConfig, CCTPAttestation, fetch_attestation
from cctp_bridge.cctp.config import CCTPConfigurationError, CCTPTransferConfig, ChainFamily
from cctp_bridge.utils import format_usdc

logger = logging.getLogger(__name__)


class CCTPBridgePhase(enum.Enum):
    """Stage of a transfer, reported to the progress callback."""

    approving = "approving"
    burning = "burning"
    attesting = "attesting"
    minting = "minting"
    complete = "complete"


#: Called when the transfer enters a new phase
CCTPProgressCallback = Callable[[CCTPBridgePhase], None]


@dataclass(slots=True, frozen=True)
class CCTPBridgeResult:
    """Everything that happened during a transfer."""

    #: Approval transaction, ``None`` when the source chain has no approvals
    approve_tx: str | None

    burn: CCTPBurnReceipt

    attestation: CCTPAttestation

    mint: CCTPMintReceipt


def create_source_adapter(config: CCTPTransferConfig) -> SourceChainAdapter:
    """Connect to the source chain of the transfer."""
    match config.source.family:
        case ChainFamily.evm:
            from cctp_bridge.cctp.evm import EVMSourceAdapter

            return EVMSourceAdapter.create(config)
        case ChainFamily.solana:
            from cctp_bridge.cctp.solana import SolanaSourceAdapter

            return SolanaSourceAdapter.create(config)
        case _:
            raise CCTPConfigurationError(f"{config.source.get_human_name()} cannot be a CCTP source")


def create_destination_adapter(config: CCTPTransferConfig) -> DestinationChainAdapter:
    """Connect to the destination chain of the transfer."""
    match config.destination.family:
        case ChainFamily.evm:
            from cctp_bridge.cctp.evm import EVMDestinationAdapter

            return EVMDestinationAdapter.create(config)
        case ChainFamily.starknet:
            from cctp_bridge.cctp.starknet import StarknetDestinationAdapter

            return StarknetDestinationAdapter.create(config)
        case _:
            raise CCTPConfigurationError(f"{config.destination.get_human_name()} cannot be a CCTP destination")


def bridge_usdc_cctp(
    config: CCTPTransferConfig,
    source: SourceChainAdapter,
    destination: DestinationChainAdapter,
    cancel_event: threading.Event | None = None,
    session: requests.Session | None = None,
    retry_config: AttestationRetryConfig | None = None,
    progress_callback: CCTPProgressCallback | None = None,
) -> CCTPBridgeResult:
    """Move USDC from the source chain to the destination chain.

    Blocks until the mint is confirmed. Any failure propagates,
    a burn that was already confirmed is not rolled back.

    :param config:
        Transfer request

    :param source:
        Adapter for the source chain, see :py:func:`create_source_adapter`

    :param destination:
        Adapter for the destination chain, see :py:func:`create_destination_adapter`

    :param cancel_event:
        Set from another thread to abort attestation polling

    :param session:
        HTTP session for the Iris API

    :param retry_config:
        Backoff for Iris transport errors

    :param progress_callback:
        Receives each :py:class:`CCTPBridgePhase` as the transfer enters it

    :return:
        Transaction ids of all stages and the attestation
    """

    def _enter(phase: CCTPBridgePhase):
        if progress_callback is not None:
            progress_callback(phase)

    assert source.domain == config.source_domain, f"Source adapter is for domain {source.domain}, config says {config.source_domain}"
    assert destination.domain == config.destination_domain, f"Destination adapter is for domain {destination.domain}, config says {config.destination_domain}"
    assert source.amount == config.amount, f"Source adapter burns {source.amount}, config says {config.amount}"

    source_name = config.source.get_human_name()
    destination_name = config.destination.get_human_name()

    logger.info(
        "Bridging %s from %s to %s, recipient %s, max fee %s, finality threshold %d",
        format_usdc(config.amount),
        source_name,
        destination_name,
        config.recipient,
        format_usdc(config.max_fee),
        config.min_finality_threshold,
    )

    _enter(CCTPBridgePhase.approving)
    logger.info("Approving USDC for burn on %s", source_name)
    approve_tx = source.approve_for_burn(config.burn_allowance)
    if approve_tx:
        logger.info("Approval complete: %s", approve_tx)
    else:
        logger.info("No approval needed on %s", source_name)

    _enter(CCTPBridgePhase.burning)
    mint_recipient = destination.encode_mint_recipient(config.recipient)
    logger.info("Burning %s on %s, mint recipient 0x%s", format_usdc(config.amount), source_name, mint_recipient.hex())
    burn = source.burn(mint_recipient, config.amount)
    logger.info("Burn complete: %s", burn.transaction_id)

    _enter(CCTPBridgePhase.attesting)
    logger.info("Waiting for attestation of %s from %s", burn.transaction_id, config.iris_api_url)
    attestation = fetch_attestation(
        source_domain=burn.source_domain,
        transaction_hash=burn.transaction_id,
        api_base_url=config.iris_api_url,
        poll_interval=config.poll_interval,
        timeout=config.attestation_timeout,
        max_attempts=config.attestation_max_attempts,
        cancel_event=cancel_event,
        retry_config=retry_config,
        session=session,
    )
    logger.info("Attestation received, message %d bytes", len(attestation.message))

    _enter(CCTPBridgePhase.minting)
    logger.info("Minting on %s", destination_name)
    mint = destination.mint(attestation)
    logger.info("Mint complete: %s", mint.transaction_id)

    _enter(CCTPBridgePhase.complete)
    logger.info("Bridged %s from %s to %s", format_usdc(burn.amount), source_name, destination_name)

    return CCTPBridgeResult(
        approve_tx=approve_tx,
        burn=burn,
        attestation=attestation,
        mint=mint,
    )


def format_bridge_result(config: CCTPTransferConfig, result: CCTPBridgeResult) -> str:
    """Human readable summary table of a finished transfer."""
    rows = [
        ["Source", config.source.get_human_name()],
        ["Destination", config.destination.get_human_name()],
        ["Recipient", config.recipient],
        ["Amount", format_usdc(result.burn.amount)],
        ["Approve tx", result.approve_tx or "-"],
        ["Burn tx", result.burn.transaction_id],
        ["Mint tx", result.mint.transaction_id],
    ]
    return tabulate(rows, tablefmt="rounded_outline")
