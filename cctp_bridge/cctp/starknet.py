"""Starknet destination chain adapter.

Mint USDC on Starknet by calling ``receive_message`` on the Cairo
MessageTransmitterV2 contract.

Cairo takes ``message`` and ``attestation`` as ``ByteArray`` values, so both
are serialised with :py:func:`cctp_bridge.cctp.encoding.bytes_to_byte_array_calldata`
and the two calldata lists are concatenated.

starknet-py is asyncio native. The adapter runs each call with :py:func:`asyncio.run`
so the bridge pipeline stays synchronous.
"""

import asyncio
import logging

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.account.account import Account
from starknet_py.net.client_models import Call
from starknet_py.net.full_node_client import FullNodeClient
from starknet_py.net.models import StarknetChainId
from starknet_py.net.signer.stark_curve_signer import KeyPair

from cctp_bridge.cctp.adapter import DestinationChainAdapter
from cctp_bridge.cctp.attestation import CCTPAttestation
from cctp_bridge.cctp.config import CCTPTransferConfig
from cctp_bridge.cctp.constants import CCTP_DOMAIN_STARKNET, STARKNET_SEPOLIA_MESSAGE_TRANSMITTER
from cctp_bridge.cctp.encoding import bytes_to_byte_array_calldata, pad_to_bytes32
from cctp_bridge.utils import get_url_domain

logger = logging.getLogger(__name__)

#: Entry point on the Cairo message transmitter
RECEIVE_MESSAGE_ENTRY_POINT = "receive_message"


def encode_receive_message_calldata(message: bytes, attestation: bytes) -> list[int]:
    """Calldata for ``receive_message(message: ByteArray, attestation: ByteArray)``."""
    return bytes_to_byte_array_calldata(message) + bytes_to_byte_array_calldata(attestation)


def prepare_receive_message_call(
    message: bytes,
    attestation: bytes,
    message_transmitter: str = STARKNET_SEPOLIA_MESSAGE_TRANSMITTER,
) -> Call:
    """Build the unsigned ``receive_message`` call."""
    return Call(
        to_addr=int(message_transmitter, 16),
        selector=get_selector_from_name(RECEIVE_MESSAGE_ENTRY_POINT),
        calldata=encode_receive_message_calldata(message, attestation),
    )


class StarknetDestinationAdapter(DestinationChainAdapter):
    """Mint USDC on Starknet."""

    def __init__(
        self,
        account: Account,
        node_url: str,
        message_transmitter: str = STARKNET_SEPOLIA_MESSAGE_TRANSMITTER,
        domain: int = CCTP_DOMAIN_STARKNET,
    ):
        self.account = account
        self.node_url = node_url
        self.message_transmitter = message_transmitter
        self.domain = domain

    def __repr__(self):
        return f"<StarknetDestinationAdapter account:{hex(self.account.address)} rpc:{get_url_domain(self.node_url)}>"

    @classmethod
    def create(cls, config: CCTPTransferConfig) -> "StarknetDestinationAdapter":
        """Connect the configured Starknet account."""
        client = FullNodeClient(node_url=config.starknet_rpc)
        account = Account(
            address=int(config.starknet_account_address, 16),
            client=client,
            key_pair=KeyPair.from_private_key(int(config.starknet_private_key, 16)),
            chain=StarknetChainId.SEPOLIA,
        )
        return cls(
            account=account,
            node_url=config.starknet_rpc,
            message_transmitter=config.starknet_message_transmitter,
            domain=config.destination_domain,
        )

    def encode_mint_recipient(self, address: str) -> bytes:
        # Felt addresses are at most 252 bits, left-pad to bytes32
        return pad_to_bytes32(address)

    def encode_mint_call(self, attestation: CCTPAttestation) -> Call:
        return prepare_receive_message_call(
            attestation.message,
            attestation.attestation,
            self.message_transmitter,
        )

    async def _execute_and_wait(self, call: Call) -> int:
        resp = await self.account.execute_v3(calls=[call], auto_estimate=True)
        logger.info("Starknet receive_message broadcasted: %s", hex(resp.transaction_hash))
        await self.account.client.wait_for_tx(resp.transaction_hash)
        return resp.transaction_hash

    def send_mint(self, mint_call: Call) -> str:
        tx_hash = asyncio.run(self._execute_and_wait(mint_call))
        logger.info("Starknet receive_message confirmed: %s", hex(tx_hash))
        return hex(tx_hash)
