"""Circle CCTP V2 message receiving on EVM chains.

Complete cross-chain USDC transfers by relaying attestation to
the destination chain's MessageTransmitterV2.

After obtaining the attestation from :mod:`cctp_bridge.cctp.attestation`,
call ``receiveMessage()`` on the destination chain to mint USDC.

Example::

    from cctp_bridge.cctp.receive import prepare_receive_message

    receive_fn = prepare_receive_message(
        web3_destination,
        message=attestation.message,
        attestation=attestation.attestation,
    )
    tx_hash = hot_wallet.transact_and_broadcast_with_contract(receive_fn)
"""

import logging

from eth_typing import HexAddress
from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction

from cctp_bridge.abi import get_deployed_contract
from cctp_bridge.cctp.constants import MESSAGE_TRANSMITTER_V2_TESTNET

logger = logging.getLogger(__name__)


def get_message_transmitter_v2(
    web3: Web3,
    address: HexAddress | str = MESSAGE_TRANSMITTER_V2_TESTNET,
) -> Contract:
    """Load the MessageTransmitterV2 contract.

    :param web3:
        Web3 connection

    :param address:
        Deployment address, testnet by default

    :return:
        Contract proxy for MessageTransmitterV2
    """
    return get_deployed_contract(
        web3,
        "cctp/MessageTransmitterV2.json",
        address,
    )


def prepare_receive_message(
    web3: Web3,
    message: bytes,
    attestation: bytes,
    message_transmitter: HexAddress | str = MESSAGE_TRANSMITTER_V2_TESTNET,
) -> ContractFunction:
    """Build a bound ``receiveMessage()`` call on MessageTransmitterV2.

    This relays the attestation to the destination chain, causing
    USDC to be minted to the recipient specified in the original
    ``depositForBurn()`` call.

    Anyone can call this function (unless ``destinationCaller`` was
    set in the original burn). No special permissions are required.

    :param web3:
        Web3 connection to the **destination** chain

    :param message:
        The CCTP message bytes from the attestation service

    :param attestation:
        The signed attestation bytes from the attestation service

    :return:
        Bound contract function ready to be transacted
    """
    contract = get_message_transmitter_v2(web3, message_transmitter)

    logger.info(
        "Preparing CCTP receiveMessage: message_len=%d, attestation_len=%d",
        len(message),
        len(attestation),
    )

    return contract.functions.receiveMessage(
        message,
        attestation,
    )
