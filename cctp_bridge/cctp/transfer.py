"""Circle CCTP V2 cross-chain USDC transfers from EVM chains.

Initiate cross-chain USDC transfers using Circle's CCTP V2 protocol.

Example of preparing a cross-chain transfer from Base Sepolia to Ethereum Sepolia::

    from web3 import Web3
    from cctp_bridge.cctp.constants import CCTP_DOMAIN_ETHEREUM, USDC_TESTNET_TOKEN
    from cctp_bridge.cctp.encoding import encode_mint_recipient
    from cctp_bridge.cctp.transfer import prepare_deposit_for_burn, prepare_approve_for_burn

    web3 = Web3(Web3.HTTPProvider("https://sepolia.base.org"))
    usdc = USDC_TESTNET_TOKEN[84532]

    # First approve USDC spending
    approve_fn = prepare_approve_for_burn(web3, amount=1_000_000, burn_token=usdc)  # 1 USDC

    # Then initiate the cross-chain transfer
    burn_fn = prepare_deposit_for_burn(
        web3,
        amount=1_000_000,
        destination_domain=CCTP_DOMAIN_ETHEREUM,
        mint_recipient=encode_mint_recipient("0x..."),  # Recipient on Ethereum
        burn_token=usdc,
    )

The ``burnToken`` is always the native USDC on the source chain.
The destination chain resolves its local USDC from the burn message.
"""

import logging

from eth_typing import HexAddress
from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction

from cctp_bridge.abi import get_deployed_contract
from cctp_bridge.cctp.constants import (
    FINALITY_THRESHOLD_STANDARD,
    TOKEN_MESSENGER_V2_TESTNET,
    ZERO_BYTES32,
)

logger = logging.getLogger(__name__)


def get_token_messenger_v2(
    web3: Web3,
    address: HexAddress | str = TOKEN_MESSENGER_V2_TESTNET,
) -> Contract:
    """Load the TokenMessengerV2 contract.

    :param web3:
        Web3 connection

    :param address:
        Deployment address, testnet by default

    :return:
        Contract proxy for TokenMessengerV2
    """
    return get_deployed_contract(
        web3,
        "cctp/TokenMessengerV2.json",
        address,
    )


def prepare_deposit_for_burn(
    web3: Web3,
    amount: int,
    destination_domain: int,
    mint_recipient: bytes,
    burn_token: HexAddress | str,
    destination_caller: bytes | None = None,
    max_fee: int = 0,
    min_finality_threshold: int = FINALITY_THRESHOLD_STANDARD,
    token_messenger: HexAddress | str = TOKEN_MESSENGER_V2_TESTNET,
) -> ContractFunction:
    """Build a bound ``depositForBurn()`` call on TokenMessengerV2.

    This burns USDC on the source chain to be minted on the destination chain.
    USDC must be approved to TokenMessengerV2 before calling this.

    :param web3:
        Web3 connection to the source chain

    :param amount:
        Amount of USDC to transfer in raw token units (6 decimals).
        E.g. 1_000_000 for 1 USDC.

    :param destination_domain:
        CCTP domain id of the destination chain.

    :param mint_recipient:
        Recipient on the destination chain as bytes32.
        See :py:func:`cctp_bridge.cctp.encoding.encode_mint_recipient`.

    :param burn_token:
        USDC address on the source chain.

    :param destination_caller:
        If set, restricts who can call ``receiveMessage()`` on
        the destination chain. ``None`` means anyone can relay (bytes32 zero).

    :param max_fee:
        Maximum fee for fast finality transfers, raw token units.

    :param min_finality_threshold:
        Finality level: 2000 for standard (finalized), 1000 for fast (confirmed).

    :param token_messenger:
        TokenMessengerV2 address

    :return:
        Bound contract function ready to be transacted or encoded.
    """
    assert type(amount) == int, f"Amount must be raw int units, got {type(amount)}"
    assert type(max_fee) == int, f"Max fee must be raw int units, got {type(max_fee)}"
    assert len(mint_recipient) == 32, f"mint_recipient must be bytes32, got {mint_recipient!r}"

    # Default destination_caller to bytes32(0) = any relayer can call receiveMessage
    if destination_caller is None:
        destination_caller = ZERO_BYTES32

    burn_token = Web3.to_checksum_address(burn_token)
    contract = get_token_messenger_v2(web3, token_messenger)

    logger.info(
        "Preparing CCTP depositForBurn: amount=%s, max_fee=%s, destination_domain=%s, recipient=0x%s",
        amount,
        max_fee,
        destination_domain,
        mint_recipient.hex(),
    )

    return contract.functions.depositForBurn(
        amount,
        destination_domain,
        mint_recipient,
        burn_token,
        destination_caller,
        max_fee,
        min_finality_threshold,
    )


def prepare_approve_for_burn(
    web3: Web3,
    amount: int,
    burn_token: HexAddress | str,
    token_messenger: HexAddress | str = TOKEN_MESSENGER_V2_TESTNET,
) -> ContractFunction:
    """Build a USDC ``approve()`` call to TokenMessengerV2.

    Must be confirmed before :func:`prepare_deposit_for_burn` is broadcast.

    :param web3:
        Web3 connection to the source chain

    :param amount:
        Allowance in raw token units (6 decimals)

    :param burn_token:
        USDC address on the source chain.

    :param token_messenger:
        Spender, TokenMessengerV2 address

    :return:
        Bound contract function for USDC.approve(TokenMessengerV2, amount)
    """
    usdc = get_deployed_contract(web3, "ERC20.json", burn_token)

    return usdc.functions.approve(
        Web3.to_checksum_address(token_messenger),
        amount,
    )
