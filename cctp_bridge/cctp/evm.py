"""EVM chain adapters.

Burn with ``approve()`` + ``depositForBurn()`` on TokenMessengerV2 and mint
with ``receiveMessage()`` on MessageTransmitterV2.

Transactions are signed locally with :py:class:`cctp_bridge.hotwallet.HotWallet`
and broadcast with ``eth_sendRawTransaction``. Every transaction is waited
for and checked for a revert before the next stage starts.
"""

import logging
from dataclasses import dataclass

from eth_typing import HexAddress
from web3 import HTTPProvider, Web3
from web3.contract.contract import ContractFunction

from cctp_bridge.cctp.adapter import DestinationChainAdapter, SourceChainAdapter
from cctp_bridge.cctp.attestation import CCTPAttestation
from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig, ChainFamily
from cctp_bridge.cctp.constants import (
    MESSAGE_TRANSMITTER_V2_TESTNET,
    TOKEN_MESSENGER_V2_TESTNET,
    USDC_TESTNET_TOKEN,
)
from cctp_bridge.cctp.encoding import encode_mint_recipient
from cctp_bridge.cctp.receive import prepare_receive_message
from cctp_bridge.cctp.transfer import prepare_approve_for_burn, prepare_deposit_for_burn
from cctp_bridge.hotwallet import HotWallet
from cctp_bridge.trace import assert_transaction_success_with_explanation
from cctp_bridge.utils import get_url_domain

logger = logging.getLogger(__name__)


def create_evm_web3(chain: CCTPChain, json_rpc_url: str) -> Web3:
    """Connect to an EVM testnet and check we are on the right chain."""
    assert chain.family == ChainFamily.evm, f"Not an EVM chain: {chain}"
    web3 = Web3(HTTPProvider(json_rpc_url))
    chain_id = web3.eth.chain_id
    assert chain_id == chain.evm_chain_id, f"RPC {get_url_domain(json_rpc_url)} is chain {chain_id}, expected {chain.get_human_name()} ({chain.evm_chain_id})"
    logger.info("Connected to %s at %s, latest block is %d", chain.get_human_name(), get_url_domain(json_rpc_url), web3.eth.block_number)
    return web3


def _broadcast_and_confirm(hot_wallet: HotWallet, func: ContractFunction) -> str:
    web3 = func.w3
    tx_hash = hot_wallet.transact_and_broadcast_with_contract(func)
    assert_transaction_success_with_explanation(web3, tx_hash)
    return "0x" + bytes(tx_hash).hex()


@dataclass(slots=True, frozen=True)
class EVMBurnAccounts:
    """Contracts the EVM burn touches."""

    #: USDC on the source chain
    burn_token: HexAddress

    #: TokenMessengerV2, spender of the approval
    token_messenger: HexAddress


class EVMSourceAdapter(SourceChainAdapter):
    """Burn USDC on an EVM chain."""

    def __init__(
        self,
        web3: Web3,
        hot_wallet: HotWallet,
        domain: int,
        destination_domain: int,
        amount: int,
        max_fee: int,
        min_finality_threshold: int,
        burn_token: HexAddress | str,
        token_messenger: HexAddress | str = TOKEN_MESSENGER_V2_TESTNET,
        destination_caller: bytes | None = None,
    ):
        self.web3 = web3
        self.hot_wallet = hot_wallet
        self.domain = domain
        self.destination_domain = destination_domain
        self.amount = amount
        self.max_fee = max_fee
        self.min_finality_threshold = min_finality_threshold
        self.burn_token = Web3.to_checksum_address(burn_token)
        self.token_messenger = Web3.to_checksum_address(token_messenger)
        self.destination_caller = destination_caller

    def __repr__(self):
        return f"<EVMSourceAdapter domain:{self.domain} sender:{self.hot_wallet.address}>"

    @classmethod
    def create(cls, config: CCTPTransferConfig, web3: Web3 | None = None) -> "EVMSourceAdapter":
        """Create the adapter from the transfer configuration.

        :param web3:
            Use an existing connection instead of ``config.evm_source_rpc``
        """
        if web3 is None:
            web3 = create_evm_web3(config.source, config.evm_source_rpc)
        hot_wallet = HotWallet.from_private_key(config.evm_private_key)
        hot_wallet.sync_nonce(web3)
        logger.info("Burning from %s, gas balance %s", hot_wallet.address, hot_wallet.get_native_currency_balance(web3))
        return cls(
            web3=web3,
            hot_wallet=hot_wallet,
            domain=config.source_domain,
            destination_domain=config.destination_domain,
            amount=config.amount,
            max_fee=config.max_fee,
            min_finality_threshold=config.min_finality_threshold,
            burn_token=USDC_TESTNET_TOKEN[config.source.evm_chain_id],
        )

    @property
    def sender(self) -> HexAddress:
        return self.hot_wallet.address

    def approve_for_burn(self, allowance: int) -> str:
        approve_fn = prepare_approve_for_burn(
            self.web3,
            amount=allowance,
            burn_token=self.burn_token,
            token_messenger=self.token_messenger,
        )
        tx_hash = _broadcast_and_confirm(self.hot_wallet, approve_fn)
        logger.info("USDC approval for CCTP burn confirmed: %s", tx_hash)
        return tx_hash

    def derive_burn_accounts(self) -> EVMBurnAccounts:
        return EVMBurnAccounts(
            burn_token=self.burn_token,
            token_messenger=self.token_messenger,
        )

    def encode_burn_call(self, accounts: EVMBurnAccounts, mint_recipient: bytes) -> ContractFunction:
        return prepare_deposit_for_burn(
            self.web3,
            amount=self.amount,
            destination_domain=self.destination_domain,
            mint_recipient=mint_recipient,
            burn_token=accounts.burn_token,
            destination_caller=self.destination_caller,
            max_fee=self.max_fee,
            min_finality_threshold=self.min_finality_threshold,
            token_messenger=accounts.token_messenger,
        )

    def send_burn(self, burn_call: ContractFunction) -> str:
        tx_hash = _broadcast_and_confirm(self.hot_wallet, burn_call)
        logger.info("CCTP burn confirmed: %s", tx_hash)
        return tx_hash


class EVMDestinationAdapter(DestinationChainAdapter):
    """Mint USDC on an EVM chain."""

    def __init__(
        self,
        web3: Web3,
        hot_wallet: HotWallet,
        domain: int,
        message_transmitter: HexAddress | str = MESSAGE_TRANSMITTER_V2_TESTNET,
    ):
        self.web3 = web3
        self.hot_wallet = hot_wallet
        self.domain = domain
        self.message_transmitter = Web3.to_checksum_address(message_transmitter)

    def __repr__(self):
        return f"<EVMDestinationAdapter domain:{self.domain} relayer:{self.hot_wallet.address}>"

    @classmethod
    def create(cls, config: CCTPTransferConfig, web3: Web3 | None = None) -> "EVMDestinationAdapter":
        """Create the adapter from the transfer configuration.

        The same EVM key relays the mint and pays the destination gas.
        """
        if web3 is None:
            web3 = create_evm_web3(config.destination, config.evm_destination_rpc)
        hot_wallet = HotWallet.from_private_key(config.evm_private_key)
        hot_wallet.sync_nonce(web3)
        logger.info("Relaying mint from %s, gas balance %s", hot_wallet.address, hot_wallet.get_native_currency_balance(web3))
        return cls(
            web3=web3,
            hot_wallet=hot_wallet,
            domain=config.destination_domain,
        )

    def encode_mint_recipient(self, address: str) -> bytes:
        return encode_mint_recipient(address)

    def encode_mint_call(self, attestation: CCTPAttestation) -> ContractFunction:
        return prepare_receive_message(
            self.web3,
            message=attestation.message,
            attestation=attestation.attestation,
            message_transmitter=self.message_transmitter,
        )

    def send_mint(self, mint_call: ContractFunction) -> str:
        tx_hash = _broadcast_and_confirm(self.hot_wallet, mint_call)
        logger.info("CCTP receiveMessage confirmed: %s", tx_hash)
        return tx_hash
