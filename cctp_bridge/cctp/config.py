"""Transfer configuration.

A cross-chain transfer is configured once at process start from
environment variables and the resulting immutable :py:class:`CCTPTransferConfig`
is passed to every stage of the bridge. Nothing after
:py:meth:`CCTPTransferConfig.from_environment` reads the environment.

Example::

    from dotenv import load_dotenv

    from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig

    load_dotenv()
    config = CCTPTransferConfig.from_environment(
        source=CCTPChain.base_sepolia,
        destination=CCTPChain.starknet_sepolia,
    )
"""

import enum
import logging
import os
from dataclasses import dataclass
from typing import Mapping

from eth_account import Account

from cctp_bridge.cctp.constants import (
    BASE_SEPOLIA_CHAIN_ID,
    CCTP_DOMAIN_BASE,
    CCTP_DOMAIN_ETHEREUM,
    CCTP_DOMAIN_SOLANA,
    CCTP_DOMAIN_STARKNET,
    DEFAULT_BURN_ALLOWANCE,
    DEFAULT_EVM_RPC,
    DEFAULT_MAX_FEE,
    ETHEREUM_SEPOLIA_CHAIN_ID,
    FINALITY_THRESHOLD_FAST,
    FINALITY_THRESHOLDS,
    IRIS_API_SANDBOX_URL,
    MESSAGE_TRANSMITTER_V2_PROGRAM_ID,
    SOLANA_DEVNET_RPC,
    SOLANA_DEVNET_USDC_MINT,
    STARKNET_SEPOLIA_MESSAGE_TRANSMITTER,
    TOKEN_MESSENGER_MINTER_V2_IDL_URL,
    TOKEN_MESSENGER_MINTER_V2_PROGRAM_ID,
)

logger = logging.getLogger(__name__)


class CCTPConfigurationError(ValueError):
    """Missing or invalid transfer configuration.

    Raised before any transaction is sent.
    """


class ChainFamily(enum.Enum):
    """Which SDK talks to a chain."""

    evm = "evm"
    solana = "solana"
    starknet = "starknet"


class CCTPChain(enum.Enum):
    """Testnets we can bridge between."""

    base_sepolia = "base-sepolia"
    ethereum_sepolia = "ethereum-sepolia"
    solana_devnet = "solana-devnet"
    starknet_sepolia = "starknet-sepolia"

    @property
    def domain(self) -> int:
        """CCTP domain id of this chain."""
        return _CHAIN_DOMAINS[self]

    @property
    def family(self) -> ChainFamily:
        return _CHAIN_FAMILIES[self]

    @property
    def evm_chain_id(self) -> int | None:
        """EVM chain id or ``None`` for non-EVM chains."""
        return _EVM_CHAIN_IDS.get(self)

    def get_human_name(self) -> str:
        return _CHAIN_NAMES[self]


_CHAIN_DOMAINS = {
    CCTPChain.base_sepolia: CCTP_DOMAIN_BASE,
    CCTPChain.ethereum_sepolia: CCTP_DOMAIN_ETHEREUM,
    CCTPChain.solana_devnet: CCTP_DOMAIN_SOLANA,
    CCTPChain.starknet_sepolia: CCTP_DOMAIN_STARKNET,
}

_CHAIN_FAMILIES = {
    CCTPChain.base_sepolia: ChainFamily.evm,
    CCTPChain.ethereum_sepolia: ChainFamily.evm,
    CCTPChain.solana_devnet: ChainFamily.solana,
    CCTPChain.starknet_sepolia: ChainFamily.starknet,
}

_EVM_CHAIN_IDS = {
    CCTPChain.base_sepolia: BASE_SEPOLIA_CHAIN_ID,
    CCTPChain.ethereum_sepolia: ETHEREUM_SEPOLIA_CHAIN_ID,
}

_CHAIN_NAMES = {
    CCTPChain.base_sepolia: "Base Sepolia",
    CCTPChain.ethereum_sepolia: "Ethereum Sepolia",
    CCTPChain.solana_devnet: "Solana devnet",
    CCTPChain.starknet_sepolia: "Starknet Sepolia",
}

#: Environment variable holding the JSON-RPC URL of each EVM chain
EVM_RPC_ENV_VARS = {
    CCTPChain.base_sepolia: "JSON_RPC_BASE_SEPOLIA",
    CCTPChain.ethereum_sepolia: "JSON_RPC_ETHEREUM_SEPOLIA",
}

#: Chain families that can burn
SOURCE_FAMILIES = frozenset({ChainFamily.evm, ChainFamily.solana})

#: Chain families that can mint
DESTINATION_FAMILIES = frozenset({ChainFamily.evm, ChainFamily.starknet})

#: Default amount between two EVM chains: 0.1 USDC
DEFAULT_EVM_TO_EVM_AMOUNT = 100_000

#: Default amount when a non-EVM chain is involved: 0.01 USDC
DEFAULT_AMOUNT = 10_000


@dataclass(slots=True, frozen=True)
class CCTPTransferConfig:
    """Everything one transfer run needs.

    Amounts are raw USDC units with 6 decimals.
    """

    #: Chain where USDC is burned
    source: CCTPChain

    #: Chain where USDC is minted
    destination: CCTPChain

    #: Amount to burn and mint
    amount: int

    #: Maximum fee for fast transfers, must not exceed ``amount``
    max_fee: int

    #: 1000 for fast (confirmed), 2000 for standard (finalized)
    min_finality_threshold: int

    #: Recipient on the destination chain as given by the user.
    #:
    #: EVM address or Starknet address hex string.
    recipient: str

    #: Iris attestation service base URL
    iris_api_url: str = IRIS_API_SANDBOX_URL

    #: Seconds between attestation polls
    poll_interval: float = 5.0

    #: Give up waiting for attestation after this many seconds, ``None`` waits forever
    attestation_timeout: float | None = None

    #: Give up waiting for attestation after this many polls, ``None`` polls forever
    attestation_max_attempts: int | None = None

    #: USDC allowance the approval stage grants to TokenMessengerV2
    burn_allowance: int = DEFAULT_BURN_ALLOWANCE

    #: EVM private key, 0x-prefixed
    evm_private_key: str | None = None

    #: JSON-RPC URL of the EVM source chain
    evm_source_rpc: str | None = None

    #: JSON-RPC URL of the EVM destination chain
    evm_destination_rpc: str | None = None

    #: Base58 encoded 64 byte Solana keypair
    solana_private_key: str | None = None

    #: Solana JSON-RPC URL
    solana_rpc: str = SOLANA_DEVNET_RPC

    #: USDC mint on Solana
    solana_usdc_mint: str = SOLANA_DEVNET_USDC_MINT

    #: Token account to burn from, default is the owner's associated token account
    solana_usdc_account: str | None = None

    #: Base58 destination caller when burning on Solana, ``None`` lets anyone relay
    solana_destination_caller: str | None = None

    #: TokenMessengerMinterV2 program id
    token_messenger_minter_program_id: str = TOKEN_MESSENGER_MINTER_V2_PROGRAM_ID

    #: MessageTransmitterV2 program id
    message_transmitter_program_id: str = MESSAGE_TRANSMITTER_V2_PROGRAM_ID

    #: Where to download the TokenMessengerMinterV2 IDL if it is not on chain
    token_messenger_minter_idl_url: str = TOKEN_MESSENGER_MINTER_V2_IDL_URL

    #: Starknet JSON-RPC URL
    starknet_rpc: str | None = None

    #: Starknet account contract that submits the mint
    starknet_account_address: str | None = None

    #: Starknet account private key
    starknet_private_key: str | None = None

    #: MessageTransmitter contract on Starknet
    starknet_message_transmitter: str = STARKNET_SEPOLIA_MESSAGE_TRANSMITTER

    def __post_init__(self):
        self.validate()

    def __repr__(self):
        # Never print private keys
        return f"<CCTPTransferConfig {self.source.value} -> {self.destination.value} amount:{self.amount} max_fee:{self.max_fee} finality:{self.min_finality_threshold} recipient:{self.recipient}>"

    @property
    def source_domain(self) -> int:
        return self.source.domain

    @property
    def destination_domain(self) -> int:
        return self.destination.domain

    def validate(self):
        """Check the configuration is usable.

        :raise CCTPConfigurationError:
            On the first problem found
        """
        if self.source == self.destination:
            raise CCTPConfigurationError(f"Source and destination are the same chain: {self.source.value}")

        if self.source.family not in SOURCE_FAMILIES:
            raise CCTPConfigurationError(f"Burning on {self.source.get_human_name()} is not supported")

        if self.destination.family not in DESTINATION_FAMILIES:
            raise CCTPConfigurationError(f"Minting on {self.destination.get_human_name()} is not supported")

        if self.amount <= 0:
            raise CCTPConfigurationError(f"Amount must be positive, got {self.amount}")

        if self.max_fee < 0 or self.max_fee > self.amount:
            raise CCTPConfigurationError(f"Max fee {self.max_fee} must be between 0 and amount {self.amount}")

        if self.min_finality_threshold not in FINALITY_THRESHOLDS:
            raise CCTPConfigurationError(f"Unknown finality threshold {self.min_finality_threshold}, use one of {sorted(FINALITY_THRESHOLDS)}")

        if self.poll_interval < 0:
            raise CCTPConfigurationError(f"Bad poll interval {self.poll_interval}")

        families = {self.source.family, self.destination.family}

        if ChainFamily.evm in families and not self.evm_private_key:
            raise CCTPConfigurationError("Set PRIVATE_KEY (EVM) in your .env file")

        if self.source.family == ChainFamily.solana and not self.solana_private_key:
            raise CCTPConfigurationError("Set SOLANA_PRIVATE_KEY_B58 (base58) in your .env file")

        if self.destination.family == ChainFamily.starknet:
            if not (self.starknet_rpc and self.starknet_account_address and self.starknet_private_key):
                raise CCTPConfigurationError("Set STARKNET_RPC, STARKNET_ACCOUNT_ADDRESS and STARKNET_PRIVATE_KEY in your .env file")

        if not self.recipient:
            raise CCTPConfigurationError("No recipient address")

    @classmethod
    def from_environment(
        cls,
        source: CCTPChain,
        destination: CCTPChain,
        environ: Mapping[str, str] | None = None,
    ) -> "CCTPTransferConfig":
        """Read the transfer configuration from environment variables.

        - ``PRIVATE_KEY``, ``JSON_RPC_BASE_SEPOLIA``, ``JSON_RPC_ETHEREUM_SEPOLIA``, ``DESTINATION_ADDRESS``: EVM
        - ``SOLANA_PRIVATE_KEY_B58``, ``SOLANA_RPC``, ``SOLANA_USDC_MINT``, ``SOLANA_USDC_ACCOUNT``,
          ``DESTINATION_CALLER_BASE58``, ``TOKEN_MESSENGER_MINTER_V2_ID``, ``MESSAGE_TRANSMITTER_V2_ID``,
          ``TOKEN_MESSENGER_MINTER_V2_IDL_URL``: Solana
        - ``STARKNET_RPC``, ``STARKNET_ACCOUNT_ADDRESS``, ``STARKNET_PRIVATE_KEY``,
          ``DESTINATION_STARKNET_ADDRESS``, ``STARKNET_MESSAGE_TRANSMITTER``: Starknet
        - ``AMOUNT``, ``MAX_FEE``, ``MIN_FINALITY_THRESHOLD``: transfer
        - ``IRIS_API_URL``, ``ATTESTATION_POLL_INTERVAL``, ``ATTESTATION_TIMEOUT``,
          ``ATTESTATION_MAX_ATTEMPTS``: attestation polling

        :param environ:
            Defaults to ``os.environ``

        :raise CCTPConfigurationError:
            Required credential missing or values out of range
        """
        if environ is None:
            environ = os.environ

        def _get(name: str) -> str | None:
            # Treat empty values in .env files as unset
            value = environ.get(name)
            return value.strip() if value and value.strip() else None

        def _get_int(name: str, default: int | None) -> int | None:
            value = _get(name)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise CCTPConfigurationError(f"{name} must be an integer, got {value}") from e

        def _get_float(name: str, default: float | None) -> float | None:
            value = _get(name)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as e:
                raise CCTPConfigurationError(f"{name} must be a number, got {value}") from e

        families = {source.family, destination.family}

        evm_private_key = _get("PRIVATE_KEY")
        if evm_private_key and not evm_private_key.startswith("0x"):
            evm_private_key = f"0x{evm_private_key}"

        if families == {ChainFamily.evm}:
            default_amount = DEFAULT_EVM_TO_EVM_AMOUNT
        else:
            default_amount = DEFAULT_AMOUNT

        recipient = cls._resolve_recipient(destination, evm_private_key, _get)

        kwargs = dict(
            source=source,
            destination=destination,
            amount=_get_int("AMOUNT", default_amount),
            max_fee=_get_int("MAX_FEE", DEFAULT_MAX_FEE),
            min_finality_threshold=_get_int("MIN_FINALITY_THRESHOLD", FINALITY_THRESHOLD_FAST),
            recipient=recipient,
            iris_api_url=_get("IRIS_API_URL") or IRIS_API_SANDBOX_URL,
            poll_interval=_get_float("ATTESTATION_POLL_INTERVAL", 5.0),
            attestation_timeout=_get_float("ATTESTATION_TIMEOUT", None),
            attestation_max_attempts=_get_int("ATTESTATION_MAX_ATTEMPTS", None),
            evm_private_key=evm_private_key,
            evm_source_rpc=cls._resolve_evm_rpc(source, _get),
            evm_destination_rpc=cls._resolve_evm_rpc(destination, _get),
            solana_private_key=_get("SOLANA_PRIVATE_KEY_B58"),
            solana_rpc=_get("SOLANA_RPC") or SOLANA_DEVNET_RPC,
            solana_usdc_mint=_get("SOLANA_USDC_MINT") or SOLANA_DEVNET_USDC_MINT,
            solana_usdc_account=_get("SOLANA_USDC_ACCOUNT"),
            solana_destination_caller=_get("DESTINATION_CALLER_BASE58"),
            token_messenger_minter_program_id=_get("TOKEN_MESSENGER_MINTER_V2_ID") or TOKEN_MESSENGER_MINTER_V2_PROGRAM_ID,
            message_transmitter_program_id=_get("MESSAGE_TRANSMITTER_V2_ID") or MESSAGE_TRANSMITTER_V2_PROGRAM_ID,
            token_messenger_minter_idl_url=_get("TOKEN_MESSENGER_MINTER_V2_IDL_URL") or TOKEN_MESSENGER_MINTER_V2_IDL_URL,
            starknet_rpc=_get("STARKNET_RPC"),
            starknet_account_address=_get("STARKNET_ACCOUNT_ADDRESS"),
            starknet_private_key=_get("STARKNET_PRIVATE_KEY"),
            starknet_message_transmitter=_get("STARKNET_MESSAGE_TRANSMITTER") or STARKNET_SEPOLIA_MESSAGE_TRANSMITTER,
        )

        config = cls(**kwargs)
        logger.info("Loaded transfer configuration %s", config)
        return config

    @staticmethod
    def _resolve_evm_rpc(chain: CCTPChain, _get) -> str | None:
        if chain.family != ChainFamily.evm:
            return None
        return _get(EVM_RPC_ENV_VARS[chain]) or DEFAULT_EVM_RPC[chain.evm_chain_id]

    @staticmethod
    def _resolve_recipient(destination: CCTPChain, evm_private_key: str | None, _get) -> str | None:
        """Where minted USDC lands, defaults to our own account on the destination chain."""
        match destination.family:
            case ChainFamily.evm:
                recipient = _get("DESTINATION_ADDRESS")
                if recipient is None and evm_private_key:
                    try:
                        recipient = Account.from_key(evm_private_key).address
                    except ValueError as e:
                        raise CCTPConfigurationError("PRIVATE_KEY is not a valid EVM private key") from e
                return recipient
            case ChainFamily.starknet:
                return _get("DESTINATION_STARKNET_ADDRESS") or _get("STARKNET_ACCOUNT_ADDRESS")
            case _:
                return None
