"""Transfer configuration from environment variables."""

import pytest

from cctp_bridge.cctp.config import CCTPChain, CCTPConfigurationError, CCTPTransferConfig, ChainFamily
from cctp_bridge.cctp.constants import (
    CCTP_DOMAIN_BASE,
    CCTP_DOMAIN_ETHEREUM,
    CCTP_DOMAIN_SOLANA,
    CCTP_DOMAIN_STARKNET,
    DEFAULT_BURN_ALLOWANCE,
    IRIS_API_SANDBOX_URL,
    SOLANA_DEVNET_RPC,
)


def test_chain_domains():
    assert CCTPChain.ethereum_sepolia.domain == CCTP_DOMAIN_ETHEREUM == 0
    assert CCTPChain.solana_devnet.domain == CCTP_DOMAIN_SOLANA == 5
    assert CCTPChain.base_sepolia.domain == CCTP_DOMAIN_BASE == 6
    assert CCTPChain.starknet_sepolia.domain == CCTP_DOMAIN_STARKNET == 25
    assert CCTPChain.solana_devnet.family == ChainFamily.solana
    assert CCTPChain.starknet_sepolia.evm_chain_id is None


def test_evm_to_evm_defaults(evm_environ, test_address):
    """Recipient defaults to our own address and amount to 0.1 USDC."""
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, evm_environ)
    assert config.amount == 100_000
    assert config.max_fee == 500
    assert config.min_finality_threshold == 1000
    assert config.recipient == test_address
    assert config.evm_private_key.startswith("0x")
    assert config.evm_source_rpc == "https://base-sepolia.example.com"
    assert config.evm_destination_rpc.startswith("https://")
    assert config.iris_api_url == IRIS_API_SANDBOX_URL
    assert config.poll_interval == 5.0
    assert config.attestation_timeout is None
    assert config.burn_allowance == DEFAULT_BURN_ALLOWANCE
    assert config.source_domain == 6
    assert config.destination_domain == 0


def test_private_key_not_in_repr(evm_environ):
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, evm_environ)
    assert evm_environ["PRIVATE_KEY"] not in repr(config)


def test_overrides(evm_environ):
    environ = evm_environ | {
        "AMOUNT": "250000",
        "MAX_FEE": "0",
        "MIN_FINALITY_THRESHOLD": "2000",
        "DESTINATION_ADDRESS": "0x0000000000000000000000000000000000000001",
        "ATTESTATION_TIMEOUT": "1800",
        "ATTESTATION_MAX_ATTEMPTS": "10",
        "IRIS_API_URL": "https://iris-api.circle.com",
    }
    config = CCTPTransferConfig.from_environment(CCTPChain.ethereum_sepolia, CCTPChain.base_sepolia, environ)
    assert config.amount == 250_000
    assert config.max_fee == 0
    assert config.min_finality_threshold == 2000
    assert config.recipient == "0x0000000000000000000000000000000000000001"
    assert config.attestation_timeout == 1800.0
    assert config.attestation_max_attempts == 10
    assert config.iris_api_url == "https://iris-api.circle.com"


def test_empty_values_are_unset(evm_environ):
    """Blank lines in .env files fall back to defaults."""
    environ = evm_environ | {"AMOUNT": "", "JSON_RPC_BASE_SEPOLIA": "  "}
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, environ)
    assert config.amount == 100_000
    assert config.evm_source_rpc == "https://sepolia.base.org"


def test_starknet_destination(starknet_environ, test_starknet_address):
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.starknet_sepolia, starknet_environ)
    assert config.amount == 10_000
    assert config.recipient == test_starknet_address
    assert config.evm_destination_rpc is None

    environ = starknet_environ | {"DESTINATION_STARKNET_ADDRESS": "0x123"}
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.starknet_sepolia, environ)
    assert config.recipient == "0x123"


def test_solana_source(starknet_environ):
    environ = starknet_environ | {"SOLANA_PRIVATE_KEY_B58": "somekey"}
    del environ["PRIVATE_KEY"]
    config = CCTPTransferConfig.from_environment(CCTPChain.solana_devnet, CCTPChain.starknet_sepolia, environ)
    assert config.solana_rpc == SOLANA_DEVNET_RPC
    assert config.solana_usdc_account is None
    assert config.evm_private_key is None
    assert config.source_domain == 5


def test_missing_evm_key():
    with pytest.raises(CCTPConfigurationError, match="PRIVATE_KEY"):
        CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, {})


def test_missing_solana_key(starknet_environ):
    with pytest.raises(CCTPConfigurationError, match="SOLANA_PRIVATE_KEY_B58"):
        CCTPTransferConfig.from_environment(CCTPChain.solana_devnet, CCTPChain.starknet_sepolia, starknet_environ)


def test_missing_starknet_credentials(evm_environ):
    with pytest.raises(CCTPConfigurationError, match="STARKNET"):
        CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.starknet_sepolia, evm_environ)


def test_max_fee_above_amount(evm_environ):
    environ = evm_environ | {"AMOUNT": "100", "MAX_FEE": "500"}
    with pytest.raises(CCTPConfigurationError, match="Max fee"):
        CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, environ)


def test_unknown_finality(evm_environ):
    environ = evm_environ | {"MIN_FINALITY_THRESHOLD": "1500"}
    with pytest.raises(CCTPConfigurationError, match="finality"):
        CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, environ)


def test_bad_integer(evm_environ):
    environ = evm_environ | {"AMOUNT": "0.1"}
    with pytest.raises(CCTPConfigurationError, match="AMOUNT"):
        CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, environ)


@pytest.mark.parametrize(
    "source, destination",
    [
        (CCTPChain.base_sepolia, CCTPChain.base_sepolia),
        (CCTPChain.starknet_sepolia, CCTPChain.base_sepolia),
        (CCTPChain.base_sepolia, CCTPChain.solana_devnet),
    ],
)
def test_unsupported_pairs(evm_environ, source, destination):
    with pytest.raises(CCTPConfigurationError):
        CCTPTransferConfig.from_environment(source, destination, evm_environ)


def test_config_is_immutable(evm_environ):
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, evm_environ)
    with pytest.raises(AttributeError):
        config.amount = 1
