"""CCTP V2 testnet integration test.

Bridges 0.1 USDC from Base Sepolia to Ethereum Sepolia using real CCTP V2
contracts and Circle's sandbox attestation service.

Environment variables:

- ``CCTP_TEST_PRIVATE_KEY``: Private key of the funded testnet account
- ``JSON_RPC_BASE_SEPOLIA``: RPC endpoint for Base Sepolia (optional)
- ``JSON_RPC_ETHEREUM_SEPOLIA``: RPC endpoint for Ethereum Sepolia (optional)

The test account must be pre-funded with:

- **ETH on Base Sepolia** for the approve and burn gas
- **ETH on Ethereum Sepolia** for the ``receiveMessage()`` gas
- **Testnet USDC on Base Sepolia**, use https://faucet.circle.com/

.. note::

    Circle's sandbox attestation service can take 10+ minutes to attest
    fast transfers on Sepolia testnets. The test gives up after 30 minutes.
"""

import logging
import os

import pytest

from cctp_bridge.cctp.bridge import bridge_usdc_cctp, create_destination_adapter, create_source_adapter
from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig

logger = logging.getLogger(__name__)

CCTP_TEST_PRIVATE_KEY = os.environ.get("CCTP_TEST_PRIVATE_KEY")

pytestmark = pytest.mark.skipif(
    not CCTP_TEST_PRIVATE_KEY,
    reason="Set CCTP_TEST_PRIVATE_KEY to run CCTP testnet integration tests",
)


@pytest.mark.timeout(1800)
def test_cctp_testnet_base_to_ethereum():
    """Full approve, burn, attest, mint round on live testnets."""
    environ = dict(os.environ) | {
        "PRIVATE_KEY": CCTP_TEST_PRIVATE_KEY,
        "ATTESTATION_TIMEOUT": "1800",
    }
    config = CCTPTransferConfig.from_environment(CCTPChain.base_sepolia, CCTPChain.ethereum_sepolia, environ)

    source = create_source_adapter(config)
    destination = create_destination_adapter(config)
    result = bridge_usdc_cctp(config, source, destination)

    logger.info("Bridged, burn %s mint %s", result.burn.transaction_id, result.mint.transaction_id)
    assert result.burn.transaction_id.startswith("0x")
    assert result.mint.confirmed
    assert len(result.attestation.message) > 148
