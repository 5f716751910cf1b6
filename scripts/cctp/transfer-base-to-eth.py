"""Bridge testnet USDC from Base Sepolia to Ethereum Sepolia with CCTP V2.

Approves USDC to TokenMessengerV2, burns it with ``depositForBurn()``,
waits for Circle's attestation and mints on Ethereum Sepolia with
``receiveMessage()``. The same EVM key pays gas on both chains.

Get testnet USDC from https://faucet.circle.com

Environment variables
---------------------
- ``PRIVATE_KEY``: EVM private key, needs Base Sepolia ETH, Sepolia ETH and USDC (required)
- ``JSON_RPC_BASE_SEPOLIA``: Base Sepolia RPC (default: public endpoint)
- ``JSON_RPC_ETHEREUM_SEPOLIA``: Ethereum Sepolia RPC (default: public endpoint)
- ``DESTINATION_ADDRESS``: recipient on Ethereum Sepolia (default: our own address)
- ``AMOUNT``: raw USDC units (default: ``100000``, 0.1 USDC)
- ``MAX_FEE``: raw USDC units (default: ``500``)
- ``MIN_FINALITY_THRESHOLD``: ``1000`` fast or ``2000`` standard (default: ``1000``)
- ``LOG_LEVEL``: Logging level (default: ``info``)

Usage::

    python scripts/cctp/transfer-base-to-eth.py
"""

from dotenv import load_dotenv

from cctp_bridge.cctp.bridge import bridge_usdc_cctp, create_destination_adapter, create_source_adapter, format_bridge_result
from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig
from cctp_bridge.utils import setup_console_logging


def main():
    load_dotenv()
    setup_console_logging()

    config = CCTPTransferConfig.from_environment(
        source=CCTPChain.base_sepolia,
        destination=CCTPChain.ethereum_sepolia,
    )

    source = create_source_adapter(config)
    destination = create_destination_adapter(config)
    result = bridge_usdc_cctp(config, source, destination)

    print(format_bridge_result(config, result))


if __name__ == "__main__":
    main()
