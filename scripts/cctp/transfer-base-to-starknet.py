"""Bridge testnet USDC from Base Sepolia to Starknet Sepolia with CCTP V2.

Burns on Base Sepolia and mints on Starknet by calling ``receive_message``
on the Cairo MessageTransmitterV2 from your Starknet account.
The account must be deployed and hold STRK for fees.

Environment variables
---------------------
- ``PRIVATE_KEY``: EVM private key with Base Sepolia ETH and USDC (required)
- ``JSON_RPC_BASE_SEPOLIA``: Base Sepolia RPC (default: public endpoint)
- ``STARKNET_RPC``: Starknet Sepolia RPC (required)
- ``STARKNET_ACCOUNT_ADDRESS``: Starknet account that relays the mint (required)
- ``STARKNET_PRIVATE_KEY``: private key of the Starknet account (required)
- ``DESTINATION_STARKNET_ADDRESS``: recipient (default: ``STARKNET_ACCOUNT_ADDRESS``)
- ``AMOUNT``: raw USDC units (default: ``10000``, 0.01 USDC)
- ``MAX_FEE``: raw USDC units (default: ``500``)
- ``LOG_LEVEL``: Logging level (default: ``info``)

Usage::

    python scripts/cctp/transfer-base-to-starknet.py
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
        destination=CCTPChain.starknet_sepolia,
    )

    source = create_source_adapter(config)
    destination = create_destination_adapter(config)
    result = bridge_usdc_cctp(config, source, destination)

    print(format_bridge_result(config, result))


if __name__ == "__main__":
    main()
