"""Bridge testnet USDC between any supported CCTP V2 chain pair.

Sources: ``base-sepolia``, ``ethereum-sepolia``, ``solana-devnet``.
Destinations: ``base-sepolia``, ``ethereum-sepolia``, ``starknet-sepolia``.

Reads the same environment variables as the fixed pair scripts in this directory,
see :py:meth:`cctp_bridge.cctp.config.CCTPTransferConfig.from_environment`.

Usage::

    python scripts/cctp/transfer-usdc.py --source ethereum-sepolia --destination base-sepolia

    # Give up if Circle has not attested in 30 minutes
    ATTESTATION_TIMEOUT=1800 python scripts/cctp/transfer-usdc.py --source solana-devnet --destination base-sepolia
"""

import argparse

from dotenv import load_dotenv

from cctp_bridge.cctp.bridge import bridge_usdc_cctp, create_destination_adapter, create_source_adapter, format_bridge_result
from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig
from cctp_bridge.utils import setup_console_logging


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    chains = [c.value for c in CCTPChain]
    parser = argparse.ArgumentParser(description="Bridge USDC with Circle CCTP V2")
    parser.add_argument("--source", required=True, choices=chains, help="Chain to burn USDC on")
    parser.add_argument("--destination", required=True, choices=chains, help="Chain to mint USDC on")
    parser.add_argument("--env-file", default=None, help="Read environment from this file instead of .env")
    return parser.parse_args()


def main():
    args = parse_args()

    load_dotenv(args.env_file)
    setup_console_logging()

    config = CCTPTransferConfig.from_environment(
        source=CCTPChain(args.source),
        destination=CCTPChain(args.destination),
    )

    source = create_source_adapter(config)
    destination = create_destination_adapter(config)
    result = bridge_usdc_cctp(config, source, destination)

    print(format_bridge_result(config, result))


if __name__ == "__main__":
    main()
