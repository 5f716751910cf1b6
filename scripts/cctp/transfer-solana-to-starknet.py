"""Bridge devnet USDC from Solana to Starknet Sepolia with CCTP V2.

Burns with the ``deposit_for_burn`` instruction of TokenMessengerMinterV2.
There is no approval step on Solana. The mint on Starknet is relayed
from your Starknet account.

Get devnet USDC from https://faucet.circle.com and devnet SOL with
``solana airdrop 1``.

Environment variables
---------------------
- ``SOLANA_PRIVATE_KEY_B58``: base58 encoded Solana keypair (required)
- ``SOLANA_RPC``: Solana RPC (default: ``https://api.devnet.solana.com``)
- ``SOLANA_USDC_ACCOUNT``: USDC token account to burn from
  (default: associated token account of the keypair)
- ``SOLANA_USDC_MINT``: USDC mint (default: devnet USDC)
- ``DESTINATION_CALLER_BASE58``: restrict who can relay (default: anyone)
- ``STARKNET_RPC``, ``STARKNET_ACCOUNT_ADDRESS``, ``STARKNET_PRIVATE_KEY``: Starknet relayer (required)
- ``DESTINATION_STARKNET_ADDRESS``: recipient (default: ``STARKNET_ACCOUNT_ADDRESS``)
- ``AMOUNT``: raw USDC units (default: ``10000``, 0.01 USDC)
- ``LOG_LEVEL``: Logging level (default: ``info``)

Usage::

    python scripts/cctp/transfer-solana-to-starknet.py
"""

from dotenv import load_dotenv

from cctp_bridge.cctp.bridge import bridge_usdc_cctp, create_destination_adapter, create_source_adapter, format_bridge_result
from cctp_bridge.cctp.config import CCTPChain, CCTPTransferConfig
from cctp_bridge.utils import setup_console_logging


def main():
    load_dotenv()
    setup_console_logging()

    config = CCTPTransferConfig.from_environment(
        source=CCTPChain.solana_devnet,
        destination=CCTPChain.starknet_sepolia,
    )

    source = create_source_adapter(config)
    destination = create_destination_adapter(config)
    result = bridge_usdc_cctp(config, source, destination)

    print(format_bridge_result(config, result))


if __name__ == "__main__":
    main()
