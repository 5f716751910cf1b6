"""Circle CCTP V2 USDC transfers.

- :py:mod:`cctp_bridge.cctp.config`: transfer configuration
- :py:mod:`cctp_bridge.cctp.bridge`: run a full approve, burn, attest, mint transfer
- :py:mod:`cctp_bridge.cctp.attestation`: Iris attestation polling
- :py:mod:`cctp_bridge.cctp.evm`, :py:mod:`cctp_bridge.cctp.solana`, :py:mod:`cctp_bridge.cctp.starknet`: chain adapters

- `CCTP documentation <https://developers.circle.com/cctp>`__
"""
