"""Circle CCTP V2 testnet constants.

Cross-Chain Transfer Protocol V2 deployment addresses and domain mappings
for the testnets we bridge between.

CCTP enables burn-and-mint USDC transfers across chains:

1. Source chain: call ``depositForBurn`` on TokenMessengerV2 to burn USDC
2. Circle's Iris attestation service signs the burn event
3. Destination chain: call ``receiveMessage`` on MessageTransmitterV2 to mint USDC

All EVM CCTP V2 testnet contracts share the same address across chains (deployed via CREATE2).

- `CCTP V2 documentation <https://developers.circle.com/cctp>`_
- `EVM contract addresses <https://developers.circle.com/cctp/evm-smart-contracts>`_
- `Solana programs <https://github.com/circlefin/solana-cctp-contracts>`_
- `Starknet contracts <https://developers.circle.com/cctp/starknet-contracts>`_
"""

from eth_typing import HexAddress

#: CCTP V2 TokenMessengerV2 on EVM testnets.
#: Same address on all EVM testnets via CREATE2.
TOKEN_MESSENGER_V2_TESTNET: HexAddress = HexAddress("0x8FE6B999Dc680CcFDD5Bf7EB0974218be2542DAA")

#: CCTP V2 MessageTransmitterV2 on EVM testnets.
#: Same address on all EVM testnets via CREATE2.
MESSAGE_TRANSMITTER_V2_TESTNET: HexAddress = HexAddress("0xE737e5cEBEEBa77EFE34D4aa090756590b1CE275")

#: CCTP domain ID for Ethereum
CCTP_DOMAIN_ETHEREUM = 0

#: CCTP domain ID for Solana
CCTP_DOMAIN_SOLANA = 5

#: CCTP domain ID for Base
CCTP_DOMAIN_BASE = 6

#: CCTP domain ID for Starknet
CCTP_DOMAIN_STARKNET = 25

#: Mapping from CCTP domain ID to human-readable chain name.
CCTP_DOMAIN_NAMES: dict[int, str] = {
    CCTP_DOMAIN_ETHEREUM: "Ethereum",
    CCTP_DOMAIN_SOLANA: "Solana",
    CCTP_DOMAIN_BASE: "Base",
    CCTP_DOMAIN_STARKNET: "Starknet",
}

#: Domains whose transaction identifiers are 0x-prefixed hex hashes.
#:
#: Solana uses base58 transaction signatures instead.
EVM_CCTP_DOMAINS = frozenset({CCTP_DOMAIN_ETHEREUM, CCTP_DOMAIN_BASE})

#: Base Sepolia chain id
BASE_SEPOLIA_CHAIN_ID = 84532

#: Ethereum Sepolia chain id
ETHEREUM_SEPOLIA_CHAIN_ID = 11155111

#: Native USDC on EVM testnets, by chain id
USDC_TESTNET_TOKEN: dict[int, HexAddress] = {
    BASE_SEPOLIA_CHAIN_ID: HexAddress("0x036CbD53842c5426634e7929541eC2318f3dCF7e"),
    ETHEREUM_SEPOLIA_CHAIN_ID: HexAddress("0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"),
}

#: Public JSON-RPC endpoints used when no RPC is configured
DEFAULT_EVM_RPC: dict[int, str] = {
    BASE_SEPOLIA_CHAIN_ID: "https://sepolia.base.org",
    ETHEREUM_SEPOLIA_CHAIN_ID: "https://ethereum-sepolia-rpc.publicnode.com",
}

#: Circle Iris attestation API base URL (mainnet).
IRIS_API_BASE_URL = "https://iris-api.circle.com"

#: Circle Iris attestation API base URL (testnets).
IRIS_API_SANDBOX_URL = "https://iris-api-sandbox.circle.com"

#: Minimum finality threshold for standard (finalized) transfers.
FINALITY_THRESHOLD_STANDARD = 2000

#: Minimum finality threshold for fast (confirmed) transfers.
#: Uses lower block confirmation, may incur fees.
FINALITY_THRESHOLD_FAST = 1000

#: Allowed ``minFinalityThreshold`` values
FINALITY_THRESHOLDS = frozenset({FINALITY_THRESHOLD_FAST, FINALITY_THRESHOLD_STANDARD})

#: USDC allowance granted to TokenMessengerV2 by the approval stage.
#:
#: 10,000 USDC, well above any single testnet transfer.
DEFAULT_BURN_ALLOWANCE = 10_000 * 10**6

#: Default max fee for fast transfers: 0.0005 USDC
DEFAULT_MAX_FEE = 500

#: Zero bytes32 ``destinationCaller`` lets anyone relay the mint
ZERO_BYTES32 = b"\x00" * 32

#: Solana devnet public JSON-RPC
SOLANA_DEVNET_RPC = "https://api.devnet.solana.com"

#: CCTP V2 TokenMessengerMinter program on Solana
TOKEN_MESSENGER_MINTER_V2_PROGRAM_ID = "CCTPV2vPZJS2u2BBsUoscuikbYjnpFmbFsvVuJdgUMQe"

#: CCTP V2 MessageTransmitter program on Solana
MESSAGE_TRANSMITTER_V2_PROGRAM_ID = "CCTPV2Sm4AdWt5296sk4P66VBZ7bEhcARwFaaS9YPbeC"

#: USDC mint on Solana devnet
SOLANA_DEVNET_USDC_MINT = "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU"

#: Published Anchor IDL of TokenMessengerMinterV2, used when the on-chain IDL is not available
TOKEN_MESSENGER_MINTER_V2_IDL_URL = "https://raw.githubusercontent.com/circlefin/solana-cctp-contracts/master/examples/target/idl/token_messenger_minter_v2.json"

#: CCTP V2 MessageTransmitter on Starknet Sepolia
STARKNET_SEPOLIA_MESSAGE_TRANSMITTER = "0x04db7926C64f1f32a840F3Fa95cB551f3801a3600Bae87aF87807A54DCE12Fe8"
