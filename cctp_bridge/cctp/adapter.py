"""Chain adapter interfaces for the CCTP bridge pipeline.

The pipeline in :py:mod:`cctp_bridge.cctp.bridge` does not know which chain
it talks to. Each source chain implements :py:class:`SourceChainAdapter`
and each destination chain :py:class:`DestinationChainAdapter`.
A new chain pair needs only a new adapter.

- EVM: :py:mod:`cctp_bridge.cctp.evm`
- Solana (source only): :py:mod:`cctp_bridge.cctp.solana`
- Starknet (destination only): :py:mod:`cctp_bridge.cctp.starknet`
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from cctp_bridge.cctp.attestation import CCTPAttestation


@dataclass(slots=True, frozen=True)
class CCTPBurnReceipt:
    """Result of the burn stage.

    The transaction id is the correlation key for attestation polling.
    """

    #: EVM transaction hash (0x-prefixed) or Solana transaction signature (base58)
    transaction_id: str

    #: CCTP domain of the source chain
    source_domain: int

    #: Raw USDC units burned
    amount: int


@dataclass(slots=True, frozen=True)
class CCTPMintReceipt:
    """Result of the mint stage."""

    #: Destination chain transaction hash
    transaction_id: str

    #: CCTP domain of the destination chain
    destination_domain: int

    #: Transaction was confirmed on chain before we returned
    confirmed: bool


class SourceChainAdapter(ABC):
    """Burns USDC on the source chain."""

    #: CCTP domain of the chain
    domain: int

    #: Raw USDC units the burn call encodes
    amount: int

    def approve_for_burn(self, allowance: int) -> str | None:
        """Grant the token messenger allowance over our USDC.

        Chains without ERC-20 style allowances do nothing.

        :return:
            Approval transaction id or ``None`` if there is no approval step.
        """
        return None

    @abstractmethod
    def derive_burn_accounts(self) -> Any:
        """Resolve the contracts or accounts the burn touches."""

    @abstractmethod
    def encode_burn_call(self, accounts: Any, mint_recipient: bytes) -> Any:
        """Build the unsigned burn call.

        :param accounts:
            Output of :py:meth:`derive_burn_accounts`

        :param mint_recipient:
            Recipient on the destination chain as bytes32
        """

    @abstractmethod
    def send_burn(self, burn_call: Any) -> str:
        """Sign, broadcast and confirm the burn.

        :return:
            Transaction id of the confirmed burn
        """

    def burn(self, mint_recipient: bytes, amount: int) -> CCTPBurnReceipt:
        """Burn USDC for minting on the destination chain.

        Irreversible once confirmed.

        :param amount:
            Raw USDC units the caller expects to burn, must match what the adapter encodes
        """
        assert amount == self.amount, f"Adapter burns {self.amount}, caller asked for {amount}"
        assert len(mint_recipient) == 32, f"mint_recipient must be bytes32, got {len(mint_recipient)} bytes"
        accounts = self.derive_burn_accounts()
        burn_call = self.encode_burn_call(accounts, mint_recipient)
        tx_id = self.send_burn(burn_call)
        return CCTPBurnReceipt(
            transaction_id=tx_id,
            source_domain=self.domain,
            amount=self.amount,
        )


class DestinationChainAdapter(ABC):
    """Mints USDC on the destination chain."""

    #: CCTP domain of the chain
    domain: int

    @abstractmethod
    def encode_mint_recipient(self, address: str) -> bytes:
        """Recipient address on this chain as CCTP bytes32."""

    @abstractmethod
    def encode_mint_call(self, attestation: CCTPAttestation) -> Any:
        """Build the unsigned ``receiveMessage`` call."""

    @abstractmethod
    def send_mint(self, mint_call: Any) -> str:
        """Sign, broadcast and wait for the mint to confirm.

        :return:
            Transaction id
        """

    def mint(self, attestation: CCTPAttestation) -> CCTPMintReceipt:
        """Relay the attested message to mint USDC."""
        mint_call = self.encode_mint_call(attestation)
        tx_id = self.send_mint(mint_call)
        return CCTPMintReceipt(
            transaction_id=tx_id,
            destination_domain=self.domain,
            confirmed=True,
        )
