"""Hot wallet management utilities.

- Create local wallets from a private key

- Sign bound contract calls with a locally managed nonce

"""

import logging
from decimal import Decimal
from pprint import pformat
from typing import NamedTuple, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.contract.contract import ContractFunction

logger = logging.getLogger(__name__)


class SignedTransactionWithNonce(NamedTuple):
    """A signed transaction with the nonce it was signed with.

    Retains the unencoded transaction so we can diagnose broadcasting failures.
    """

    #: Bytes to broadcast with ``eth_sendRawTransaction``
    raw_transaction: HexBytes

    #: Transaction hash
    hash: HexBytes

    #: What was the source nonce for this transaction
    nonce: int

    #: What was the source address for this transaction
    address: str

    #: Unencoded transaction data as a dict.
    source: Optional[dict] = None

    def __repr__(self):
        return f"<SignedTransactionWithNonce hash:{self.hash.hex()} nonce:{self.nonce}>"


class HotWallet:
    """Hot wallet for signing transactions.

    - A hot wallet maintains an plain text private key of an Ethereum address in the process memory
      using :py:class:`eth_account.signers.local.LocalAccount` and nonce counter.

    - Call :py:meth:`sync_nonce` once per chain before signing.

    The same private key is used on several EVM chains in a cross-chain
    transfer, so create one :py:class:`HotWallet` per chain connection.

    Example:

    .. code-block:: python

        hot_wallet = HotWallet.from_private_key(os.environ["PRIVATE_KEY"])
        hot_wallet.sync_nonce(web3)
        bound_func = usdc.functions.approve(spender, 10_000 * 10**6)
        tx_hash = hot_wallet.transact_and_broadcast_with_contract(bound_func)

    .. note ::

        This class is not thread safe.
    """

    def __init__(self, account: LocalAccount):
        """Create a hot wallet from a local account."""
        self.account = account
        self.current_nonce: Optional[int] = None

    def __repr__(self):
        return f"<Hot wallet {self.account.address}>"

    @property
    def address(self) -> HexAddress:
        """Ethereum address of the wallet."""
        return self.account.address

    def sync_nonce(self, web3: Web3):
        """Initialise the current nonce from the on-chain data."""
        self.current_nonce = web3.eth.get_transaction_count(self.account.address)
        logger.info("Synced nonce for %s to %d", self.account.address, self.current_nonce)

    def allocate_nonce(self) -> int:
        """Get the next free available nonce to be used with a transaction.

        Increase the nonce counter
        """
        assert self.current_nonce is not None, f"Nonce is not yet synced from the blockchain: {self}"
        nonce = self.current_nonce
        self.current_nonce += 1
        return nonce

    def sign_transaction_with_new_nonce(self, tx: dict) -> SignedTransactionWithNonce:
        """Signs a transaction and allocates a nonce for it.

        :param tx:
            Ethereum transaction data as a dict.
            This is modified in-place to include nonce.

        :return:
            A transaction payload and nonce with used to generate this transaction.
        """
        assert type(tx) == dict
        assert "nonce" not in tx
        tx["nonce"] = self.allocate_nonce()
        _signed = self.account.sign_transaction(tx)

        return SignedTransactionWithNonce(
            raw_transaction=HexBytes(_signed.raw_transaction),
            hash=HexBytes(_signed.hash),
            nonce=tx["nonce"],
            source=tx,
            address=self.address,
        )

    def get_native_currency_balance(self, web3: Web3) -> Decimal:
        """Get the balance of the native currency (ETH) of the wallet.

        Useful to check if you have enough cryptocurrency for the gas fees.
        """
        balance = web3.eth.get_balance(self.address)
        return web3.from_wei(balance, "ether")

    def transact_and_broadcast_with_contract(
        self,
        func: ContractFunction,
        gas_limit: int | None = None,
    ) -> HexBytes:
        """Transacts with a contract, broadcasts transaction.

        - Build a contract function call transaction and signs it
        - web3.py fills in gas limit and EIP-1559 fee fields from the node
        - Always use a correct manually managed nonce

        :return:
            Transaction hash
        """
        assert isinstance(func, ContractFunction), f"Got: {type(func)}"
        assert func.args is not None, f"Unbound contract function? {func}"
        web3 = func.w3

        tx_params = {
            "from": self.address,
            "chainId": web3.eth.chain_id,
        }

        if gas_limit is not None:
            tx_params["gas"] = gas_limit

        tx_data = func.build_transaction(tx_params)

        try:
            signed_tx = self.sign_transaction_with_new_nonce(tx_data)
        except Exception as e:
            # Probably mismatch between network expected gas parameter format and what we give
            raise RuntimeError(f"Could not sign:\n{pformat(tx_data)}") from e

        return web3.eth.send_raw_transaction(signed_tx.raw_transaction)

    @staticmethod
    def from_private_key(key: str) -> "HotWallet":
        """Create a hot wallet from a private key that is passed in as a hex string.

        Example:

        .. code-block::

            # Generated with  openssl rand -hex 32
            wallet = HotWallet.from_private_key("0x54c137e27d2930f7b3433249c5f07b37ddcfea70871c0a4ef9e0f65655faf957")

        :param key:
            Hex string, with or without ``0x`` prefix

        :return:
            Ready to go hot wallet account
        """
        assert type(key) == str, f"Expected private key as string, got {type(key)}"
        if not key.startswith("0x"):
            key = f"0x{key}"
        account = Account.from_key(key)
        return HotWallet(account)
