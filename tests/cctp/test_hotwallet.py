"""Local signing and revert explanation without a node."""

from unittest.mock import Mock

import pytest
from eth_account import Account
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from cctp_bridge.hotwallet import HotWallet
from cctp_bridge.trace import TransactionAssertionError, assert_transaction_success_with_explanation

#: Anvil account #0
PRIVATE_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


def test_from_private_key_without_prefix(test_address):
    hot_wallet = HotWallet.from_private_key(PRIVATE_KEY)
    assert hot_wallet.address == test_address


def test_nonce_must_be_synced():
    hot_wallet = HotWallet.from_private_key(PRIVATE_KEY)
    with pytest.raises(AssertionError):
        hot_wallet.allocate_nonce()


def test_sign_with_new_nonce(test_address):
    """Nonces are handed out in order and the signature recovers to us."""
    hot_wallet = HotWallet.from_private_key(PRIVATE_KEY)
    web3 = Mock()
    web3.eth.get_transaction_count.return_value = 7
    hot_wallet.sync_nonce(web3)

    tx = {
        "to": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        "value": 0,
        "gas": 100_000,
        "maxFeePerGas": 2 * 10**9,
        "maxPriorityFeePerGas": 10**9,
        "chainId": 84532,
        "data": "0x",
    }
    signed = hot_wallet.sign_transaction_with_new_nonce(dict(tx))
    assert signed.nonce == 7
    assert signed.address == test_address
    assert Account.recover_transaction(signed.raw_transaction) == test_address

    signed = hot_wallet.sign_transaction_with_new_nonce(dict(tx))
    assert signed.nonce == 8


def test_reverted_transaction_is_explained():
    web3 = Mock()
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 0}
    web3.eth.get_transaction.return_value = {
        "to": "0x8FE6B999Dc680CcFDD5Bf7EB0974218be2542DAA",
        "from": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        "value": 0,
        "input": "0x",
        "blockNumber": 100,
    }
    web3.eth.call.side_effect = ContractLogicError("execution reverted: Insufficient max fee")

    with pytest.raises(TransactionAssertionError) as exc_info:
        assert_transaction_success_with_explanation(web3, HexBytes("0x" + "aa" * 32))

    assert "Insufficient max fee" in exc_info.value.revert_reason
    assert web3.eth.call.call_args.args[1] == 99


def test_successful_transaction():
    web3 = Mock()
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 1}
    receipt = assert_transaction_success_with_explanation(web3, HexBytes("0x" + "aa" * 32))
    assert receipt["status"] == 1
