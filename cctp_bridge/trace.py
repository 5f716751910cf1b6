"""Transaction success checks with human-readable failure output.

Public testnet RPCs do not offer transaction tracing, so on a revert we
report the transaction details and the revert reason the node gives us
when replaying the call.
"""
import logging

from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError
from web3.types import TxReceipt

logger = logging.getLogger(__name__)


class TransactionAssertionError(AssertionError):
    """Exception thrown when a broadcasted transaction reverts.

    See :py:func:`assert_transaction_success_with_explanation`.
    """

    def __init__(
        self,
        message,
        revert_reason: str = "",
    ):
        super().__init__(message)
        self.revert_reason = revert_reason


def fetch_transaction_revert_reason(
    web3: Web3,
    tx_hash: HexBytes,
) -> str:
    """Replay a failed transaction as a call to get its revert reason.

    :return:
        Revert reason string or ``"<unknown>"`` if the node does not tell.
    """
    tx = web3.eth.get_transaction(tx_hash)
    replay_tx = {
        "to": tx["to"],
        "from": tx["from"],
        "value": tx["value"],
        "data": tx["input"],
    }

    try:
        web3.eth.call(replay_tx, tx["blockNumber"] - 1)
    except ContractLogicError as e:
        return str(e)
    except ValueError as e:
        # Non-standard JSON-RPC error payload
        return str(e)

    return "<unknown>"


def assert_transaction_success_with_explanation(
    web3: Web3,
    tx_hash: HexBytes,
    timeout: float = 180.0,
) -> TxReceipt:
    """Checks if a transaction succeeds and give a verbose explanation why not.

    Blocks until the transaction is mined.

    Example usage:

    .. code-block:: python

        tx_hash = web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        receipt = assert_transaction_success_with_explanation(web3, tx_hash)

    :param web3:
        Web3 instance

    :param tx_hash:
        A transaction (mined/not mined) we want to make sure has succeeded.

    :param timeout:
        Seconds to wait for the receipt.

    :raise TransactionAssertionError:
        Outputs a verbose AssertionError on what went wrong.

    :return tx_receipt:
        Output transaction receipt if no error is raised
    """

    receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    if receipt["status"] == 0:
        # Explain why the transaction failed
        tx_details = web3.eth.get_transaction(tx_hash)
        revert_reason = fetch_transaction_revert_reason(web3, tx_hash)
        raise TransactionAssertionError(
            f"Transaction failed: {tx_details}\n" f"Revert reason: {revert_reason}\n",
            revert_reason=revert_reason,
        )

    return receipt
