"""Starknet ``receive_message`` calldata and mint with a mocked account."""

from unittest.mock import AsyncMock, Mock

from starknet_py.hash.selector import get_selector_from_name

from cctp_bridge.cctp.attestation import CCTPAttestation
from cctp_bridge.cctp.constants import CCTP_DOMAIN_STARKNET, STARKNET_SEPOLIA_MESSAGE_TRANSMITTER
from cctp_bridge.cctp.encoding import byte_array_calldata_to_bytes, pad_to_bytes32
from cctp_bridge.cctp.starknet import (
    StarknetDestinationAdapter,
    encode_receive_message_calldata,
    prepare_receive_message_call,
)

#: Size of a CCTP V2 burn message with empty hook data
MESSAGE = bytes(i % 256 for i in range(376))

#: One 65 byte ECDSA signature
ATTESTATION = b"\x1b" * 65


def test_receive_message_calldata():
    """Message and attestation are two ByteArrays back to back."""
    calldata = encode_receive_message_calldata(MESSAGE, ATTESTATION)

    message_len = len(MESSAGE) // 31 + 3
    attestation_len = len(ATTESTATION) // 31 + 3
    assert len(calldata) == message_len + attestation_len

    assert byte_array_calldata_to_bytes(calldata[:message_len]) == MESSAGE
    assert byte_array_calldata_to_bytes(calldata[message_len:]) == ATTESTATION

    # 65 bytes = 2 full words + 3 pending bytes
    assert calldata[message_len] == 2
    assert calldata[-1] == 3


def test_receive_message_call():
    call = prepare_receive_message_call(MESSAGE, ATTESTATION)
    assert call.to_addr == int(STARKNET_SEPOLIA_MESSAGE_TRANSMITTER, 16)
    assert call.selector == get_selector_from_name("receive_message")
    assert call.calldata == encode_receive_message_calldata(MESSAGE, ATTESTATION)


def test_mint_recipient(test_starknet_address):
    adapter = StarknetDestinationAdapter(account=Mock(), node_url="https://starknet.example.com")
    assert adapter.encode_mint_recipient(test_starknet_address) == pad_to_bytes32(test_starknet_address)
    assert adapter.encode_mint_recipient("0x1") == b"\x00" * 31 + b"\x01"


def test_mint():
    """Mint executes one call and waits for it."""
    account = Mock()
    account.address = 0x123
    account.execute_v3 = AsyncMock(return_value=Mock(transaction_hash=0xABC))
    account.client.wait_for_tx = AsyncMock()

    adapter = StarknetDestinationAdapter(account=account, node_url="https://starknet.example.com")
    receipt = adapter.mint(CCTPAttestation(message=MESSAGE, attestation=ATTESTATION, status="complete"))

    assert receipt.transaction_id == "0xabc"
    assert receipt.destination_domain == CCTP_DOMAIN_STARKNET
    assert receipt.confirmed

    calls = account.execute_v3.call_args.kwargs["calls"]
    assert len(calls) == 1
    assert calls[0].calldata == encode_receive_message_calldata(MESSAGE, ATTESTATION)
    account.client.wait_for_tx.assert_awaited_once_with(0xABC)
