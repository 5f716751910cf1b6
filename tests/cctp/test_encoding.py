"""Calldata encoding helpers."""

import base64

import pytest

from cctp_bridge.cctp.encoding import (
    BYTES31_SIZE,
    ChunkTooLarge,
    byte_array_calldata_to_bytes,
    bytes_to_byte_array_calldata,
    bytes_to_felt,
    decode_envelope,
    encode_mint_recipient,
    pad_to_bytes32,
    starknet_address_to_bytes32,
    u32_to_le_bytes,
)


@pytest.mark.parametrize(
    "address",
    [
        "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        "0x0000000000000000000000000000000000000001",
    ],
)
def test_encode_mint_recipient_left_pads(address: str):
    """EVM address is 12 zero bytes followed by the 20 address bytes."""
    encoded = encode_mint_recipient(address)
    assert len(encoded) == 32
    assert encoded[:12] == b"\x00" * 12
    assert encoded[12:] == bytes.fromhex(address[2:])


def test_encode_mint_recipient_accepts_lowercase():
    """Checksum is not required."""
    address = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
    assert encode_mint_recipient(address)[12:] == bytes.fromhex(address[2:])


def test_encode_mint_recipient_rejects_garbage():
    with pytest.raises(ValueError):
        encode_mint_recipient("0x1234")


def test_pad_to_bytes32():
    """Any hex value up to 32 bytes is left-padded."""
    assert pad_to_bytes32("0x1") == b"\x00" * 31 + b"\x01"
    assert pad_to_bytes32("ff") == b"\x00" * 31 + b"\xff"
    full = "0x" + "ab" * 32
    assert pad_to_bytes32(full) == bytes.fromhex("ab" * 32)


def test_pad_to_bytes32_too_long():
    with pytest.raises(ValueError):
        pad_to_bytes32("0x" + "ab" * 33)


def test_starknet_address_to_bytes32():
    """Felt addresses with leading zeroes stripped still land at the end of the word."""
    assert starknet_address_to_bytes32("0x4c6b") == b"\x00" * 30 + b"\x4c\x6b"


def test_u32_to_le_bytes():
    assert u32_to_le_bytes(6) == b"\x06\x00\x00\x00"
    assert u32_to_le_bytes(25) == b"\x19\x00\x00\x00"
    assert u32_to_le_bytes(0x01020304) == b"\x04\x03\x02\x01"


def test_decode_envelope_hex_and_base64_agree():
    """Same bytes come out whatever the envelope."""
    payload = bytes(range(40))
    assert decode_envelope("0x" + payload.hex()) == payload
    assert decode_envelope(payload.hex()) == payload
    assert decode_envelope(base64.b64encode(payload).decode()) == payload


def test_decode_envelope_odd_hex():
    with pytest.raises(ValueError):
        decode_envelope("0xabc")


def test_decode_envelope_garbage():
    with pytest.raises(ValueError):
        decode_envelope("not base64 !!")


def test_bytes_to_felt():
    assert bytes_to_felt(b"") == 0
    assert bytes_to_felt(b"\x01\x00") == 256
    assert bytes_to_felt(b"\xff" * BYTES31_SIZE) == 2 ** (8 * BYTES31_SIZE) - 1


def test_bytes_to_felt_chunk_too_large():
    with pytest.raises(ChunkTooLarge):
        bytes_to_felt(b"\x00" * 32)


def test_byte_array_calldata_hello():
    """Short strings only use the pending word."""
    assert bytes_to_byte_array_calldata(b"hello") == [0, 0x68656C6C6F, 5]


def test_byte_array_calldata_empty():
    assert bytes_to_byte_array_calldata(b"") == [0, 0, 0]


@pytest.mark.parametrize("length", [0, 1, 30, 31, 32, 61, 62, 63, 93, 248])
def test_byte_array_calldata_shape(length: int):
    """Word count, pending length and reassembly hold for any length."""
    data = bytes((i * 7 + 3) % 256 for i in range(length))
    calldata = bytes_to_byte_array_calldata(data)

    n_words = length // BYTES31_SIZE
    assert calldata[0] == n_words
    assert len(calldata) == n_words + 3
    assert calldata[-1] == length % BYTES31_SIZE
    assert all(word < 2 ** (8 * BYTES31_SIZE) for word in calldata[1:-1])
    assert byte_array_calldata_to_bytes(calldata) == data
