"""Calldata encoding helpers shared by the chain adapters.

Pure functions, no network access:

- Decode Iris ``message`` and ``attestation`` payloads that may come as hex or base64
- Left-pad addresses to the ``bytes32`` CCTP uses for recipients and callers
- Pack byte strings into Cairo ``ByteArray`` calldata for Starknet

Cairo serialises a ``ByteArray`` as::

    [n_full_words, word_0, ..., word_{n-1}, pending_word, pending_word_len]

where every full word holds 31 bytes as a big-endian felt and the pending
word holds the remaining ``len % 31`` bytes.
"""

import base64
import binascii
import re

from eth_typing import HexAddress
from web3 import Web3

#: How many bytes fit in one Cairo ``bytes31`` word
BYTES31_SIZE = 31

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class ChunkTooLarge(ValueError):
    """Tried to pack more than 31 bytes into one felt."""


def is_hex_envelope(payload: str) -> bool:
    """Does an Iris payload look like hex rather than base64."""
    return payload.startswith("0x") or bool(_HEX_RE.match(payload))


def decode_envelope(payload: str) -> bytes:
    """Decode an Iris payload to raw bytes.

    Iris returns ``0x`` prefixed hex, but the decoder also accepts
    bare hex and base64.

    .. note ::

        A base64 payload made of hex digits only is read as hex.

    :param payload:
        Hex or base64 string

    :return:
        Raw bytes
    """
    assert isinstance(payload, str), f"Expected str, got {type(payload)}"
    if is_hex_envelope(payload):
        clean = payload[2:] if payload.startswith("0x") else payload
        if len(clean) % 2:
            raise ValueError(f"Odd-length hex payload: {payload[:16]}...")
        return bytes.fromhex(clean)

    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Payload is neither hex nor base64: {payload[:16]}...") from e


def pad_to_bytes32(hex_value: str) -> bytes:
    """Left-pad a hex value to 32 bytes.

    Works for EVM addresses, Starknet felts and any other value that fits.

    :raise ValueError:
        If the value is longer than 32 bytes.
    """
    clean = hex_value[2:] if hex_value.startswith("0x") else hex_value
    if len(clean) > 64:
        raise ValueError(f"Value does not fit in bytes32: {hex_value}")
    return bytes.fromhex(clean.zfill(64))


def encode_mint_recipient(address: HexAddress | str) -> bytes:
    """Convert an Ethereum address to bytes32 format for the ``mintRecipient`` parameter.

    CCTP uses bytes32 for recipient addresses to support non-EVM chains.
    For EVM chains, the address is left-padded with zeros to 32 bytes.

    :param address:
        Ethereum address (0x-prefixed hex string)

    :return:
        32-byte representation of the address

    :raise ValueError:
        Not a valid EVM address
    """
    address = Web3.to_checksum_address(address)
    # Remove 0x prefix, left-pad to 64 hex chars (32 bytes)
    return bytes.fromhex(address[2:].lower().zfill(64))


def starknet_address_to_bytes32(address: str) -> bytes:
    """Starknet contract address as 32 bytes.

    Used as the ``mint_recipient`` public key when burning on Solana.
    """
    return pad_to_bytes32(address)


def u32_to_le_bytes(value: int) -> bytes:
    """Little-endian u32, as Borsh encodes CCTP domains."""
    return value.to_bytes(4, "little")


def bytes_to_felt(chunk: bytes) -> int:
    """Turn a chunk of at most 31 bytes into a felt.

    Empty chunk is zero.

    :raise ChunkTooLarge:
        Chunk does not fit in ``bytes31``
    """
    if len(chunk) > BYTES31_SIZE:
        raise ChunkTooLarge(f"Chunk too large for bytes31: {len(chunk)} bytes")
    return int.from_bytes(chunk, "big")


def bytes_to_byte_array_calldata(data: bytes) -> list[int]:
    """Serialise bytes as Cairo ``ByteArray`` calldata.

    Example:

    .. code-block:: python

        calldata = bytes_to_byte_array_calldata(b"hello")
        assert calldata == [0, 0x68656C6C6F, 5]

    :return:
        ``len(data) // 31 + 3`` felts
    """
    full_chunks = len(data) // BYTES31_SIZE
    words = [bytes_to_felt(data[i * BYTES31_SIZE : (i + 1) * BYTES31_SIZE]) for i in range(full_chunks)]
    pending = data[full_chunks * BYTES31_SIZE :]
    return [len(words), *words, bytes_to_felt(pending), len(pending)]


def byte_array_calldata_to_bytes(calldata: list[int]) -> bytes:
    """Reassemble bytes from Cairo ``ByteArray`` calldata.

    Inverse of :py:func:`bytes_to_byte_array_calldata`.
    """
    n_words = calldata[0]
    assert len(calldata) == n_words + 3, f"Bad ByteArray calldata length {len(calldata)} for {n_words} words"
    words = calldata[1 : 1 + n_words]
    pending_word, pending_len = calldata[1 + n_words], calldata[2 + n_words]
    assert 0 <= pending_len < BYTES31_SIZE, f"Bad pending word length {pending_len}"
    return b"".join(w.to_bytes(BYTES31_SIZE, "big") for w in words) + pending_word.to_bytes(pending_len, "big")
