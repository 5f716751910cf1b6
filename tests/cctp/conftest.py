"""Shared fixtures for offline CCTP tests."""

import json
from unittest.mock import Mock

import pytest
import requests

from cctp_bridge.cctp.attestation import AttestationRetryConfig

#: Anvil account #0, never holds real funds
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

#: Address of ``TEST_PRIVATE_KEY``
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

#: Some Starknet account address
TEST_STARKNET_ADDRESS = "0x04c6b6e54b79d6a8fbd8fe2ad2b9a61a98a2a1a7e4f0b9bd0b6e1f4a8e77d9c1"


def _make_iris_response(status_code: int = 200, payload: dict | None = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = json.dumps(payload)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


def _make_iris_message(status: str = "complete", message: str = "0xdeadbeef", attestation: str = "0xcafebabe") -> dict:
    return {
        "messages": [
            {
                "status": status,
                "message": message,
                "attestation": attestation,
                "eventNonce": "1",
            }
        ]
    }


@pytest.fixture()
def make_iris_response():
    """Factory for fake ``requests.Response`` objects from the Iris API."""
    return _make_iris_response


@pytest.fixture()
def make_iris_message():
    """Factory for Iris ``/v2/messages`` payloads with one message."""
    return _make_iris_message


@pytest.fixture()
def retry_config() -> AttestationRetryConfig:
    """Fail fast, no sleeping."""
    return AttestationRetryConfig.create_test_config()


@pytest.fixture()
def mock_session() -> Mock:
    """HTTP session whose ``get`` responses are set by the test."""
    return Mock(spec=requests.Session)


@pytest.fixture()
def test_address() -> str:
    return TEST_ADDRESS


@pytest.fixture()
def test_starknet_address() -> str:
    return TEST_STARKNET_ADDRESS


@pytest.fixture()
def evm_environ() -> dict:
    """Environment for an EVM to EVM transfer."""
    return {
        "PRIVATE_KEY": TEST_PRIVATE_KEY[2:],
        "JSON_RPC_BASE_SEPOLIA": "https://base-sepolia.example.com",
    }


@pytest.fixture()
def starknet_environ(evm_environ) -> dict:
    """Environment for an EVM to Starknet transfer."""
    return evm_environ | {
        "STARKNET_RPC": "https://starknet-sepolia.example.com",
        "STARKNET_ACCOUNT_ADDRESS": TEST_STARKNET_ADDRESS,
        "STARKNET_PRIVATE_KEY": "0x1234",
    }
