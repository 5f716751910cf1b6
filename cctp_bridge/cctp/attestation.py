"""Circle CCTP V2 attestation service client.

Poll Circle's Iris API for burn attestations needed to complete
cross-chain USDC transfers.

After burning on the source chain, you must wait for Circle's attestation
service to sign the burn event. This module provides utilities to poll
for and retrieve the attestation.

Two kinds of "not ready" are told apart:

- **Pending**: Iris answers 404 (burn not indexed yet) or the message status is
  not ``complete``. Retried on a fixed cadence, forever unless a
  ``timeout`` or ``max_attempts`` is given.
- **Transport failure**: connection errors, any non-2xx answer other than 404,
  a malformed body or an undecodable complete payload.
  Retried with exponential backoff for a bounded number of consecutive
  failures, then :py:class:`AttestationServiceError` is raised.

Example::

    from cctp_bridge.cctp.attestation import fetch_attestation
    from cctp_bridge.cctp.constants import CCTP_DOMAIN_BASE, IRIS_API_SANDBOX_URL

    attestation = fetch_attestation(
        source_domain=CCTP_DOMAIN_BASE,
        transaction_hash="0x...",
        api_base_url=IRIS_API_SANDBOX_URL,
    )

    # Use attestation.message and attestation.attestation
    # with the destination chain adapter
"""

import logging
import threading
import time
from dataclasses import dataclass

import requests

from cctp_bridge.cctp.constants import CCTP_DOMAIN_NAMES, EVM_CCTP_DOMAINS, IRIS_API_SANDBOX_URL
from cctp_bridge.cctp.encoding import decode_envelope

logger = logging.getLogger(__name__)

#: HTTP 404 status code indicating resource not found
HTTP_NOT_FOUND = 404

#: Iris status of a signed attestation
ATTESTATION_STATUS_COMPLETE = "complete"

#: Placeholder Iris returns in the ``attestation`` field before signing
ATTESTATION_PLACEHOLDER = "PENDING"

#: Seconds before a single Iris HTTP request times out
REQUEST_TIMEOUT = 30


class AttestationTimeout(TimeoutError):
    """Attestation was not complete within the given deadline or attempt limit."""


class AttestationCancelled(Exception):
    """Waiting for attestation was cancelled by the caller."""


class AttestationServiceError(Exception):
    """Iris could not be reached or returned garbage too many times in a row."""


@dataclass(slots=True)
class AttestationRetryConfig:
    """Backoff for transport failures while talking to Iris.

    Pending attestations are not affected by this, they use the poll interval.

    Example:

    .. code-block:: python

        # Production (default)
        config = AttestationRetryConfig()

        # Fast-fail for tests
        config = AttestationRetryConfig.create_test_config()
    """

    #: How many failures in a row before giving up
    max_consecutive_failures: int = 5

    #: Initial delay in seconds between retries (grows with backoff)
    initial_delay: float = 2.0

    #: Maximum delay cap in seconds for exponential backoff
    max_delay: float = 60.0

    #: Multiplier applied to delay after each failed attempt
    backoff_multiplier: float = 2.0

    @classmethod
    def create_test_config(cls) -> "AttestationRetryConfig":
        """Create a retry config without delays for unit tests."""
        return cls(
            max_consecutive_failures=3,
            initial_delay=0.0,
            max_delay=0.0,
            backoff_multiplier=2.0,
        )

    def get_delay(self, failure_count: int) -> float:
        """Delay after the nth consecutive failure, 1-based."""
        return min(self.initial_delay * self.backoff_multiplier ** (failure_count - 1), self.max_delay)


#: Default production retry configuration
DEFAULT_RETRY_CONFIG = AttestationRetryConfig()


@dataclass(slots=True)
class CCTPAttestation:
    """Attestation data for a CCTP burn event.

    Contains the signed message and attestation needed to call
    ``receiveMessage()`` on the destination chain's MessageTransmitterV2.
    """

    #: The CCTP message bytes to relay to the destination chain
    message: bytes

    #: The signed attestation bytes from Circle's Iris service
    attestation: bytes

    #: Status from Iris API (e.g. "complete")
    status: str


class _TransportError(Exception):
    """Internal: retryable Iris failure."""


def normalise_transaction_id(source_domain: int, transaction_hash: str) -> str:
    """Format a burn transaction id the way Iris expects it.

    EVM hashes must be 0x-prefixed, Solana signatures are base58 as is.
    """
    if source_domain in EVM_CCTP_DOMAINS and not transaction_hash.startswith("0x"):
        return f"0x{transaction_hash}"
    return transaction_hash


def get_attestation_url(api_base_url: str, source_domain: int, transaction_hash: str) -> str:
    """Iris endpoint listing messages emitted by a burn transaction."""
    return f"{api_base_url}/v2/messages/{source_domain}?transactionHash={transaction_hash}"


def _is_complete(msg: dict) -> bool:
    attestation = msg.get("attestation")
    return msg.get("status") == ATTESTATION_STATUS_COMPLETE and bool(attestation) and attestation != ATTESTATION_PLACEHOLDER


def _fetch_first_message(session: requests.Session, url: str) -> dict | None:
    """One Iris round trip.

    :return:
        First message dict or ``None`` if the burn is not indexed yet

    :raise _TransportError:
        Retryable failure
    """
    try:
        response = session.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise _TransportError(f"Iris request failed: {e}") from e

    # Iris API returns 404 when the transaction is not yet indexed
    if response.status_code == HTTP_NOT_FOUND:
        return None

    if not 200 <= response.status_code < 300:
        raise _TransportError(f"Iris returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise _TransportError(f"Iris returned non-JSON body: {response.text[:200]}") from e

    if not isinstance(data, dict):
        raise _TransportError(f"Iris returned unexpected payload: {data!r:.200}")

    messages = data.get("messages") or []
    if not messages:
        return None

    msg = messages[0]
    if not isinstance(msg, dict):
        raise _TransportError(f"Iris returned unexpected message entry: {msg!r:.200}")
    return msg


def _decode_attestation(msg: dict) -> CCTPAttestation:
    try:
        return CCTPAttestation(
            message=decode_envelope(msg.get("message")),
            attestation=decode_envelope(msg["attestation"]),
            status=msg["status"],
        )
    except (AssertionError, ValueError) as e:
        raise _TransportError(f"Iris returned undecodable attestation payload: {e}") from e


def fetch_attestation(
    source_domain: int,
    transaction_hash: str,
    api_base_url: str = IRIS_API_SANDBOX_URL,
    poll_interval: float = 5.0,
    timeout: float | None = None,
    max_attempts: int | None = None,
    cancel_event: threading.Event | None = None,
    retry_config: AttestationRetryConfig | None = None,
    session: requests.Session | None = None,
) -> CCTPAttestation:
    """Poll the Iris API until attestation is ready.

    Circle's Iris service observes burn events on the source chain and
    produces a cryptographic attestation after block finality is reached.

    The attestation goes through these Iris API statuses:

    - **404**: transaction not yet indexed by Circle
    - **pending_confirmations**: burn detected, waiting for block finality
    - **complete**: attestation signed and ready

    :param source_domain:
        CCTP domain ID of the source chain (e.g. 6 for Base).

    :param transaction_hash:
        Transaction hash (EVM) or signature (Solana) of the burn.

    :param api_base_url:
        Iris API base URL. Defaults to the testnet sandbox.

    :param poll_interval:
        Seconds between polling attempts. Default 5 seconds.

    :param timeout:
        Maximum seconds to wait. ``None`` waits until the attestation is ready.

    :param max_attempts:
        Maximum number of Iris requests. ``None`` for no limit.

    :param cancel_event:
        Set this event from another thread or a signal handler to stop waiting.

    :param retry_config:
        Backoff for transport failures.

    :param session:
        Reuse a HTTP session. A new one is created if not given.

    :return:
        :class:`CCTPAttestation` with message and attestation bytes.

    :raises AttestationTimeout:
        If attestation is not ready within the timeout or attempt limit.

    :raises AttestationCancelled:
        If ``cancel_event`` was set.

    :raises AttestationServiceError:
        If Iris kept failing at the transport level.
    """

    if retry_config is None:
        retry_config = DEFAULT_RETRY_CONFIG

    if cancel_event is None:
        cancel_event = threading.Event()

    if session is None:
        session = requests.Session()

    transaction_hash = normalise_transaction_id(source_domain, transaction_hash)
    domain_name = CCTP_DOMAIN_NAMES.get(source_domain, f"domain-{source_domain}")
    url = get_attestation_url(api_base_url, source_domain, transaction_hash)

    logger.info(
        "Waiting for CCTP attestation on %s: tx=%s\n  Iris API: %s",
        domain_name,
        transaction_hash,
        url,
    )

    start_time = time.monotonic()
    attempt = 0
    consecutive_failures = 0

    while True:
        if cancel_event.is_set():
            raise AttestationCancelled(f"Stopped waiting for attestation of {transaction_hash} on {domain_name}")

        elapsed = time.monotonic() - start_time
        if timeout is not None and elapsed >= timeout:
            raise AttestationTimeout(f"CCTP attestation not ready after {timeout}s for tx {transaction_hash} on {domain_name}")

        if max_attempts is not None and attempt >= max_attempts:
            raise AttestationTimeout(f"CCTP attestation not ready after {attempt} attempts for tx {transaction_hash} on {domain_name}")

        attempt += 1
        logger.debug(
            "Polling CCTP attestation: %s (domain %s), tx=%s, attempt=%d, elapsed=%.1fs",
            domain_name,
            source_domain,
            transaction_hash,
            attempt,
            elapsed,
        )

        try:
            msg = _fetch_first_message(session, url)
            attestation = _decode_attestation(msg) if msg is not None and _is_complete(msg) else None
        except _TransportError as e:
            consecutive_failures += 1
            if consecutive_failures >= retry_config.max_consecutive_failures:
                raise AttestationServiceError(f"Iris failed {consecutive_failures} times in a row for tx {transaction_hash}: {e}") from e

            delay = retry_config.get_delay(consecutive_failures)
            logger.warning(
                "Iris polling error: %s (failure %d/%d), retrying in %.1fs",
                e,
                consecutive_failures,
                retry_config.max_consecutive_failures,
                delay,
            )
            cancel_event.wait(delay)
            continue

        consecutive_failures = 0

        if msg is None:
            logger.info("Attestation not yet indexed for %s, retrying in %.0fs...", domain_name, poll_interval)
        elif attestation is not None:
            logger.info(
                "Attestation complete for %s after %d attempts (%.1fs): tx=%s",
                domain_name,
                attempt,
                elapsed,
                transaction_hash,
            )
            return attestation
        else:
            logger.info("Attestation status: %s (waiting for 'complete'), retrying in %.0fs...", msg.get("status"), poll_interval)

        cancel_event.wait(poll_interval)


def is_attestation_complete(
    source_domain: int,
    transaction_hash: str,
    api_base_url: str = IRIS_API_SANDBOX_URL,
) -> bool:
    """One-shot check if attestation is ready.

    :param source_domain:
        CCTP domain ID of the source chain.

    :param transaction_hash:
        Burn transaction hash or signature.

    :param api_base_url:
        Iris API base URL.

    :return:
        ``True`` if attestation is complete and available.
    """
    transaction_hash = normalise_transaction_id(source_domain, transaction_hash)
    url = get_attestation_url(api_base_url, source_domain, transaction_hash)

    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
        messages = data.get("messages", [])
        if messages:
            return _is_complete(messages[0])
    except (requests.RequestException, ValueError):
        logger.warning(
            "Failed to check attestation status for tx %s",
            transaction_hash,
            exc_info=True,
        )

    return False
