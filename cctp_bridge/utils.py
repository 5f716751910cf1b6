"""Logging and formatting helpers for scripts."""

import logging
import os
from decimal import Decimal
from typing import Optional
from urllib.parse import urlparse

import coloredlogs

#: USDC has 6 decimals on every CCTP chain
USDC_DECIMALS = 6


def get_url_domain(url: str) -> str:
    """Redact URL so that only domain is displayed.

    Some services e.g. infura use path as an API key.
    """
    parsed = urlparse(url)
    if parsed.port in (80, 443, None):
        return parsed.hostname
    else:
        return f"{parsed.hostname}:{parsed.port}"


def format_usdc(raw_amount: int) -> str:
    """Human readable USDC amount from raw 6 decimals units.

    Example:

    .. code-block:: python

        assert format_usdc(100_000) == "0.1 USDC"
    """
    return f"{Decimal(raw_amount) / Decimal(10**USDC_DECIMALS)} USDC"


def setup_console_logging(
    default_log_level="info",
    simplified_logging=False,
    std_out_log_level: Optional[int] = None,
) -> logging.Logger:
    """Set up coloured log output.

    - Helper function to have nicer logging output in transfer scripts.
    - Tune down some noisy dependency library logging

    :param default_log_level:
        Used unless ``LOG_LEVEL`` environment variable is set.

    :param simplified_logging:
        Only print the message, no timestamp or logger name.

    :return:
        Root logger
    """

    level = os.environ.get("LOG_LEVEL", default_log_level).upper()
    numeric_level = getattr(logging, level, None)
    assert numeric_level, f"No level: {level}"

    if not std_out_log_level:
        std_out_log_level = numeric_level

    if simplified_logging:
        fmt = "%(message)s"
    else:
        fmt = "%(asctime)s %(name)-34s %(message)s"

    coloredlogs.install(level=std_out_log_level, fmt=fmt, datefmt="%H:%M:%S")

    # Mute noise
    logging.getLogger("web3.providers.HTTPProvider").setLevel(logging.WARNING)
    logging.getLogger("web3.RequestManager").setLevel(logging.WARNING)
    logging.getLogger("web3.manager.RequestManager").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    return logging.getLogger()
