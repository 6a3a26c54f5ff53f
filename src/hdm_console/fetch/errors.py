# src/hdm_console/fetch/errors.py

from __future__ import annotations

import logging

from .fetch_models import DEFAULT_ERROR_MESSAGE

logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    """Text published for a failed request. Every failure collapses to one string."""
    text = str(exc).strip()
    return text or DEFAULT_ERROR_MESSAGE


def describe_network_error(error: BaseException | str) -> str:
    """
    Map a raw failure to a sentence a screen can show as-is.

    Matching is by substring on the message, checked in this order:
    fetch/network, timeout, 404, 500, anything else.
    """
    message = error if isinstance(error, str) else error_message(error)
    lowered = message.lower()

    if "fetch" in lowered or "network" in lowered:
        text = "Network connection failed, please check your network settings"
    elif "timeout" in lowered or "timed out" in lowered:
        text = "Request timed out, please try again later"
    elif "404" in lowered:
        text = "The requested resource does not exist"
    elif "500" in lowered:
        text = "Internal server error, please try again later"
    else:
        text = "Network request failed, please try again later"

    logger.error("Network error: %s", message)
    return text
