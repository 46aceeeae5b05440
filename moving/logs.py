"""Logging setup and PII masking shared by the server and the CLI."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(name)-20s %(levelname)-7s %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Configure the root logger so every ``moving.*`` logger has a handler."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
    )


def redact_pii(value: str) -> str:
    """Mask PII for logging: show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]
