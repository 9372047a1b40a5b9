"""Voucher code generation."""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from .datetime import epoch_millis

VOUCHER_ALPHABET = string.ascii_uppercase + string.digits


def generate_voucher_code(prefix: str, issued_at: datetime, random_length: int = 9) -> str:
    """Build ``<PREFIX>-<epoch-millis>-<random>`` using a CSPRNG for the suffix."""

    if random_length < 9:
        raise ValueError("Voucher codes need at least 9 random characters.")
    suffix = "".join(secrets.choice(VOUCHER_ALPHABET) for _ in range(random_length))
    return f"{prefix.upper()}-{epoch_millis(issued_at)}-{suffix}"


def normalize_voucher_code(code: str) -> str:
    return code.strip().upper()
