"""
Invoice number generation.

Format: ``{PREFIX}-{YYYYMMDD}-{SUFFIX}`` where the date is the issue date and
SUFFIX is six uppercase alphanumerics, e.g. ``INV-20250704-7K2Q9D``.
"""
import re
import secrets
import string
from datetime import date
from typing import Callable, Optional

from bizledger.core.config import settings


SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6
MAX_ATTEMPTS = 20

INVOICE_NUMBER_RE = re.compile(r"^[A-Z]+-\d{8}-[A-Z0-9]{6}$")


def random_suffix() -> str:
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))


def generate_invoice_number(
    issued_date: date,
    is_taken: Optional[Callable[[str], bool]] = None,
    prefix: Optional[str] = None,
) -> str:
    """
    Generate an invoice number for ``issued_date``.

    ``is_taken`` is asked about every candidate; a taken candidate is
    discarded and a new suffix drawn. The unique constraint on
    ``invoices.invoice_number`` still backs this up against concurrent
    writers.
    """
    prefix = prefix or settings.invoice_number_prefix
    for _ in range(MAX_ATTEMPTS):
        candidate = f"{prefix}-{issued_date:%Y%m%d}-{random_suffix()}"
        if is_taken is None or not is_taken(candidate):
            return candidate
    raise RuntimeError(f"Could not allocate a free invoice number for {issued_date.isoformat()}")
