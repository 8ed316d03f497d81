"""Utility helpers for normalising scraped text values."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

DEFAULT_COUNTRY_CODE = "98"
MIN_PHONE_DIGITS = 7

# Persian (U+06F0..) and Arabic-Indic (U+0660..) digits map onto ASCII.
_DIGIT_TABLE = str.maketrans(
    "۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩",
    "01234567890123456789",
)
_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_WHITESPACE = re.compile(r"\s+")


def clean_text(value: str | None) -> str:
    """Collapse runs of whitespace and trim."""

    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def normalize_phone(value: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """Return an E.164-style phone string, or ``None`` when the input is unusable.

    ``0098...`` and ``00...`` become ``+98...``/``+...``; a single national
    trunk ``0`` is swapped for ``+<country_code>``.
    """

    if not value:
        return None

    digits = _NON_PHONE_CHARS.sub("", value.translate(_DIGIT_TABLE))
    if "+" in digits[1:]:
        digits = digits[0] + digits[1:].replace("+", "")

    if len(digits.lstrip("+")) < MIN_PHONE_DIGITS:
        return None

    if digits.startswith("+"):
        return digits
    if digits.startswith("00"):
        return "+" + digits[2:]
    if digits.startswith("0"):
        return f"+{country_code}{digits[1:]}"
    return digits


def normalize_href(href: str) -> str:
    """Strip query string and fragment; the result is only used as a dedup key."""

    parts = urlsplit(href)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def strip_label_prefix(value: str | None, prefixes: Iterable[str]) -> str | None:
    """Remove a leading localized label such as ``Address:`` from *value*."""

    if value is None:
        return None
    cleaned = value.strip()
    for prefix in prefixes:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :].strip()
            break
    return cleaned or None


def safe_filename_part(value: str) -> str:
    """Keep ASCII alphanumerics and Arabic-script letters; everything else becomes ``_``."""

    return re.sub(r"[^A-Za-z0-9؀-ۿ]", "_", value or "") or "_"


__all__ = [
    "clean_text",
    "normalize_href",
    "normalize_phone",
    "safe_filename_part",
    "strip_label_prefix",
]
