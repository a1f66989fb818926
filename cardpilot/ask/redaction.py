"""
PII redaction applied before anything about a question is persisted.

Card numbers are replaced before phone and SSN patterns run, so a 16-digit
card number is never split into a phone-shaped and an SSN-shaped token.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
CARD_NUMBER_PATTERN = re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")
PHONE_PATTERN = re.compile(r"\b(?:\+?1[-.\s]?)?(?:\(?[0-9]{3}\)?[-.\s]?)?[0-9]{3}[-.\s]?[0-9]{4}\b")
SSN_PATTERN = re.compile(r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b")
ADDRESS_PATTERN = re.compile(
    r"\b\d{1,5}\s+\w+\s+(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|court|ct)\b",
    re.IGNORECASE,
)
ZIP_PATTERN = re.compile(r"\b\d{5}(?:-\d{4})?\b")
ACCOUNT_NUMBER_PATTERN = re.compile(r"\b(?:account|acct)\s*#?\s*\d{6,}\b", re.IGNORECASE)

# (type, pattern, token); zip is handled separately
_ORDERED = (
    ("email", EMAIL_PATTERN, "[EMAIL]"),
    ("card_number", CARD_NUMBER_PATTERN, "[CARD_NUMBER]"),
    ("account_number", ACCOUNT_NUMBER_PATTERN, "[ACCOUNT]"),
    ("ssn", SSN_PATTERN, "[SSN]"),
    ("phone", PHONE_PATTERN, "[PHONE]"),
    ("address", ADDRESS_PATTERN, "[ADDRESS]"),
)


@dataclass(frozen=True)
class RedactionResult:
    text: str
    redacted_count: int
    types: List[str] = field(default_factory=list)


def redact_pii(text: str) -> RedactionResult:
    """Replace email, card, account, SSN, phone, address and ZIP substrings with fixed tokens."""
    result = text
    count = 0
    types: List[str] = []
    for kind, pattern, token in _ORDERED:
        result, n = pattern.subn(token, result)
        if n:
            count += n
            types.append(kind)

    # A bare five-digit number is only a ZIP when an address was present.
    if "address" in types:
        result, n = ZIP_PATTERN.subn("[ZIP]", result)
        if n:
            count += n
            types.append("zip")

    return RedactionResult(text=result, redacted_count=count, types=types)


def redact_structure(value: Any) -> Any:
    """Redact every string inside nested dicts and lists."""
    if isinstance(value, str):
        return redact_pii(value).text
    if isinstance(value, dict):
        return {k: redact_structure(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact_structure(v) for v in value]
    return value
