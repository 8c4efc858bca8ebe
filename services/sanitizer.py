# FILE: services/sanitizer.py
"""
Input Sanitizer

- Cleans every string value in an intent's params before interpretation
- Re-encodes store-operator characters so text can never act as query syntax
- validate_safe / deep_validate reject instead of cleaning (strict policy)
"""

import re
from typing import Any, Mapping

from configurations.config import MAX_STRING_LENGTH
from core.errors import MaliciousInputError

# -----------------------------
# Patterns
# -----------------------------
_SCRIPT_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
# ASCII control characters except \t \n \r
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_SCRIPT_PATTERNS = (
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)
_STORE_CHARS = {"$": "＄", "{": "｛", "}": "｝"}
_STORE_CHARS_RE = re.compile(r"[${}]")

MALICIOUS_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"\$where", re.IGNORECASE),
    re.compile(r"\$function", re.IGNORECASE),
    re.compile(r"eval\(", re.IGNORECASE),
    re.compile(r"exec\(", re.IGNORECASE),
)


# -----------------------------
# Cleaning
# -----------------------------
def sanitize(data: Any, max_length: int = MAX_STRING_LENGTH) -> Any:
    """
    Recursively sanitize a params tree. Keys are kept as-is; numbers,
    booleans and None pass through unchanged.
    """
    if data is None or isinstance(data, (bool, int, float)):
        return data
    if isinstance(data, str):
        return sanitize_string(data, max_length)
    if isinstance(data, Mapping):
        return {key: sanitize(value, max_length) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [sanitize(item, max_length) for item in data]
    return data


def sanitize_string(value: str, max_length: int = MAX_STRING_LENGTH) -> str:
    cleaned = _SCRIPT_BLOCK_RE.sub("", value)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _STORE_CHARS_RE.sub(lambda m: _STORE_CHARS[m.group(0)], cleaned)
    cleaned = _CONTROL_RE.sub("", cleaned)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    for pattern in _SCRIPT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned.strip()


# -----------------------------
# Rejection
# -----------------------------
def validate_safe(value: Any) -> bool:
    """Raise MaliciousInputError if a string looks like an injection attempt."""
    if not isinstance(value, str):
        return True

    for pattern in MALICIOUS_PATTERNS:
        if pattern.search(value):
            raise MaliciousInputError(
                "Potentially malicious content detected",
                {"pattern": pattern.pattern},
            )
    return True


def deep_validate(data: Any) -> None:
    if isinstance(data, str):
        validate_safe(data)
    elif isinstance(data, Mapping):
        for value in data.values():
            deep_validate(value)
    elif isinstance(data, (list, tuple)):
        for item in data:
            deep_validate(item)


def assert_safe_keys(data: Any, path: str = "params") -> None:
    """
    Map keys are never sanitized, so keys that carry store-operator syntax
    are refused outright.
    """
    if isinstance(data, Mapping):
        for key, value in data.items():
            if isinstance(key, str) and key.startswith("$"):
                raise MaliciousInputError(
                    "Store operator keys are not allowed",
                    {"key": key, "path": path},
                )
            assert_safe_keys(value, f"{path}.{key}")
    elif isinstance(data, (list, tuple)):
        for index, item in enumerate(data):
            assert_safe_keys(item, f"{path}[{index}]")


def sanitize_and_validate(data: Any, max_length: int = MAX_STRING_LENGTH) -> Any:
    deep_validate(data)
    return sanitize(data, max_length)
