from __future__ import annotations

import hashlib
import re
from typing import Any, Dict

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Phone-like numbers: optional country code, separators, at least 9 digits overall.
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{8,}\d")
# Telegram bot tokens look like "<digits>:<35 url-safe chars>".
BOT_TOKEN_RE = re.compile(r"(?<!\d)\d{6,}:[A-Za-z0-9_-]{30,}")

# Keys whose values are never logged verbatim.
SENSITIVE_FIELDS = {
    "secret",
    "secret_code",
    "admin_secret_code",
    "token",
    "bot_token",
    "api_key",
    "api_secret",
    "service_role_key",
    "password",
    "args_text",
    "description",
}

MAX_LOGGED_STRING = 500


def _hash_token(text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"[HASH:{digest}]"


def scrub_text(text: str) -> str:
    """Redact or hash obvious PII and credentials in free text."""
    if not text:
        return text

    def _replace(match: re.Match, label: str) -> str:
        return f"[{label}_{_hash_token(match.group(0))}]"

    scrubbed = BOT_TOKEN_RE.sub(lambda m: _replace(m, "TOKEN"), text)
    scrubbed = EMAIL_RE.sub(lambda m: _replace(m, "EMAIL"), scrubbed)
    scrubbed = PHONE_RE.sub(lambda m: _replace(m, "PHONE"), scrubbed)
    return scrubbed


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    if lowered in SENSITIVE_FIELDS:
        return True
    return lowered.endswith("_secret") or lowered.endswith("_token")


def _is_identifier(key: str, value: Any) -> bool:
    # Telegram chat ids are long digit runs that PHONE_RE would otherwise hash.
    lowered = key.lower()
    if lowered != "id" and not lowered.endswith("_id"):
        return False
    return isinstance(value, int) or (isinstance(value, str) and value.lstrip("-").isdigit())


def _summarize(value: Any) -> Dict[str, Any]:
    length = len(value) if hasattr(value, "__len__") else None
    return {"redacted": True, "length": length}


def scrub_value(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = scrub_text(value)
        if len(cleaned) > MAX_LOGGED_STRING:
            return _hash_token(cleaned)
        return cleaned
    if isinstance(value, dict):
        return sanitize_log_payload(value)
    if isinstance(value, (list, tuple)):
        return [scrub_value(item) for item in value]
    return value


def sanitize_log_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Strip or hash credential and PII-heavy fields from a log payload."""
    if not isinstance(payload, dict):
        return {}

    cleaned: Dict[str, Any] = {}
    for key, value in payload.items():
        if value is None:
            cleaned[key] = value
        elif _is_sensitive_key(str(key)):
            cleaned[key] = _summarize(value)
        elif _is_identifier(str(key), value):
            cleaned[key] = value
        else:
            cleaned[key] = scrub_value(value)
    return cleaned
