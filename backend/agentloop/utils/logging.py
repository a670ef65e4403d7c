"""
Logging helpers that keep secrets out of log output.

Capability arguments and environment dumps pass through these before they
reach a logger or a tool result.
"""

import re
from typing import Any, Dict, Optional

REDACTED = '***REDACTED***'

_SECRET_KEYS = r'(?:password|passphrase|token|api_?key|apiKey|private_?key|secret|authorization)'

# (pattern, replacement) pairs applied in order
SECRET_PATTERNS = [
    # "key": "value" (JSON) and 'key': 'value' (repr)
    (re.compile(r'("' + _SECRET_KEYS + r'"\s*:\s*")[^"]*(")', re.IGNORECASE), r'\1' + REDACTED + r'\2'),
    (re.compile(r"('" + _SECRET_KEYS + r"'\s*:\s*')[^']*(')", re.IGNORECASE), r'\1' + REDACTED + r'\2'),
    # key=value in query strings and shell commands
    (re.compile(r'(\b' + _SECRET_KEYS + r'=)[^\s&]+', re.IGNORECASE), r'\1' + REDACTED),
    # Authorization headers
    (re.compile(r'(Bearer\s+)[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE), r'\1' + REDACTED),
    # OpenAI-style keys appearing bare in text
    (re.compile(r'\bsk-[A-Za-z0-9_\-]{16,}'), REDACTED),
    (re.compile(r'-----BEGIN [A-Z ]+PRIVATE KEY-----.*?-----END [A-Z ]+PRIVATE KEY-----', re.DOTALL), '***PRIVATE_KEY_REDACTED***'),
]

# Substrings that mark a dict key as secret
SECRET_FIELDS = {
    'password', 'passphrase', 'token', 'api_key', 'apikey', 'private_key', 'privatekey',
    'secret', 'authorization', 'credential',
}


def sanitize_string(text: str) -> str:
    """Replace anything that looks like a secret in free text."""
    if not text:
        return text
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _is_secret_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SECRET_FIELDS)


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    if isinstance(value, str):
        return sanitize_string(value)
    return value


def sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively redact secret-looking keys and sanitize string values.

    Returns a new dictionary; the input is left untouched.
    """
    if not isinstance(data, dict):
        return data

    return {
        key: REDACTED if _is_secret_key(key) else _sanitize_value(value)
        for key, value in data.items()
    }


def mask_credential_value(value: Optional[str], show_suffix: int = 4) -> str:
    """Mask a credential, keeping only a short suffix for identification."""
    if not value or len(value) < 8:
        return '***'
    return f"***{value[-show_suffix:]}" if show_suffix > 0 else '***'


def safe_repr(obj: Any, max_length: int = 200) -> str:
    """
    Sanitized, length-limited repr for log lines.

    Args:
        obj: Object to represent
        max_length: Maximum length of the returned string
    """
    if isinstance(obj, dict):
        obj = sanitize_dict(obj)

    sanitized = sanitize_string(repr(obj))
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + '...(truncated)'
    return sanitized
