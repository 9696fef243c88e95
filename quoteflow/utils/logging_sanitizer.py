"""
Logging Sanitizer Utility

Redacts credentials, payment signatures and contact secrets from request
payloads before they are written to the log.
"""

from typing import Any, Dict


SENSITIVE_FIELDS = {
    'password',
    'confirm_password',
    'current_password',
    'new_password',
    'secret',
    'token',
    'api_key',
    'apikey',
    'access_token',
    'refresh_token',
    'csrf_token',
    'card_number',
    'cvv',
    # payment gateway callback fields
    'razorpay_signature',
    'signature',
    'key_secret',
}


def sanitize_value(value: Any, redact_text: str = '[REDACTED]') -> Any:
    """Sanitize nested dicts inside lists as well as plain dicts."""
    if isinstance(value, dict):
        return sanitize_dict(value, redact_text)
    if isinstance(value, list):
        return [sanitize_value(item, redact_text) for item in value]
    return value


def sanitize_dict(data: Dict[str, Any], redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Sanitize a dictionary by replacing sensitive field values with redaction text.

    Matching is case-insensitive and camelCase keys are normalised, so
    ``razorpaySignature`` is treated like ``razorpay_signature``.

    Example:
        >>> sanitize_dict({'orderId': 4, 'razorpay_signature': 'abc'})
        {'orderId': 4, 'razorpay_signature': '[REDACTED]'}
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS or _normalise_key(key) in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        else:
            sanitized[key] = sanitize_value(value, redact_text)

    return sanitized


def _normalise_key(key: str) -> str:
    out = []
    for ch in str(key):
        if ch.isupper():
            if out:
                out.append('_')
            out.append(ch.lower())
        else:
            out.append(ch)
    return ''.join(out).lower()


def sanitize_exception_message(exception: Exception) -> str:
    """
    Sanitize exception messages to ensure they don't contain sensitive data.
    """
    message = str(exception)

    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"

    return message
