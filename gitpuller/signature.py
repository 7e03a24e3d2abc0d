# gitpuller/signature.py
# validates the X-Hub-Signature header GitHub sends with every delivery
# (HMAC-SHA1 of the raw body, formatted as 'sha1=<hex>')

import hashlib
import hmac

SIGNATURE_PREFIX = "sha1="


def compute_signature(secret: str, body: bytes) -> str:
    mac = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return SIGNATURE_PREFIX + mac


def verify_signature(body: bytes, secret: str, sent_sig: str) -> bool:
    """
    Check HMAC signature. sent_sig should look like 'sha1=<hex>'.
    Returns False (never raises) on missing or malformed input.
    """
    if not secret or not sent_sig:
        return False
    if not isinstance(body, (bytes, bytearray)) or not isinstance(sent_sig, str):
        return False

    try:
        expected = compute_signature(secret, bytes(body)).encode("utf-8")
        provided = sent_sig.encode("utf-8")
    except UnicodeError:
        return False

    # compare_digest needs equal lengths to stay constant-time
    if len(expected) != len(provided):
        return False
    return hmac.compare_digest(expected, provided)
