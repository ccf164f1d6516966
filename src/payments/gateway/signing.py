"""X-VERIFY request signing for the Pay Page checksum flow.

A signature is ``sha256(base64_payload + endpoint + salt_key)`` in hex,
followed by ``###`` and the index of the salt key that produced it.
"""

import base64
import hashlib
import hmac
import json

from shared.errors import InvalidSignature

SEPARATOR = "###"


def encode_payload(payload: dict) -> str:
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def decode_payload(encoded: str) -> dict:
    """Decode a base64 JSON document; raises ``ValueError`` if it is not one."""
    try:
        decoded = json.loads(base64.b64decode(encoded, validate=True).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError("Payload is not base64-encoded JSON") from exc
    if not isinstance(decoded, dict):
        raise ValueError("Payload is not a JSON object")
    return decoded


def _digest(base64_payload: str, endpoint: str, secret: str) -> str:
    return hashlib.sha256(f"{base64_payload}{endpoint}{secret}".encode()).hexdigest()


def sign_payload(base64_payload: str, endpoint: str, secret: str, salt_index: str) -> str:
    if not secret:
        raise ValueError("A salt key is required to sign gateway requests")
    return f"{_digest(base64_payload, endpoint, secret)}{SEPARATOR}{salt_index}"


def verify_signature(base64_payload: str, header: str | None, endpoint: str, salt_keys: dict[str, str]) -> None:
    """Raise ``InvalidSignature`` unless ``header`` signs ``base64_payload``."""
    if not header or header.count(SEPARATOR) != 1:
        raise InvalidSignature("Malformed signature header")

    received, salt_index = header.split(SEPARATOR)
    secret = salt_keys.get(salt_index)
    if not secret:
        raise InvalidSignature(f"Unknown salt index: {salt_index}")

    expected = _digest(base64_payload, endpoint, secret)
    if not hmac.compare_digest(expected.encode(), received.encode()):
        raise InvalidSignature("Signature does not match payload")
