"""Request signing for partner APIs.

Both schemes are fixed by the partners' published contracts; any deviation in
ordering or encoding makes the remote side reject the request.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping


def sign_sorted_params(params: Mapping[str, str], secret: str) -> str:
    """
    AliExpress open platform (``sign_method=md5``):
    MD5(secret + k1 + v1 + ... + kn + vn + secret), keys sorted, hex upper-cased.
    """
    parts = [secret]
    for key in sorted(params):
        parts.append(f"{key}{params[key]}")
    parts.append(secret)
    return hashlib.md5("".join(parts).encode("utf-8")).hexdigest().upper()


def sign_credential_payload(credential_id: str, timestamp: int, payload: str, secret: str) -> str:
    """Shopee affiliate open API: SHA256(app_id + timestamp + payload + secret), hex."""
    raw = f"{credential_id}{timestamp}{payload}{secret}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def credential_authorization_header(credential_id: str, timestamp: int, payload: str, secret: str) -> str:
    signature = sign_credential_payload(credential_id, timestamp, payload, secret)
    return f"SHA256 Credential={credential_id}, Timestamp={timestamp}, Signature={signature}"
