"""HMAC request signing for the speech recognition gateway.

Each outbound call gets a fresh unix-second timestamp and a 128-bit random
nonce. The canonical string

    METHOD\\nPATH\\nTIMESTAMP\\nNONCE\\nAPP_ID

is signed with HMAC-SHA256 using the app secret, and the gateway recomputes
it from the headers to authenticate the request. Headers are single-use.
"""

import hashlib
import hmac
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from src.asr.credentials import Credentials

SIGNATURE_SCHEME = "HMAC-SHA256"
NONCE_BYTES = 16
HEADER_APP_ID = "X-App-Id"
HEADER_TIMESTAMP = "X-Timestamp"
HEADER_NONCE = "X-Nonce"
HEADER_AUTHORIZATION = "Authorization"


@dataclass(frozen=True)
class SignedHeaders:
    app_id: str
    timestamp: int
    nonce: str
    signature: str

    def as_headers(self) -> dict[str, str]:
        return {
            HEADER_APP_ID: self.app_id,
            HEADER_TIMESTAMP: str(self.timestamp),
            HEADER_NONCE: self.nonce,
            HEADER_AUTHORIZATION: f"{SIGNATURE_SCHEME} {self.signature}",
        }


def build_signing_string(
    method: str, api_path: str, timestamp: int, nonce: str, app_id: str
) -> str:
    return f"{method}\n{api_path}\n{timestamp}\n{nonce}\n{app_id}"


def compute_signature(app_secret: str, signing_string: str) -> str:
    return hmac.new(
        app_secret.encode("utf-8"), signing_string.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def sign_request(
    method: str,
    api_path: str,
    credentials: Credentials,
    clock: Callable[[], float] = time.time,
) -> SignedHeaders:
    """Sign one outbound request.

    Args:
    ----
        method: HTTP method, e.g. "POST"
        api_path: Gateway path, e.g. "/asr/volcengine_quick"
        credentials: App id and shared secret
        clock: Source of the current unix time

    Returns:
    -------
        SignedHeaders with a fresh timestamp and nonce

    """
    timestamp = int(clock())
    nonce = secrets.token_hex(NONCE_BYTES)
    signing_string = build_signing_string(
        method, api_path, timestamp, nonce, credentials.app_id
    )
    return SignedHeaders(
        app_id=credentials.app_id,
        timestamp=timestamp,
        nonce=nonce,
        signature=compute_signature(credentials.app_secret, signing_string),
    )


def verify_signature(
    headers: Mapping[str, str], method: str, api_path: str, app_secret: str
) -> bool:
    """Recompute the signature from request headers and compare it."""
    authorization = headers.get(HEADER_AUTHORIZATION, "")
    scheme, _, signature = authorization.partition(" ")
    if scheme != SIGNATURE_SCHEME or not signature:
        return False
    try:
        timestamp = int(headers[HEADER_TIMESTAMP])
        signing_string = build_signing_string(
            method, api_path, timestamp, headers[HEADER_NONCE], headers[HEADER_APP_ID]
        )
    except (KeyError, ValueError):
        return False
    expected = compute_signature(app_secret, signing_string)
    return hmac.compare_digest(expected, signature)
