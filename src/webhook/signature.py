"""LINE webhook signature verification.

The platform signs each request body with HMAC-SHA256 keyed by the channel
secret and sends the base64 digest in ``X-Line-Signature``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac


class SignatureVerifier:
    """Verifies ``X-Line-Signature`` against the raw request body."""

    def __init__(self, channel_secret: str) -> None:
        self._secret = channel_secret.encode()

    def sign(self, body: bytes) -> str:
        digest = hmac.new(self._secret, body, hashlib.sha256).digest()
        return base64.b64encode(digest).decode()

    def verify(self, headers: dict[str, str], body: bytes) -> bool:
        """Return True if the signature header matches ``body``.

        Constant-time comparison via hmac.compare_digest.
        """
        signature = headers.get("x-line-signature", "")
        if not signature:
            return False
        return hmac.compare_digest(signature, self.sign(body))
