"""
Passcode gate.

A single shared secret in front of the API. This keeps casual visitors
out of a personal workspace; it is not user authentication.
"""

import hmac
import logging

logger = logging.getLogger(__name__)

INVALID_PASSCODE = "Invalid passcode. Please try again."


class PasscodeGate:
    def __init__(self, passcode: str):
        self._passcode = passcode or ""

    def check(self, attempt: str) -> bool:
        """Compare in constant time."""
        ok = hmac.compare_digest((attempt or "").encode("utf-8"), self._passcode.encode("utf-8"))
        if not ok:
            logger.warning("Rejected passcode attempt")
        return ok
