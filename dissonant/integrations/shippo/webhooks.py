"""Shippo webhook authentication."""

import hmac


def verify_webhook_token(provided: str | None, expected: str) -> bool:
    """Check the shared-secret ``token`` query parameter of a webhook URL.

    An empty ``expected`` disables the check.
    """
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
