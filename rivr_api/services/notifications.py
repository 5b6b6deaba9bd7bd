from __future__ import annotations

import logging

logger = logging.getLogger(__name__)
NOTIFY_PREFIX = "[NOTIFY]"


def send_password_reset(email: str, reset_url: str) -> None:
    """Hand a reset link to the delivery channel. Mail transport is not wired; the link is logged."""
    logger.info("%s password reset email=%s url=%s", NOTIFY_PREFIX, email, reset_url)
