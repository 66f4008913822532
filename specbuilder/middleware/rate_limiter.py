"""
Per-blueprint rate limits on top of the shared ``limiter``.

The limiter itself is built in ``specbuilder/__init__.py`` without default
limits; only chat submissions are throttled, since each one writes.
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """Throttle ``POST`` on the chat blueprint and exempt health checks.

    No-op under TESTING or when RATELIMIT_ENABLED is false.
    """
    if app.testing or not app.config.get("RATELIMIT_ENABLED", True):
        logger.info("Rate limiting off")
        return

    chat_limit = app.config.get("CHAT_RATE_LIMIT", "60/minute")
    chat = app.blueprints.get("chat")
    if chat is not None:
        limiter.limit(chat_limit, methods=["POST"])(chat)

    health = app.blueprints.get("health")
    if health is not None:
        limiter.exempt(health)

    logger.info("Chat submissions limited to %s per client", chat_limit)
