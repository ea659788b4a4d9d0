# services/notification_service.py
"""
Board change notifications over Redis pub/sub (production) or a no-op
publisher (development, tests). Publishing happens on a small background
executor so a slow or unreachable Redis never delays an HTTP response.
"""
import os
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import redis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "kanban"


def channel_for(workspace_id: Optional[str]) -> str:
    return f"{CHANNEL_PREFIX}:{workspace_id or 'global'}"


class _NoopPublisher:
    """Publisher used when REDIS_URL is not configured."""

    enabled = False

    def publish(self, workspace_id: Optional[str], event: str, payload: dict) -> bool:
        logger.debug(f"Notification {event} dropped (no Redis configured)")
        return False

    def shutdown(self):
        return None


class _RedisPublisher:
    """Redis-backed publisher for production use."""

    enabled = True

    def __init__(self, client, max_workers: int = 2):
        self._r = client
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kanban-notify")

    def _send(self, channel: str, message: str):
        try:
            self._r.publish(channel, message)
        except Exception as e:
            logger.warning(f"Redis publish to {channel} failed: {e}")

    def publish(self, workspace_id: Optional[str], event: str, payload: dict) -> bool:
        message = json.dumps({'event': event, 'data': payload}, default=str)
        self._executor.submit(self._send, channel_for(workspace_id), message)
        return True

    def shutdown(self):
        self._executor.shutdown(wait=False)


def make_publisher(url: Optional[str] = None):
    """Create publisher - Redis if configured and reachable, otherwise no-op."""
    url = url if url is not None else os.getenv("REDIS_URL")

    if not url:
        return _NoopPublisher()

    valid_schemes = ('redis://', 'rediss://', 'unix://')
    if not any(url.startswith(scheme) for scheme in valid_schemes):
        logger.warning("Invalid REDIS_URL scheme - must start with redis://, rediss://, or unix://")
        return _NoopPublisher()

    try:
        client = redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        client.ping()
        logger.info("Notification service connected to Redis")
        return _RedisPublisher(client)
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed, notifications disabled: {e}")
        return _NoopPublisher()


class NotificationService:
    """Holds the active publisher; re-bound per app in create_app."""

    def __init__(self):
        self.publisher = _NoopPublisher()

    def init_app(self, app):
        self.publisher = make_publisher(app.config.get('REDIS_URL'))
        app.extensions['notifications'] = self
        return self

    def publish(self, workspace_id: Optional[str], event: str, payload: dict) -> bool:
        return self.publisher.publish(workspace_id, event, payload)


notifier = NotificationService()
