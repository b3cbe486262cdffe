"""
Task queue capability and its HTTP implementation.

A queue is identified by a URL. Publishing POSTs the JSON payload there; any
2xx answer means the receiver has accepted the message. Delivery is
at-least-once: a publish that times out may still have been delivered, and
receivers dedup by attribute hash.

No retries here. A failed publish raises QueueError and the invocation that
sent it fails, so the transport redelivers it from the start.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from errors import QueueError

logger = logging.getLogger(__name__)


class TaskQueue(ABC):
    @abstractmethod
    def publish(self, queue_url: str, payload: bytes) -> None:
        """Send one message. Raises QueueError on failure."""


class HTTPTaskQueue(TaskQueue):
    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def publish(self, queue_url: str, payload: bytes) -> None:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    queue_url,
                    content=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise QueueError(
                "Queue rejected message", queue_url=queue_url, status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise QueueError("Failed to publish message", queue_url=queue_url) from exc

        logger.debug("Published %d bytes to %s", len(payload), queue_url)
