#Purpose: The HTTP event bus "adapter/client".
#Sole responsibility: hand events to a Kafka REST proxy style endpoint over HTTP.
#Encapsulates transport-specific details:
#URL construction (/topics/<topic>)
#record envelope + content type
#timeouts and error handling
#publishing off the caller's thread
#It should not contain dispatch rules or scoring.

from concurrent.futures import Future, ThreadPoolExecutor
import json
import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
import requests

from .bus import MessageBus
from .events import Event

# Read bus base URL from environment
# Example in .env:
# EVENT_BUS_URL=http://localhost:8082
load_dotenv()
EVENT_BUS_URL = os.getenv("EVENT_BUS_URL")

CONTENT_TYPE = "application/vnd.kafka.json.v2+json"

logger = logging.getLogger(__name__)


class EventBusError(Exception):
    """Raised when the REST proxy rejects or cannot receive a record."""
    pass


class RestProxyMessageBus(MessageBus):
    """
    REST proxy adapter

    Sole responsibility:
    - POST each event to {base_url}/topics/{topic}
    - never block the caller: sends run on a small worker pool
    - failures are logged by the worker, never raised to the publisher
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 5,
        *,
        session: Optional[requests.Session] = None,
        max_workers: int = 2,
    ):
        self.base_url = (base_url or EVENT_BUS_URL or "").rstrip("/")
        self.timeout = timeout #seconds to wait for the proxy before giving up
        self.session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="event-bus")

        if not self.base_url:
            raise ValueError("Event bus URL not set. Please set EVENT_BUS_URL in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def topic_url(self, topic: str) -> str:
        return f"{self.base_url}/topics/{topic}"

    @staticmethod
    def envelope(event: Event) -> Dict[str, Any]:
        """Wrap one event in the proxy's record envelope, keyed by its main id."""
        key = event.get("mergeGroupId") or event.get("deliveryId") or event.get("partnerId")
        return {"records": [{"key": key, "value": event}]}

    #----------------
    # Public methods
    #----------------
    def send(self, topic: str, event: Event) -> Dict[str, Any]:
        """
        Synchronously POST one event. Returns the proxy's JSON reply.
        Raises EventBusError on transport errors or non-2xx responses.
        """
        try:
            response = self.session.post(
                self.topic_url(topic),
                data=json.dumps(self.envelope(event), default=str),
                headers={"Content-Type": CONTENT_TYPE},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise EventBusError(f"Event bus unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise EventBusError(f"Event bus error {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError:
            return {}

    def publish(self, topic: str, event: Event) -> Future:
        future = self._executor.submit(self.send, topic, event)
        future.add_done_callback(lambda done: self._log_failure(topic, event, done))
        return future

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.session.close()

    @staticmethod
    def _log_failure(topic: str, event: Event, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to publish %s to %s: %s", event.get("eventType"), topic, exc)
