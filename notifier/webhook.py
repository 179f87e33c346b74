"""Webhook client that waits out rate limits instead of dropping messages."""
import logging
import math
import time
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)


class WebhookError(Exception):
    """Raised when the webhook rejects a message."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Webhook error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class RateLimitExhausted(WebhookError):
    """Raised when a bounded client is still rate limited after its last attempt."""


class WebhookClient:
    """
    Posts JSON payloads to webhook URLs.

    A 429 response is retried after the delay the server asks for, for as
    long as it takes unless ``max_attempts`` bounds it. Any other non-2xx
    response raises WebhookError without retrying.
    """

    DEFAULT_RETRY_AFTER = 1.0

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: Optional[int] = None
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sleep = sleep
        self.max_attempts = max_attempts

    def send(self, url: str, payload: dict) -> int:
        """
        Post one payload until it is accepted.

        Returns:
            Number of attempts it took
        """
        attempt = 0
        while self.max_attempts is None or attempt < self.max_attempts:
            attempt += 1
            response = self.session.post(url, json=payload, timeout=self.timeout)

            if 200 <= response.status_code < 300:
                return attempt

            if response.status_code == 429:
                delay = self._retry_after(response)
                logger.warning(
                    f"Rate limited, waiting {delay:.3f}s (attempt {attempt})",
                    extra={'retry_after': delay}
                )
                self.sleep(delay)
                continue

            raise WebhookError(response.status_code, response.text)

        raise RateLimitExhausted(429, f"still rate limited after {attempt} attempts")

    def _retry_after(self, response: requests.Response) -> float:
        """Read the retry delay in seconds from the body, then the header."""
        seconds = None
        try:
            seconds = float(response.json()['retry_after'])
        except (ValueError, TypeError, KeyError):
            header = response.headers.get('Retry-After')
            if header:
                try:
                    seconds = float(header)
                except ValueError:
                    seconds = None

        if seconds is None or seconds < 0:
            seconds = self.DEFAULT_RETRY_AFTER
        return math.ceil(seconds * 1000) / 1000
