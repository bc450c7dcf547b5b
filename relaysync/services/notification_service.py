"""
Telegram notification transport.

Delivery is best effort: failures are logged and reported as False, never
raised, and there is no secondary channel.
"""

import logging
import time
from typing import Callable, Optional

import requests

from ..config import NotificationConfig
from ..exceptions import RelaySyncError, RequestRejectedError, TransientNetworkError
from ..utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class NotificationService:
    """Sends operator alerts through the Telegram Bot API."""

    def __init__(
        self,
        config: Optional[NotificationConfig] = None,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = config or NotificationConfig()
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return bool(self.config.telegram_bot_token and self.config.telegram_chat_id)

    def _post(self, text: str) -> None:
        url = TELEGRAM_API_URL.format(token=self.config.telegram_bot_token)
        try:
            response = self.session.post(
                url,
                json={"chat_id": self.config.telegram_chat_id, "text": text},
                timeout=self.config.timeout
            )
        except requests.RequestException as e:
            raise TransientNetworkError(f"Telegram request failed: {e}") from e
        if response.status_code >= 500 or response.status_code == 429:
            raise TransientNetworkError(f"Telegram returned {response.status_code}", response.status_code)
        if not response.ok:
            raise RequestRejectedError(f"Telegram returned {response.status_code}", response.status_code)

    def send(self, text: str) -> bool:
        """
        Send a text message to the configured chat.

        Returns:
            bool: True if Telegram accepted the message.
        """
        if not self.enabled:
            logger.warning(f"Telegram not configured, dropping message: {text}")
            return False
        try:
            retry_with_backoff(
                lambda: self._post(text),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self._sleep,
                description="Telegram sendMessage"
            )
        except RelaySyncError as e:
            logger.error(f"Failed to send Telegram message: {e}")
            return False
        logger.info("Telegram message sent")
        return True
