"""
Out-of-process coordinator watchdog.

Probes the coordinator's ``/api/status`` endpoint and alerts once per outage,
using the persisted ``coordinator`` notification record for dedup so the
watchdog can run as a short-lived cron job:

    */5 * * * * python -m relaysync.watchdog --url http://127.0.0.1:3000
"""

import argparse
import logging
from datetime import datetime
from typing import Optional

import requests

from .config import app_config
from .repositories import COORDINATOR_RECORD, NotificationRepository
from .services import NotificationService
from .utils.time_utils import utc_now

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 5.0


class Watchdog:
    """One probe of the coordinator plus alert bookkeeping."""

    def __init__(
        self,
        base_url: str,
        notifications: Optional[NotificationRepository] = None,
        notifier: Optional[NotificationService] = None,
        session: Optional[requests.Session] = None,
        timeout: float = TIMEOUT_SECONDS
    ):
        self.url = f"{base_url.rstrip('/')}/api/status"
        self.notifications = notifications or NotificationRepository()
        self.notifier = notifier or NotificationService()
        self.session = session or requests.Session()
        self.timeout = timeout

    def _alert_once(self, message: str, now: datetime) -> None:
        if self.notifications.get_system_notified(COORDINATOR_RECORD) is not None:
            logger.info("Coordinator still failing, already notified")
            return
        self.notifier.send(message)
        self.notifications.set_system_notified(COORDINATOR_RECORD, now)

    def check(self, now: Optional[datetime] = None) -> bool:
        """Probe once. Returns True when the coordinator answered 200."""
        now = now or utc_now()
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Coordinator probe failed: {e}")
            self._alert_once(f"🚨 Coordinator appears DOWN! ({e})", now)
            return False

        if response.status_code != 200:
            logger.error(f"Coordinator unhealthy: HTTP {response.status_code}")
            self._alert_once(f"⚠️ Coordinator unhealthy: HTTP {response.status_code} {response.text[:200]}", now)
            return False

        logger.info(f"[OK] Coordinator responded at {now.isoformat()}")
        if self.notifications.clear_system_notified(COORDINATOR_RECORD):
            logger.info("Coordinator recovered, alert record cleared")
            self.notifier.send("✅ Coordinator is back online")
        return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Probe the RelaySync coordinator and alert on outages")
    parser.add_argument("--url", default=f"http://127.0.0.1:{app_config.api.port}",
                        help="Coordinator base URL")
    parser.add_argument("--timeout", type=float, default=TIMEOUT_SECONDS, help="Probe timeout in seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return 0 if Watchdog(args.url, timeout=args.timeout).check() else 1


if __name__ == "__main__":
    raise SystemExit(main())
