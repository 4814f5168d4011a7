import html
import logging
import threading
from typing import Iterable, List

import requests

from furnishop import config

logger = logging.getLogger(__name__)


class TelegramNotifier:
    def __init__(self, token: str, chat_ids: Iterable[str], timeout: float = 10):
        self.token = token
        self.chat_ids: List[str] = list(chat_ids)
        self.timeout = timeout
        self.api_url = f"https://api.telegram.org/bot{self.token}/sendMessage"

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_ids)

    def send(self, message: str):
        """Send a message to every staff chat. Failures are logged, never raised."""
        for chat_id in self.chat_ids:
            try:
                resp = requests.post(self.api_url, data={
                    'chat_id': chat_id,
                    'text': message,
                    'parse_mode': 'HTML'
                }, timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as e:
                logger.warning("Telegram send to %s failed: %s", chat_id, e)

    def send_async(self, message: str):
        """Fire-and-forget in a background thread."""
        threading.Thread(target=self.send, args=(message,), daemon=True).start()

    def format_status_change(self, order_id, field, old, new, actor, remarks=None) -> str:
        label = "Payment" if field == "payment_status" else "Status"
        msg = [
            f"<b>Order #{order_id}</b>",
            f"{label}: {old} → {new}",
            f"By: {html.escape(str(actor))}",
        ]
        if remarks:
            msg.append(f"Remarks: {html.escape(remarks)}")
        return "\n".join(msg)

    def notify_status_changed(self, order_id, field, old, new, actor, remarks=None):
        """Staff alert for an order status change."""
        if not self.enabled:
            return
        self.send_async(self.format_status_change(order_id, field, old, new, actor, remarks))


# global instance
notifier = TelegramNotifier(
    token=config.TELEGRAM_TOKEN,
    chat_ids=config.TELEGRAM_CHAT_IDS,
    timeout=config.HTTP_TIMEOUT,
)
