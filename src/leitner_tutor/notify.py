"""Best-effort event mirroring to a Telegram chat."""
import html
import logging
import threading
from typing import Optional

import requests

from leitner_tutor.config import NOTIFY_TIMEOUT_SECONDS, Settings

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


def format_answer(question_id: str, correct: bool, chosen: Optional[int] = None, text: Optional[str] = None) -> str:
    if chosen is not None:
        detail = f" choice={chr(65 + chosen)}"
    elif text is not None:
        detail = f' short="{html.escape(text)}"'
    else:
        detail = ""
    return f"📝 #{html.escape(question_id)} {'✅' if correct else '❌'}{detail}"


def format_highlight(question_id: str, highlighted: bool) -> str:
    qid = html.escape(question_id)
    return f"⭐ #{qid}" if highlighted else f"😐 #{qid}"


def format_reset(question_id: str) -> str:
    return f"♻️ #{html.escape(question_id)} reset"


class TelegramNotifier:
    def __init__(self, token: str, chat_id: str, timeout: int = NOTIFY_TIMEOUT_SECONDS):
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout

    def send(self, text: str) -> threading.Thread:
        """Fire-and-forget delivery on a daemon thread."""
        thread = threading.Thread(target=self.deliver, args=(text,), name="telegram_notify", daemon=True)
        thread.start()
        return thread

    def deliver(self, text: str) -> bool:
        """Post ``text`` to the chat. Never raises; returns whether Telegram accepted it."""
        url = f"{TELEGRAM_API}/bot{self.token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
        }
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Telegram request failed: %s", e)
            return False
        if not response.ok:
            logger.warning("Telegram API error: %s", response.text)
        return response.ok


def notifier_from_config(settings: Settings) -> Optional[TelegramNotifier]:
    if not settings.telegram_token or not settings.telegram_chat_id:
        return None
    return TelegramNotifier(settings.telegram_token, settings.telegram_chat_id)
