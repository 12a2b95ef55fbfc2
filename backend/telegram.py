import logging
import time
from typing import Any, Dict, NamedTuple, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

API_BASE = 'https://api.telegram.org'


class UploadError(Exception):
    """Raised when an uploaded file cannot be stored"""


class TelegramError(UploadError):
    """Raised when the Bot API refuses a file or cannot be reached"""


class RetryPolicy(NamedTuple):
    """Bounded retry schedule for Bot API calls"""
    max_retries: int = 2
    backoff: float = 1.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)"""
        return self.backoff * (attempt + 1)


def choose_endpoint(mimetype: Optional[str]) -> Tuple[str, str]:
    """Pick the Bot API method and form field for a MIME type"""
    mimetype = mimetype or ''
    if mimetype.startswith('image/'):
        return 'sendPhoto', 'photo'
    if mimetype.startswith('audio/'):
        return 'sendAudio', 'audio'
    if mimetype.startswith('video/'):
        return 'sendVideo', 'video'
    return 'sendDocument', 'document'


def get_file_id(response: Dict[str, Any]) -> Optional[str]:
    """Extract the stored file id from a Bot API send* response"""
    if not response.get('ok') or not response.get('result'):
        return None

    result = response['result']
    if result.get('photo'):
        # Telegram returns every generated size, keep the largest
        largest = max(result['photo'], key=lambda size: size.get('file_size', 0))
        return largest['file_id']
    for kind in ('document', 'video', 'audio'):
        if result.get(kind):
            return result[kind]['file_id']

    return None


class TelegramClient:
    """Sends files to a chat through the Telegram Bot API"""

    def __init__(self, bot_token: str, chat_id: str, retry: RetryPolicy = RetryPolicy(),
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.retry = retry
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, endpoint: str) -> str:
        return f'{API_BASE}/bot{self.bot_token}/{endpoint}'

    def send(self, endpoint: str, field: str, filename: str, data: bytes,
             mimetype: Optional[str]) -> Dict[str, Any]:
        """Upload one file, retrying photos as documents and network failures with backoff"""
        attempt = 0

        while True:
            try:
                response = self.session.post(
                    self.url(endpoint),
                    data={'chat_id': self.chat_id},
                    files={field: (filename, data, mimetype or 'application/octet-stream')},
                    timeout=self.timeout,
                )
                payload = response.json()
            except requests.RequestException as e:
                logger.error('Network error calling %s: %s', endpoint, e)
                if attempt < self.retry.max_retries:
                    time.sleep(self.retry.delay(attempt))
                    attempt += 1
                    continue
                raise TelegramError('Network error occurred') from e

            if response.ok:
                return payload

            # Photos Telegram refuses (too large, odd ratio) are still accepted as documents
            if attempt < self.retry.max_retries and endpoint == 'sendPhoto':
                logger.warning('Retrying image as document: %s', payload.get('description'))
                endpoint, field = 'sendDocument', 'document'
                attempt += 1
                continue

            raise TelegramError(payload.get('description') or 'Upload to Telegram failed')
