"""Client for the external language detection service."""

import logging
from typing import Optional

import httpx

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("detectlanguage")


class LocaleDetectionError(Exception):
    """Raised when the detection service can't give an answer."""


class LocaleDetector:
    """
    Asks the detection service for the language of a block of text.

    Returns the service's language code (e.g. ``"fr"``) or None when
    detection is disabled or the service is unreliable for the text.
    """

    def __init__(
        self,
        enabled: Optional[bool] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.enabled = settings.ENABLE_DETECT_LOCALE if enabled is None else enabled
        self.url = url or settings.DETECT_LANGUAGE_URL
        self.api_key = api_key if api_key is not None else settings.DETECT_LANGUAGE_API_KEY
        self.timeout = timeout or settings.DETECT_LANGUAGE_TIMEOUT
        self.transport = transport

    async def detect(self, text: str, label: str = "a new script") -> Optional[str]:
        if not self.enabled:
            return None

        request_logger.info(f"Sending DetectLanguage request for {label} - {text[:50]}...")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    self.url,
                    data={"q": text},
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LocaleDetectionError(str(e)) from e

        try:
            detections = payload["data"]["detections"]
        except (KeyError, TypeError) as e:
            raise LocaleDetectionError(f"Unexpected response: {payload!r}") from e

        reliable = [d for d in detections if d.get("isReliable")]
        best = (reliable or detections or [None])[0]
        if best is None:
            return None
        return best.get("language")
