"""
=====================================================
Craftsman Phone Assistant - Call Log Sink
=====================================================
Ships one record per conversation turn to the external log endpoint.

Only transcript text and metadata are sent - never audio.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from loguru import logger
import httpx


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CallLogRecord:
    """Write-once log entry for one processed utterance"""
    transcript: str
    conversation_state: Dict[str, Any]
    appointment_complete: bool
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": "phone_call_log",
            "data": {
                "transcript": self.transcript,
                "conversationState": self.conversation_state,
                "appointmentComplete": self.appointment_complete,
                "timestamp": self.timestamp,
            },
            "gdpr_compliant": True,
            "audio_stored": False,
        }


class CallLogSink:
    """
    Async, failure-tolerant call log emitter

    emit() never raises; failures are logged and the call continues.
    """

    def __init__(self, url: str = "", api_key: str = "", timeout: float = 5.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def emit(self, record: CallLogRecord) -> bool:
        """
        Send a record to the log endpoint

        Args:
            record: Record to ship

        Returns:
            True if the endpoint accepted it
        """
        if not self.enabled:
            logger.debug("CallLog: No endpoint configured, skipping")
            return False

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._get_client().post(self.url, json=record.to_payload(), headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"CallLog: Endpoint returned {e.response.status_code}")
            return False
        except Exception as e:
            logger.error(f"CallLog: Failed to ship record: {e!r}")
            return False

        logger.debug(f"CallLog: Shipped record (appointment_complete={record.appointment_complete})")
        return True

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_call_log_sink(config: dict) -> CallLogSink:
    """Factory function to create the call log sink from config"""
    url = config.get('call_log_url', '')
    if not url:
        logger.warning("CallLog: CALL_LOG_URL not set, call logs will not be shipped")

    return CallLogSink(
        url=url,
        api_key=config.get('call_log_api_key', ''),
        timeout=config.get('call_log_timeout_seconds', 5.0),
    )
