"""
=====================================================
Craftsman Phone Assistant - Twilio Media Streams Service
=====================================================
Handles Twilio Media Streams for bidirectional call audio
and builds the TwiML that connects a call to the stream.
"""

import asyncio
import json
import base64
from typing import Awaitable, Callable, Optional, Dict, Any
from xml.sax.saxutils import escape
from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger


StartHandler = Callable[[Dict[str, Any]], Awaitable[None]]
MediaHandler = Callable[[bytes], Awaitable[None]]
StopHandler = Callable[[], Awaitable[None]]

# Marks the end of the inbound event stream
_DISCONNECTED = object()


def xml_escape(value: str) -> str:
    """Escape text for use in XML attributes and bodies"""
    return escape(value, {'"': '&quot;', "'": '&apos;'})


class TwilioMediaStreamHandler:
    """
    Handles one Twilio Media Streams WebSocket connection

    A receive task parses inbound messages into a queue; a single worker
    consumes them so start, media and stop of one call run strictly in
    order. A stop that arrives while a media handler is still running
    waits for it.
    """

    # Twilio Media Streams uses μ-law 8kHz mono
    SAMPLE_RATE = 8000
    CHUNK_SIZE = 160  # 20ms at 8kHz μ-law

    # Twilio media event types
    EVENT_CONNECTED = "connected"
    EVENT_START = "start"
    EVENT_MEDIA = "media"
    EVENT_STOP = "stop"

    def __init__(self, websocket: WebSocket):
        """
        Initialize media stream handler

        Args:
            websocket: Accepted WebSocket connection from Twilio
        """
        self.websocket = websocket
        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None

        # Event handlers
        self._on_start: Optional[StartHandler] = None
        self._on_media: Optional[MediaHandler] = None
        self._on_stop: Optional[StopHandler] = None

        # State
        self._started = False
        self._stopped = False
        self._closed = False
        self._events: asyncio.Queue = asyncio.Queue()

    def set_start_handler(self, handler: StartHandler) -> None:
        """Set handler for the start event (receives the `start` object)"""
        self._on_start = handler

    def set_media_handler(self, handler: MediaHandler) -> None:
        """Set handler for incoming decoded audio frames"""
        self._on_media = handler

    def set_stop_handler(self, handler: StopHandler) -> None:
        """Set handler for end of stream (stop event or disconnect)"""
        self._on_stop = handler

    async def handle_connection(self) -> None:
        """
        Run the connection until the stream stops or the socket closes
        """
        logger.info("Twilio: Media stream connected, starting event loop")

        receive_task = asyncio.create_task(self._receive_messages())
        try:
            await self._process_events()
        finally:
            receive_task.cancel()
            try:
                await receive_task
            except asyncio.CancelledError:
                pass
            logger.info(f"Twilio: Event loop finished for stream {self.stream_sid}")

    async def _receive_messages(self) -> None:
        """Receive and parse incoming messages from Twilio"""
        try:
            while True:
                message = await self.websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    logger.info("Twilio: WebSocket disconnected")
                    break

                text = message.get("text")
                if text is None:
                    logger.warning("Twilio: Dropping non-text frame")
                    continue

                event = self.parse_message(text)
                if event is not None:
                    await self._events.put(event)
        except WebSocketDisconnect:
            logger.info("Twilio: WebSocket disconnected")
        except Exception as e:
            logger.error(f"Twilio: Receive loop error: {e!r}")
        finally:
            await self._events.put(_DISCONNECTED)

    @classmethod
    def parse_message(cls, message: str) -> Optional[Dict[str, Any]]:
        """
        Parse one inbound message

        Returns:
            The event dict, or None if the message is malformed
        """
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            logger.warning(f"Twilio: Dropping invalid JSON: {str(message)[:100]}")
            return None

        if not isinstance(data, dict) or not isinstance(data.get("event"), str):
            logger.warning(f"Twilio: Dropping message without event: {str(message)[:100]}")
            return None

        return data

    async def _process_events(self) -> None:
        """Consume queued events in arrival order"""
        while True:
            data = await self._events.get()

            if data is _DISCONNECTED:
                if self._started and not self._stopped:
                    logger.info("Twilio: Connection dropped without stop event")
                    await self._handle_stop()
                return

            event = data["event"]
            try:
                if event == self.EVENT_CONNECTED:
                    logger.info(f"Twilio: Connected event (protocol {data.get('protocol')})")
                elif event == self.EVENT_START:
                    await self._handle_start(data)
                elif event == self.EVENT_MEDIA:
                    await self._handle_media(data)
                elif event == self.EVENT_STOP:
                    logger.info(f"Twilio: Stop event for stream {self.stream_sid}")
                    await self._handle_stop()
                    return
                else:
                    logger.debug(f"Twilio: Ignoring event: {event}")
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Twilio: Dropping malformed {event} event: {e!r}")

    async def _handle_start(self, data: dict) -> None:
        """Handle start event - call started streaming"""
        if self._started:
            logger.warning("Twilio: Duplicate start event ignored")
            return

        start = data.get("start") or {}
        if not isinstance(start, dict):
            raise TypeError("start payload is not an object")

        self.stream_sid = start.get("streamSid") or data.get("streamSid")
        self.call_sid = start.get("callSid")
        self._started = True

        logger.info(f"Twilio: Start event for call {self.call_sid} stream {self.stream_sid}")
        if self._on_start:
            await self._on_start(start)

    async def _handle_media(self, data: dict) -> None:
        """
        Handle media event - incoming audio

        Args:
            data: Media data with base64 encoded μ-law audio
        """
        if not self._started:
            logger.debug("Twilio: Media before start ignored")
            return

        raw_audio = (data.get("media") or {}).get("payload")
        if not raw_audio:
            return

        audio_data = base64.b64decode(raw_audio, validate=True)
        if self._on_media:
            await self._on_media(audio_data)

    async def _handle_stop(self) -> None:
        self._stopped = True
        if self._on_stop:
            await self._on_stop()

    async def send_audio(self, audio_data: bytes) -> bool:
        """
        Play audio to the caller

        Twilio Media Streams expects 20ms chunks (160 bytes at 8kHz μ-law).

        Args:
            audio_data: Audio data (μ-law 8kHz)

        Returns:
            True if every chunk was sent
        """
        if not audio_data:
            return False
        if self._closed or not self.stream_sid:
            logger.warning("Twilio: Cannot send audio - stream not active")
            return False

        num_chunks = (len(audio_data) + self.CHUNK_SIZE - 1) // self.CHUNK_SIZE
        logger.info(f"Twilio: Sending {len(audio_data)} bytes audio in {num_chunks} chunks")

        try:
            for start in range(0, len(audio_data), self.CHUNK_SIZE):
                chunk = audio_data[start:start + self.CHUNK_SIZE]
                # Media events sent TO Twilio carry no 'track' field
                await self.websocket.send_json({
                    "event": "media",
                    "streamSid": self.stream_sid,
                    "media": {
                        "payload": base64.b64encode(chunk).decode("utf-8")
                    }
                })
        except Exception as e:
            logger.error(f"Twilio: Failed to send audio: {e!r}")
            return False

        return True

    async def close(self) -> None:
        """Close the WebSocket"""
        if self._closed:
            return
        self._closed = True
        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"Twilio: WebSocket already closed: {e!r}")


class TwilioService:
    """
    Builds TwiML for incoming calls
    """

    def __init__(
        self,
        voice: str = "alice",
        language: str = "de-DE",
        disclosure_text: str = "",
        prompt_text: str = "",
        apology_text: str = "",
        pause_seconds: int = 10
    ):
        self.voice = voice
        self.language = language
        self.disclosure_text = disclosure_text
        self.prompt_text = prompt_text
        self.apology_text = apology_text
        self.pause_seconds = pause_seconds

    def _say(self, text: str) -> str:
        return (
            f'    <Say voice="{xml_escape(self.voice)}" language="{xml_escape(self.language)}">'
            f'{xml_escape(text)}</Say>\n'
        )

    def generate_twiml(self, websocket_url: str, craftsman_id: str = "", phone_number: str = "") -> str:
        """
        Generate TwiML for an incoming call

        Says the disclosure and prompt, then connects a bidirectional
        <Connect><Stream> (<Start><Stream> would be inbound only).

        Args:
            websocket_url: WebSocket URL for Media Stream
            craftsman_id: Craftsman the call belongs to
            phone_number: Caller's phone number

        Returns:
            TwiML as string
        """
        # Escape all values to prevent XML injection
        params = ""
        for name, value in (("craftsman_id", craftsman_id), ("phone_number", phone_number)):
            params += f'\n            <Parameter name="{name}" value="{xml_escape(value or "")}" />'

        says = ""
        if self.disclosure_text:
            says += self._say(self.disclosure_text)
        if self.prompt_text:
            says += self._say(self.prompt_text)

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<Response>
{says}    <Connect>
        <Stream url="{xml_escape(websocket_url)}">{params}
        </Stream>
    </Connect>
    <Pause length="{int(self.pause_seconds)}" />
</Response>'''

    def generate_apology_twiml(self) -> str:
        """TwiML returned when call setup fails"""
        return f'''<?xml version="1.0" encoding="UTF-8"?>
<Response>
{self._say(self.apology_text)}    <Hangup />
</Response>'''


# Factory function
def create_twilio_service(config: dict) -> TwilioService:
    """
    Factory function to create Twilio service from config

    Args:
        config: Configuration dictionary

    Returns:
        Configured TwilioService instance
    """
    return TwilioService(
        voice=config.get('twiml_voice', 'alice'),
        language=config.get('twiml_language', 'de-DE'),
        disclosure_text=config.get('disclosure_text', ''),
        prompt_text=config.get('speak_prompt_text', ''),
        apology_text=config.get('apology_text', ''),
        pause_seconds=config.get('pause_seconds', 10),
    )
