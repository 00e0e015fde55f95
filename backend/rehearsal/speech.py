"""
Duplex speech interface and the connection state machine around it.

Recognition and synthesis run in the browser; the server sees them through a
SpeechChannel. VoiceLink keeps the Disconnected/Listening lifecycle as an
explicit transition table so auto-reconnect can be exercised with a fake
channel.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from rehearsal.errors import SpeechUnsupported

LOG = logging.getLogger("rehearsal.speech")

GREETING = "Voice interview started. I'm ready to help you. What would you like to do?"
FAREWELL = "Voice interview ended. Good luck with your preparation!"


class SpeechChannel(ABC):
    @property
    def supported(self) -> bool:
        return True

    @abstractmethod
    async def start_listening(self) -> None:
        ...

    @abstractmethod
    async def stop_listening(self) -> None:
        ...

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Say ``text``, replacing any utterance still in flight."""

    @abstractmethod
    async def cancel_speech(self) -> None:
        ...


class WebSocketSpeechChannel(SpeechChannel):
    """Forwards speech requests to the browser over the session socket."""

    def __init__(self, send: Callable[[Dict[str, Any]], Awaitable[None]], supported: bool = True) -> None:
        self._send = send
        self._supported = supported

    @property
    def supported(self) -> bool:
        return self._supported

    def mark_supported(self, supported: bool) -> None:
        self._supported = supported

    async def start_listening(self) -> None:
        await self._send({"type": "listen"})

    async def stop_listening(self) -> None:
        await self._send({"type": "stop_listening"})

    async def speak(self, text: str) -> None:
        await self._send({"type": "speak", "text": text, "rate": 1.0, "pitch": 1.0, "volume": 1.0})

    async def cancel_speech(self) -> None:
        await self._send({"type": "cancel_speech"})


class LinkState(str, Enum):
    DISCONNECTED = "disconnected"
    LISTENING = "listening"


class LinkEvent(str, Enum):
    CONNECT = "connect"
    RECOGNITION_END = "recognition_end"
    END_CALL = "end_call"


# (state, event) -> (next state, action). Pairs not listed are ignored.
TRANSITIONS: Dict[Tuple[LinkState, LinkEvent], Tuple[LinkState, Optional[str]]] = {
    (LinkState.DISCONNECTED, LinkEvent.CONNECT): (LinkState.LISTENING, "_open"),
    (LinkState.LISTENING, LinkEvent.RECOGNITION_END): (LinkState.LISTENING, "_restart"),
    (LinkState.LISTENING, LinkEvent.END_CALL): (LinkState.DISCONNECTED, "_close"),
    (LinkState.DISCONNECTED, LinkEvent.RECOGNITION_END): (LinkState.DISCONNECTED, None),
}

TranscriptHandler = Callable[[str, bool], Awaitable[Any]]


class VoiceLink:
    def __init__(
        self,
        channel: SpeechChannel,
        on_transcript: Optional[TranscriptHandler] = None,
        on_connected: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.channel = channel
        self.state = LinkState.DISCONNECTED
        self._on_transcript = on_transcript
        self._on_connected = on_connected

    @property
    def connected(self) -> bool:
        return self.state == LinkState.LISTENING

    async def dispatch(self, event: LinkEvent) -> LinkState:
        transition = TRANSITIONS.get((self.state, event))
        if transition is None:
            LOG.debug("Ignoring %s while %s", event.value, self.state.value)
            return self.state
        next_state, action = transition
        if action:
            await getattr(self, action)()
        if next_state != self.state:
            LOG.info("Voice link %s -> %s (%s)", self.state.value, next_state.value, event.value)
        self.state = next_state
        return self.state

    async def start_call(self) -> LinkState:
        return await self.dispatch(LinkEvent.CONNECT)

    async def end_call(self) -> LinkState:
        return await self.dispatch(LinkEvent.END_CALL)

    async def recognition_ended(self) -> LinkState:
        return await self.dispatch(LinkEvent.RECOGNITION_END)

    async def deliver_transcript(self, text: str, final: bool = True) -> Optional[Any]:
        if not self.connected:
            LOG.debug("Dropping transcript while disconnected")
            return None
        if self._on_transcript is None:
            return None
        return await self._on_transcript(text, final)

    async def say(self, text: str) -> None:
        await self.channel.speak(text)

    async def _open(self) -> None:
        if not self.channel.supported:
            raise SpeechUnsupported()
        await self.channel.start_listening()
        self._set_connected(True)
        await self.channel.speak(GREETING)

    async def _restart(self) -> None:
        try:
            await self.channel.start_listening()
        except Exception as exc:
            LOG.error("Failed to restart recognition: %s", exc)

    async def _close(self) -> None:
        await self.channel.stop_listening()
        await self.channel.cancel_speech()
        self._set_connected(False)
        await self.channel.speak(FAREWELL)

    def _set_connected(self, connected: bool) -> None:
        if self._on_connected is not None:
            self._on_connected(connected)
