"""
Speech I/O adapter.

Wraps speech-to-text dictation and text-to-speech playback behind one
capability-checked object whose state follows ``SPEECH_TRANSITIONS``:

  - capabilities are probed once, at construction
  - ``listen_once`` is one-shot: a single utterance or a single failure
  - ``speak`` while already speaking cancels the old playback first,
    so two utterances never overlap
  - start / end / error / cancel are delivered to subscribers as events

The platform side is a ``SpeechBackend``. The default one uses
SpeechRecognition for dictation and gTTS to render an mp3 that the
browser plays; the browser reports the end of playback back through
``playback_finished``.
"""

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import speech_recognition as sr
from gtts import gTTS, gTTSError

from assistant.states import (
    InvalidTransition,
    SpeechEvent,
    SpeechState,
    next_speech_state,
)
import config

logger = logging.getLogger(__name__)


class SpeechErrorKind(str, Enum):
    UNSUPPORTED = "unsupported"
    NO_SPEECH_DETECTED = "no_speech_detected"
    DENIED = "denied"
    BUSY = "busy"


class SpeechError(Exception):
    """A dictation or playback attempt that could not complete."""

    def __init__(self, kind: SpeechErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class SpeechCapabilities:
    can_listen: bool
    can_speak: bool


@dataclass
class Utterance:
    """One playback request. ``audio_path`` is set once synthesis is done."""

    id: int
    text: str
    language: str = "en"
    accent: str = "com"
    audio_path: str | None = None


class PlaybackEvent(Enum):
    STARTED = "started"
    ENDED = "ended"
    FAILED = "failed"
    CANCELLED = "cancelled"


PlaybackListener = Callable[[PlaybackEvent, Utterance], None]


# ── Backends ───────────────────────────────────────────────────────────────

class SpeechBackend(ABC):
    """Platform speech services."""

    @abstractmethod
    def probe(self) -> SpeechCapabilities:
        ...

    @abstractmethod
    async def recognize(self, audio_path: str) -> str:
        """Transcribe one recorded clip. Raises ``SpeechError``."""

    @abstractmethod
    async def prepare(self, utterance: Utterance) -> str:
        """Render the utterance for playback and return the audio location."""

    def release(self, utterance: Utterance) -> None:
        """Free whatever ``prepare`` produced for a finished utterance."""

    def cancel(self, utterance: Utterance) -> None:
        """Stop an utterance that is being prepared or played."""
        self.release(utterance)


class GoogleSpeechBackend(SpeechBackend):
    """SpeechRecognition (Google Web Speech) in, gTTS out."""

    def __init__(
        self,
        language: str | None = None,
        listen_enabled: bool | None = None,
        speak_enabled: bool | None = None,
    ):
        self.language = language or config.SPEECH_LANGUAGE
        self.listen_enabled = (
            config.SPEECH_INPUT_ENABLED if listen_enabled is None else listen_enabled
        )
        self.speak_enabled = (
            config.SPEECH_OUTPUT_ENABLED if speak_enabled is None else speak_enabled
        )

    def probe(self) -> SpeechCapabilities:
        can_listen = self.listen_enabled
        if can_listen:
            # recognize_google uploads FLAC; without a converter dictation cannot work
            try:
                sr.get_flac_converter()
            except OSError as e:
                logger.warning("[Speech] Dictation disabled: %s", e)
                can_listen = False
        return SpeechCapabilities(can_listen=can_listen, can_speak=self.speak_enabled)

    async def recognize(self, audio_path: str) -> str:
        return await asyncio.to_thread(self._recognize_file, audio_path)

    def _recognize_file(self, audio_path: str) -> str:
        recognizer = sr.Recognizer()
        try:
            with sr.AudioFile(audio_path) as source:
                audio = recognizer.record(source)
        except (ValueError, OSError) as e:
            raise SpeechError(SpeechErrorKind.NO_SPEECH_DETECTED, str(e)) from e

        try:
            text = recognizer.recognize_google(audio, language=self.language)
        except sr.UnknownValueError as e:
            raise SpeechError(SpeechErrorKind.NO_SPEECH_DETECTED) from e
        except sr.RequestError as e:
            raise SpeechError(SpeechErrorKind.UNSUPPORTED, str(e)) from e

        if not text or not text.strip():
            raise SpeechError(SpeechErrorKind.NO_SPEECH_DETECTED)
        return text.strip()

    async def prepare(self, utterance: Utterance) -> str:
        return await asyncio.to_thread(self._synthesize, utterance)

    @staticmethod
    def _synthesize(utterance: Utterance) -> str:
        try:
            tts = gTTS(text=utterance.text, lang=utterance.language, tld=utterance.accent)
        except ValueError as e:
            # unsupported language
            raise SpeechError(SpeechErrorKind.UNSUPPORTED, str(e)) from e

        handle = tempfile.NamedTemporaryFile(suffix=".mp3", delete=False)
        try:
            with handle:
                tts.write_to_fp(handle)
        except gTTSError as e:
            os.remove(handle.name)
            raise SpeechError(SpeechErrorKind.UNSUPPORTED, str(e)) from e
        except BaseException:
            os.remove(handle.name)
            raise
        return handle.name

    def release(self, utterance: Utterance) -> None:
        if utterance.audio_path and os.path.exists(utterance.audio_path):
            os.remove(utterance.audio_path)
            logger.debug("[Speech] Removed %s", utterance.audio_path)


# ── Adapter ────────────────────────────────────────────────────────────────

class SpeechIO:
    """Capability-checked speech input/output with an explicit state machine."""

    def __init__(self, backend: SpeechBackend):
        self.backend = backend
        self.capabilities = backend.probe()
        self.state = SpeechState.IDLE
        self._current: Utterance | None = None
        self._next_id = 0
        self._listeners: list[PlaybackListener] = []

    # ── State ──────────────────────────────────────────────────────────

    @property
    def is_listening(self) -> bool:
        return self.state is SpeechState.LISTENING

    @property
    def is_speaking(self) -> bool:
        return self.state is SpeechState.SPEAKING

    @property
    def current(self) -> Utterance | None:
        """The utterance that owns playback right now, if any."""
        return self._current

    def subscribe(self, listener: PlaybackListener) -> None:
        self._listeners.append(listener)

    def _apply(self, event: SpeechEvent) -> None:
        self.state = next_speech_state(self.state, event)

    def _emit(self, event: PlaybackEvent, utterance: Utterance) -> None:
        for listener in list(self._listeners):
            listener(event, utterance)

    # ── Dictation ──────────────────────────────────────────────────────

    async def listen_once(self, audio_path: str | None) -> str:
        """
        Turn one recorded clip into text.

        Args:
            audio_path: The clip captured by the browser, or None when the
                user never granted the microphone.

        Raises:
            SpeechError: UNSUPPORTED, DENIED, NO_SPEECH_DETECTED or BUSY.
        """
        if not self.capabilities.can_listen:
            raise SpeechError(SpeechErrorKind.UNSUPPORTED, "dictation is not available")
        if not audio_path:
            raise SpeechError(SpeechErrorKind.DENIED, "no audio was captured")
        if self.is_listening:
            raise SpeechError(SpeechErrorKind.BUSY, "already listening")

        if self.is_speaking:
            self.stop()
        self._apply(SpeechEvent.LISTEN)
        try:
            return await self.backend.recognize(audio_path)
        finally:
            self._apply(SpeechEvent.LISTEN_DONE)

    # ── Playback ───────────────────────────────────────────────────────

    async def speak(self, text: str, language: str = "en", accent: str = "com") -> Utterance | None:
        """
        Start reading ``text`` aloud, cancelling any playback in progress.

        Returns the utterance once it is ready to play, or None when speech
        output is unavailable, the text is blank, or a newer call took over.
        """
        if not self.capabilities.can_speak or not text or not text.strip():
            return None
        if self.is_speaking:
            self._drop_current()

        try:
            self._apply(SpeechEvent.SPEAK)
        except InvalidTransition as e:
            logger.info("[Speech] Not speaking: %s", e)
            return None

        self._next_id += 1
        utterance = Utterance(self._next_id, text, language=language, accent=accent)
        self._current = utterance

        try:
            audio_path = await self.backend.prepare(utterance)
        except asyncio.CancelledError:
            if self._current is utterance:
                self.stop()
            raise
        except Exception as e:
            if self._current is utterance:
                if isinstance(e, SpeechError):
                    logger.warning("[Speech] Playback failed: %s", e)
                else:
                    logger.exception("[Speech] Rendering utterance %d raised", utterance.id)
                self._current = None
                self._apply(SpeechEvent.PLAYBACK_ERROR)
                self._emit(PlaybackEvent.FAILED, utterance)
            return None

        utterance.audio_path = audio_path
        if self._current is not utterance:
            # superseded or stopped while rendering
            self.backend.release(utterance)
            return None

        self._emit(PlaybackEvent.STARTED, utterance)
        return utterance

    def playback_finished(self, utterance_id: int | None = None, failed: bool = False) -> None:
        """End/error callback from the player. Stale ids are ignored."""
        utterance = self._current
        if utterance is None:
            return
        if utterance_id is not None and utterance_id != utterance.id:
            return
        self._current = None
        self.backend.release(utterance)
        if failed:
            self._apply(SpeechEvent.PLAYBACK_ERROR)
            self._emit(PlaybackEvent.FAILED, utterance)
        else:
            self._apply(SpeechEvent.PLAYBACK_END)
            self._emit(PlaybackEvent.ENDED, utterance)

    def stop(self) -> None:
        """Cancel playback immediately."""
        if self.is_speaking:
            self._drop_current()
            self._apply(SpeechEvent.CANCEL)

    def _drop_current(self) -> None:
        utterance = self._current
        self._current = None
        if utterance is not None:
            self.backend.cancel(utterance)
            self._emit(PlaybackEvent.CANCELLED, utterance)
