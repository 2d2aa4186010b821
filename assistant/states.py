"""
Session State Machines.

Two small machines drive everything the UI shows besides the transcript:

  Request lifecycle            Speech I/O

  IDLE ──submit──▶ PENDING     IDLE ──listen──▶ LISTENING ──done──▶ IDLE
   ▲                  │          │
   └──resolve/reset───┘          └──speak──▶ SPEAKING ──end/error/cancel──▶ IDLE
                                               │  ▲
                                               └──┘ speak (cancel, restart)

There is no cancelled request state. A reset during PENDING drops the
session back to IDLE and the late response is discarded by generation.
"""

from enum import Enum


class RequestState(Enum):
    """Lifecycle of the single in-flight request a session may own."""

    IDLE = "idle"
    PENDING = "pending"


class RequestEvent(Enum):
    SUBMIT = "submit"
    RESOLVE = "resolve"
    RESET = "reset"


class SpeechState(Enum):
    """What the speech adapter is doing right now."""

    IDLE = "idle"
    LISTENING = "listening"
    SPEAKING = "speaking"


class SpeechEvent(Enum):
    LISTEN = "listen"
    LISTEN_DONE = "listen_done"
    SPEAK = "speak"
    PLAYBACK_END = "playback_end"
    PLAYBACK_ERROR = "playback_error"
    CANCEL = "cancel"


# ── Transition Tables ──────────────────────────────────────────────────────
# (current state, event) → next state. Pairs that are missing are rejected.

REQUEST_TRANSITIONS: dict[tuple[RequestState, RequestEvent], RequestState] = {
    (RequestState.IDLE, RequestEvent.SUBMIT): RequestState.PENDING,
    (RequestState.PENDING, RequestEvent.RESOLVE): RequestState.IDLE,
    (RequestState.PENDING, RequestEvent.RESET): RequestState.IDLE,
    (RequestState.IDLE, RequestEvent.RESET): RequestState.IDLE,
}

SPEECH_TRANSITIONS: dict[tuple[SpeechState, SpeechEvent], SpeechState] = {
    (SpeechState.IDLE, SpeechEvent.LISTEN): SpeechState.LISTENING,
    (SpeechState.LISTENING, SpeechEvent.LISTEN_DONE): SpeechState.IDLE,
    (SpeechState.IDLE, SpeechEvent.SPEAK): SpeechState.SPEAKING,
    (SpeechState.SPEAKING, SpeechEvent.SPEAK): SpeechState.SPEAKING,
    (SpeechState.SPEAKING, SpeechEvent.PLAYBACK_END): SpeechState.IDLE,
    (SpeechState.SPEAKING, SpeechEvent.PLAYBACK_ERROR): SpeechState.IDLE,
    (SpeechState.SPEAKING, SpeechEvent.CANCEL): SpeechState.IDLE,
    (SpeechState.IDLE, SpeechEvent.CANCEL): SpeechState.IDLE,
}


class InvalidTransition(RuntimeError):
    """Raised when an event is not allowed in the current state."""


def next_request_state(current: RequestState, event: RequestEvent) -> RequestState:
    try:
        return REQUEST_TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransition(f"{event.value} is not allowed while {current.value}") from None


def next_speech_state(current: SpeechState, event: SpeechEvent) -> SpeechState:
    try:
        return SPEECH_TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransition(f"{event.value} is not allowed while {current.value}") from None


# ── State Display Labels ──────────────────────────────────────────────────

SPEECH_LABELS: dict[SpeechState, str] = {
    SpeechState.IDLE: "🔈 Listen",
    SpeechState.LISTENING: "🎙️ Listening...",
    SpeechState.SPEAKING: "⏹️ Stop",
}
