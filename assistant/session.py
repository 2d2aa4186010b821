"""
Assistant Session — Core Orchestrator.

Shared by Dadi and the triage assistant; the persona is the only thing
that differs. A session:
  1. Validates and admits one user turn at a time
  2. Appends the user message before anything is awaited
  3. Renders the persona prompt and asks the response client for a reply
  4. Appends the reply, or the persona fallback when the call failed
  5. Reads replies aloud / takes dictation through the speech adapter

Architecture:
  submit(text)
      │
      ▼
  ┌──────────────┐
  │  Admission   │──── blank or PENDING ────▶ ignored
  └──────┬───────┘
         │ user message appended, IDLE → PENDING
         ▼
  ┌──────────────┐
  │ PromptBuilder│
  └──────┬───────┘
         ▼
  ┌──────────────┐
  │ResponseClient│──── failure ────▶ persona fallback
  └──────┬───────┘
         │ (dropped if the session was reset meanwhile)
         ▼
  bot message appended, PENDING → IDLE
"""

import asyncio
import logging

from assistant.models import Message, PersonaConfig, Role
from assistant.prompts import build_prompt
from assistant.response_client import ErrorKind, ResponseClient, ResponseResult
from assistant.speech import SpeechError, SpeechIO, Utterance
from assistant.states import RequestEvent, RequestState, next_request_state

logger = logging.getLogger(__name__)


class AssistantSession:
    """
    One conversation with one persona.

    The transcript is only ever appended to, or replaced wholesale by
    ``reset``. At most one request is in flight; further submissions are
    rejected rather than queued.
    """

    def __init__(
        self,
        persona: PersonaConfig,
        client: ResponseClient,
        speech: SpeechIO | None = None,
        display_name: str | None = None,
        request_timeout: float | None = None,
    ):
        self.persona = persona
        self.client = client
        self.speech = speech
        self.display_name = display_name
        self.request_timeout = request_timeout
        self.request_state = RequestState.IDLE
        self.last_error: ErrorKind | None = None
        self._generation = 0
        self._messages: list[Message] = [self._greeting()]

    # ── Read-only View ─────────────────────────────────────────────────

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def is_loading(self) -> bool:
        return self.request_state is RequestState.PENDING

    @property
    def is_speaking(self) -> bool:
        return self.speech is not None and self.speech.is_speaking

    @property
    def is_listening(self) -> bool:
        return self.speech is not None and self.speech.is_listening

    def history(self) -> list[dict]:
        """Transcript in the role/content shape of the chat widget."""
        return [m.as_chat_entry() for m in self._messages]

    def bot_message_at(self, index: int) -> Message | None:
        """The message at ``index`` of the transcript, if it is a bot reply."""
        if 0 <= index < len(self._messages) and self._messages[index].role is Role.BOT:
            return self._messages[index]
        return None

    def last_bot_message(self) -> Message | None:
        for message in reversed(self._messages):
            if message.role is Role.BOT:
                return message
        return None

    # ── Conversation ───────────────────────────────────────────────────

    async def submit(self, text: str | None) -> Message | None:
        """
        Run one user turn.

        Returns the bot message that was appended, or None when the input
        was rejected or the reply arrived after a reset.
        """
        utterance = (text or "").strip()
        if not utterance:
            return None
        if self.request_state is RequestState.PENDING:
            logger.debug("[%s] Ignoring input while a reply is pending", self.persona.name)
            return None

        # Visible before the reply resolves
        self._messages.append(Message.user(utterance))
        self._advance(RequestEvent.SUBMIT)
        generation = self._generation

        prompt = build_prompt(self.persona, utterance, self.display_name)
        try:
            result = await self.client.send(
                prompt, self.persona.generation_params(), timeout=self.request_timeout
            )
        except asyncio.CancelledError:
            if generation == self._generation:
                self._advance(RequestEvent.RESOLVE)
            raise
        except Exception as e:
            logger.exception("[%s] Response client raised", self.persona.name)
            result = ResponseResult.failure(ErrorKind.NETWORK, f"{type(e).__name__}: {e}")

        if generation != self._generation:
            logger.info(
                "[%s] Discarding reply to '%s' that arrived after a reset",
                self.persona.name,
                utterance[:40],
            )
            return None

        if result.ok:
            self.last_error = None
            reply = Message.bot(result.text)
        else:
            self.last_error = result.error
            logger.warning(
                "[%s] Reply failed (%s%s): %s",
                self.persona.name,
                result.error.value,
                f" {result.status_code}" if result.status_code else "",
                result.detail,
            )
            reply = Message.bot(self.persona.fallback)

        self._messages.append(reply)
        self._advance(RequestEvent.RESOLVE)
        return reply

    def reset(self) -> None:
        """Start a new conversation: the transcript becomes just the greeting."""
        self._generation += 1
        self._messages = [self._greeting()]
        self.last_error = None
        self._advance(RequestEvent.RESET)

    # ── Speech ─────────────────────────────────────────────────────────

    async def toggle_speech(self, text: str) -> Utterance | None:
        """Stop reading aloud if we are, otherwise start reading ``text``."""
        if self.speech is None:
            return None
        if self.speech.is_speaking:
            self.speech.stop()
            return None
        return await self.speech.speak(
            text,
            language=self.persona.speech_language,
            accent=self.persona.speech_accent,
        )

    async def dictate(self, audio_path: str | None) -> str | None:
        """Transcribe one recorded clip into input text, or None if that failed."""
        if self.speech is None:
            return None
        try:
            return await self.speech.listen_once(audio_path)
        except SpeechError as e:
            logger.info("[%s] Dictation failed (%s): %s", self.persona.name, e.kind.value, e.detail)
            return None

    # ── Internals ──────────────────────────────────────────────────────

    def _greeting(self) -> Message:
        return Message.bot(self.persona.greeting_for(self.display_name))

    def _advance(self, event: RequestEvent) -> None:
        self.request_state = next_request_state(self.request_state, event)
