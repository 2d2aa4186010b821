"""
Core data types shared by both assistants.

Messages are immutable once created; a transcript is simply the ordered
list of messages a session has appended.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Who authored a transcript message."""

    USER = "user"
    BOT = "bot"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    role: Role
    text: str
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(Role.USER, text)

    @classmethod
    def bot(cls, text: str) -> "Message":
        return cls(Role.BOT, text)

    def as_chat_entry(self) -> dict:
        """Shape used by ``gr.Chatbot(type="messages")``."""
        role = "user" if self.role is Role.USER else "assistant"
        return {"role": role, "content": self.text}


@dataclass(frozen=True)
class PersonaConfig:
    """
    Fixed instruction template and tone for one assistant variant.

    ``system_instructions`` is placed before the user's words and
    ``closing`` after them. ``utterance_label`` prefixes the user's words
    inside the prompt ("User Message", "User Symptoms", ...).
    """

    name: str
    system_instructions: str
    greeting: str
    fallback: str
    utterance_label: str = "User Message"
    closing: str = ""
    name_greeting: str = "Welcome, {name}."
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024
    speech_language: str = "en"
    speech_accent: str = "com"
    input_placeholder: str = "Type your message..."
    thinking_label: str = "Thinking..."

    def generation_params(self) -> dict:
        """Generation settings in the wire format of ``generationConfig``."""
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }

    def greeting_for(self, display_name: str | None = None) -> str:
        """Greeting text, prefixed with a personal line when a name is known."""
        if not display_name or not display_name.strip():
            return self.greeting
        personal = self.name_greeting.format(name=display_name.strip())
        return f"{personal}\n\n{self.greeting}"
