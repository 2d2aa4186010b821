"""
Assistant package — conversational core shared by Dadi and the triage assistant.
"""

from assistant.models import Message, PersonaConfig, Role
from assistant.personas import DADI, TRIAGE, get_persona
from assistant.response_client import ResponseClient, ResponseResult, create_response_client
from assistant.session import AssistantSession
from assistant.speech import SpeechIO

__all__ = [
    "AssistantSession",
    "DADI",
    "Message",
    "PersonaConfig",
    "ResponseClient",
    "ResponseResult",
    "Role",
    "SpeechIO",
    "TRIAGE",
    "create_response_client",
    "get_persona",
]
