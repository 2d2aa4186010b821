import asyncio

import pytest

from assistant.personas import DADI, TRIAGE
from assistant.response_client import ResponseClient, ResponseResult
from assistant.session import AssistantSession
from assistant.speech import SpeechBackend, SpeechCapabilities, SpeechIO


class FakeResponseClient(ResponseClient):
    """Returns queued results; optionally holds every call until ``gate`` is set."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def send(self, prompt, params, timeout=None):
        self.calls.append({"prompt": prompt, "params": params, "timeout": timeout})
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            outcome = self.results.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return ResponseResult.success("ok")


class FakeSpeechBackend(SpeechBackend):
    def __init__(self, can_listen=True, can_speak=True, transcript="I have a cough", listen_error=None):
        self.can_listen = can_listen
        self.can_speak = can_speak
        self.transcript = transcript
        self.listen_error = listen_error
        self.prepare_error = None
        self.prepared = []
        self.cancelled = []
        self.released = []
        self.gate: asyncio.Event | None = None

    def probe(self):
        return SpeechCapabilities(can_listen=self.can_listen, can_speak=self.can_speak)

    async def recognize(self, audio_path):
        if self.listen_error is not None:
            raise self.listen_error
        return self.transcript

    async def prepare(self, utterance):
        self.prepared.append(utterance)
        if self.gate is not None:
            await self.gate.wait()
        if self.prepare_error is not None:
            raise self.prepare_error
        return f"/tmp/utterance-{utterance.id}.mp3"

    def release(self, utterance):
        self.released.append(utterance)

    def cancel(self, utterance):
        self.cancelled.append(utterance)


@pytest.fixture
def fake_client():
    return FakeResponseClient()


@pytest.fixture
def speech_backend():
    return FakeSpeechBackend()


@pytest.fixture
def speech(speech_backend):
    return SpeechIO(speech_backend)


@pytest.fixture
def dadi_session(fake_client, speech):
    return AssistantSession(DADI, fake_client, speech=speech)


@pytest.fixture
def triage_session(fake_client):
    return AssistantSession(TRIAGE, fake_client)
