import asyncio

import httpx
import pytest

from assistant.models import Role
from assistant.personas import DADI, TRIAGE
from assistant.response_client import ErrorKind, GeminiRestClient, ResponseResult
from assistant.session import AssistantSession
from assistant.speech import SpeechIO
from assistant.states import RequestState, SpeechState
from conftest import FakeResponseClient, FakeSpeechBackend


def test_new_session_starts_with_greeting(dadi_session):
    assert [m.text for m in dadi_session.messages] == [DADI.greeting]
    assert dadi_session.messages[0].role is Role.BOT
    assert dadi_session.request_state is RequestState.IDLE


def test_greeting_is_personalized_with_display_name(fake_client):
    session = AssistantSession(TRIAGE, fake_client, display_name="Asha")
    greeting = session.messages[0].text
    assert greeting.startswith("Hello Asha, welcome back.")
    assert greeting.endswith(TRIAGE.greeting)


async def test_submit_appends_user_then_bot(dadi_session, fake_client):
    fake_client.results = [ResponseResult.success("Drink warm haldi milk, beta.")]

    reply = await dadi_session.submit("I have a sore throat")

    roles = [m.role for m in dadi_session.messages]
    assert roles == [Role.BOT, Role.USER, Role.BOT]
    assert dadi_session.messages[1].text == "I have a sore throat"
    assert reply.text == "Drink warm haldi milk, beta."
    assert dadi_session.request_state is RequestState.IDLE


async def test_user_message_is_visible_before_reply_resolves(dadi_session, fake_client):
    fake_client.gate = asyncio.Event()

    turn = asyncio.create_task(dadi_session.submit("My knee hurts"))
    await asyncio.sleep(0)

    assert [m.text for m in dadi_session.messages][-1] == "My knee hurts"
    assert dadi_session.request_state is RequestState.PENDING
    assert dadi_session.is_loading

    fake_client.gate.set()
    await turn
    assert len(dadi_session.messages) == 3


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
async def test_blank_input_is_ignored(dadi_session, fake_client, text):
    assert await dadi_session.submit(text) is None
    assert len(dadi_session.messages) == 1
    assert fake_client.calls == []
    assert dadi_session.request_state is RequestState.IDLE


async def test_submit_while_pending_is_rejected(dadi_session, fake_client):
    fake_client.gate = asyncio.Event()
    first = asyncio.create_task(dadi_session.submit("first question"))
    await asyncio.sleep(0)
    length = len(dadi_session.messages)

    assert await dadi_session.submit("second question") is None
    assert len(dadi_session.messages) == length
    assert len(fake_client.calls) == 1

    fake_client.gate.set()
    await first
    assert [m.text for m in dadi_session.messages if m.role is Role.USER] == ["first question"]


async def test_http_500_appends_fallback(triage_session):
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "internal"}})

    triage_session.client = GeminiRestClient("test-key", transport=httpx.MockTransport(handler))

    reply = await triage_session.submit("fever and chills")

    assert reply.text == TRIAGE.fallback
    bots = [m for m in triage_session.messages[1:] if m.role is Role.BOT]
    assert len(bots) == 1
    assert triage_session.request_state is RequestState.IDLE
    assert triage_session.last_error is ErrorKind.HTTP_STATUS


async def test_empty_candidates_triggers_fallback(triage_session):
    def handler(request):
        return httpx.Response(200, json={"candidates": []})

    triage_session.client = GeminiRestClient("test-key", transport=httpx.MockTransport(handler))

    reply = await triage_session.submit("rash on arm")

    assert reply.text == TRIAGE.fallback
    assert triage_session.last_error is ErrorKind.MALFORMED_PAYLOAD
    assert triage_session.request_state is RequestState.IDLE


async def test_failure_detail_never_reaches_transcript(triage_session, fake_client, caplog):
    fake_client.results = [
        ResponseResult.failure(ErrorKind.NETWORK, "ConnectError: secret-host refused")
    ]

    await triage_session.submit("dizzy")

    assert all("secret-host" not in m.text for m in triage_session.messages)
    assert "secret-host" in caplog.text


async def test_client_exception_is_recovered(dadi_session, fake_client):
    fake_client.results = [RuntimeError("boom")]

    reply = await dadi_session.submit("hello")

    assert reply.text == DADI.fallback
    assert dadi_session.request_state is RequestState.IDLE
    assert dadi_session.last_error is ErrorKind.NETWORK


async def test_input_accepted_again_after_failure(dadi_session, fake_client):
    fake_client.results = [
        ResponseResult.failure(ErrorKind.HTTP_STATUS, "503", status_code=503),
        ResponseResult.success("Better now, beta."),
    ]

    await dadi_session.submit("first")
    reply = await dadi_session.submit("second")

    assert reply.text == "Better now, beta."
    assert dadi_session.last_error is None
    assert len(dadi_session.messages) == 5


async def test_reset_always_yields_single_greeting(dadi_session, fake_client):
    for text in ("one", "two", "three"):
        await dadi_session.submit(text)
    assert len(dadi_session.messages) == 7

    dadi_session.reset()

    assert len(dadi_session.messages) == 1
    assert dadi_session.messages[0].text == DADI.greeting
    assert dadi_session.request_state is RequestState.IDLE


async def test_reply_arriving_after_reset_is_discarded(dadi_session, fake_client):
    fake_client.gate = asyncio.Event()
    fake_client.results = [ResponseResult.success("late reply")]

    turn = asyncio.create_task(dadi_session.submit("question before reset"))
    await asyncio.sleep(0)
    dadi_session.reset()
    assert dadi_session.request_state is RequestState.IDLE

    fake_client.gate.set()
    assert await turn is None
    assert [m.text for m in dadi_session.messages] == [DADI.greeting]
    assert dadi_session.request_state is RequestState.IDLE


async def test_cancelled_turn_returns_to_idle(dadi_session, fake_client):
    fake_client.gate = asyncio.Event()
    turn = asyncio.create_task(dadi_session.submit("hello"))
    await asyncio.sleep(0)

    turn.cancel()
    with pytest.raises(asyncio.CancelledError):
        await turn

    assert dadi_session.request_state is RequestState.IDLE


async def test_transcript_view_is_read_only(dadi_session):
    view = dadi_session.messages
    assert isinstance(view, tuple)
    with pytest.raises(AttributeError):
        view[0].text = "changed"


async def test_prompt_uses_persona_and_display_name(fake_client):
    session = AssistantSession(DADI, fake_client, display_name="Ravi", request_timeout=12)

    await session.submit("  I cannot sleep  ")

    call = fake_client.calls[0]
    assert "User Message: I cannot sleep" in call["prompt"]
    assert "Ravi" in call["prompt"]
    assert call["params"] == DADI.generation_params()
    assert call["timeout"] == 12


async def test_dadi_end_to_end_over_rest():
    def handler(request):
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Beta, rest and drink water."}]}}]},
        )

    client = GeminiRestClient("test-key", transport=httpx.MockTransport(handler))
    session = AssistantSession(DADI, client)

    await session.submit("I have a mild headache")

    assert [(m.role, m.text) for m in session.messages] == [
        (Role.BOT, DADI.greeting),
        (Role.USER, "I have a mild headache"),
        (Role.BOT, "Beta, rest and drink water."),
    ]
    assert session.request_state is RequestState.IDLE


async def test_history_uses_chat_widget_roles(dadi_session):
    await dadi_session.submit("hi")
    assert [entry["role"] for entry in dadi_session.history()] == ["assistant", "user", "assistant"]


# ── Speech ─────────────────────────────────────────────────────────────────

async def test_toggle_speech_twice_leaves_at_most_one_playback(dadi_session, speech_backend):
    first = await dadi_session.toggle_speech("Namaste beta")
    assert first is not None
    assert dadi_session.is_speaking

    second = await dadi_session.toggle_speech("Namaste beta")

    assert second is None
    assert not dadi_session.is_speaking
    assert speech_backend.cancelled == [first]


async def test_any_bot_message_can_be_read_aloud(dadi_session, fake_client, speech_backend):
    fake_client.results = [ResponseResult.success("Drink haldi doodh"), ResponseResult.success("Rest well")]
    await dadi_session.submit("I have a cold")
    await dadi_session.submit("Thank you")

    earlier = dadi_session.bot_message_at(2)
    assert earlier.text == "Drink haldi doodh"
    assert dadi_session.bot_message_at(1) is None
    assert dadi_session.bot_message_at(99) is None
    assert dadi_session.bot_message_at(-1) is None

    utterance = await dadi_session.toggle_speech(earlier.text)
    assert utterance.text == "Drink haldi doodh"


async def test_toggle_speech_uses_persona_voice(dadi_session, speech_backend):
    utterance = await dadi_session.toggle_speech("Namaste")
    assert utterance.accent == DADI.speech_accent
    assert utterance.language == DADI.speech_language


async def test_toggle_speech_without_speech_adapter(triage_session):
    assert await triage_session.toggle_speech("hello") is None
    assert not triage_session.is_speaking


async def test_dictate_returns_transcript(dadi_session):
    assert await dadi_session.dictate("/tmp/clip.wav") == "I have a cough"
    assert not dadi_session.is_listening


async def test_dictate_without_audio_is_inert(dadi_session):
    assert await dadi_session.dictate(None) is None
    assert len(dadi_session.messages) == 1


async def test_dictate_when_unsupported_is_inert(fake_client):
    speech = SpeechIO(FakeSpeechBackend(can_listen=False))
    session = AssistantSession(DADI, fake_client, speech=speech)

    assert await session.dictate("/tmp/clip.wav") is None
    assert speech.state is SpeechState.IDLE


async def test_speech_does_not_touch_transcript(dadi_session):
    await dadi_session.toggle_speech("hello")
    await dadi_session.dictate("/tmp/clip.wav")
    assert len(dadi_session.messages) == 1
