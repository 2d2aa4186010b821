import os
import tempfile

import pytest
import speech_recognition as sr
from gtts import gTTSError

from assistant.speech import (
    GoogleSpeechBackend,
    SpeechError,
    SpeechErrorKind,
    SpeechIO,
    Utterance,
)


class FakeTTS:
    """Stands in for gTTS: writes a few bytes instead of calling Google."""

    write_error: Exception | None = None

    def __init__(self, text, lang="en", tld="com"):
        self.text = text
        self.lang = lang
        self.tld = tld

    def write_to_fp(self, fp):
        fp.write(b"ID3")
        if self.write_error is not None:
            raise self.write_error


class FakeAudioFile:
    def __init__(self, path):
        self.path = path

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def audio_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    monkeypatch.setattr("assistant.speech.gTTS", FakeTTS)
    FakeTTS.write_error = None
    yield tmp_path
    FakeTTS.write_error = None


@pytest.fixture
def backend():
    return GoogleSpeechBackend(language="en-IN", listen_enabled=True, speak_enabled=True)


@pytest.fixture
def fake_recording(monkeypatch):
    monkeypatch.setattr(sr, "AudioFile", FakeAudioFile)
    monkeypatch.setattr(sr.Recognizer, "record", lambda self, source: f"audio:{source.path}")


def recognizer_returning(outcome):
    def recognize_google(self, audio, language=None, **kwargs):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return recognize_google


# ── Synthesis ──────────────────────────────────────────────────────────────

async def test_finished_playback_deletes_rendered_audio(audio_dir, backend):
    speech = SpeechIO(backend)
    utterance = await speech.speak("Drink warm water", accent="co.in")

    assert os.path.exists(utterance.audio_path)
    assert os.path.dirname(utterance.audio_path) == str(audio_dir)

    speech.playback_finished(utterance.id)

    assert list(audio_dir.iterdir()) == []


async def test_stop_deletes_rendered_audio(audio_dir, backend):
    speech = SpeechIO(backend)
    await speech.speak("first")
    await speech.speak("second")

    speech.stop()

    assert list(audio_dir.iterdir()) == []


async def test_tts_service_error_is_unsupported(audio_dir, backend):
    FakeTTS.write_error = gTTSError("503 from TTS API")

    with pytest.raises(SpeechError) as info:
        await backend.prepare(Utterance(1, "hello"))

    assert info.value.kind is SpeechErrorKind.UNSUPPORTED
    assert list(audio_dir.iterdir()) == []


async def test_unknown_language_is_unsupported(monkeypatch, backend):
    def reject(text, lang="en", tld="com"):
        raise ValueError(f"Language not supported: {lang}")

    monkeypatch.setattr("assistant.speech.gTTS", reject)

    with pytest.raises(SpeechError) as info:
        await backend.prepare(Utterance(1, "hello", language="xx"))

    assert info.value.kind is SpeechErrorKind.UNSUPPORTED


# ── Recognition ────────────────────────────────────────────────────────────

async def test_recognize_returns_trimmed_transcript(monkeypatch, backend, fake_recording):
    seen = {}

    def recognize_google(self, audio, language=None, **kwargs):
        seen["audio"], seen["language"] = audio, language
        return "  I have fever  "

    monkeypatch.setattr(sr.Recognizer, "recognize_google", recognize_google)

    assert await backend.recognize("/tmp/clip.wav") == "I have fever"
    assert seen == {"audio": "audio:/tmp/clip.wav", "language": "en-IN"}


@pytest.mark.parametrize(
    "outcome, kind",
    [
        (sr.UnknownValueError(), SpeechErrorKind.NO_SPEECH_DETECTED),
        (sr.RequestError("recognition connection failed"), SpeechErrorKind.UNSUPPORTED),
        ("   ", SpeechErrorKind.NO_SPEECH_DETECTED),
    ],
)
async def test_recognition_errors_map_to_kinds(monkeypatch, backend, fake_recording, outcome, kind):
    monkeypatch.setattr(sr.Recognizer, "recognize_google", recognizer_returning(outcome))

    with pytest.raises(SpeechError) as info:
        await backend.recognize("/tmp/clip.wav")

    assert info.value.kind is kind


async def test_unreadable_clip_is_no_speech(backend, tmp_path):
    with pytest.raises(SpeechError) as info:
        await backend.recognize(str(tmp_path / "missing.wav"))
    assert info.value.kind is SpeechErrorKind.NO_SPEECH_DETECTED


@pytest.mark.parametrize("error", [ValueError("not a WAV file"), OSError("device busy")])
async def test_audio_file_errors_are_no_speech(monkeypatch, backend, error):
    def broken(path):
        raise error

    monkeypatch.setattr(sr, "AudioFile", broken)

    with pytest.raises(SpeechError) as info:
        await backend.recognize("/tmp/clip.wav")
    assert info.value.kind is SpeechErrorKind.NO_SPEECH_DETECTED


def test_probe_without_flac_converter_disables_dictation(monkeypatch, backend):
    def no_flac():
        raise OSError("FLAC conversion utility not available")

    monkeypatch.setattr(sr, "get_flac_converter", no_flac)

    capabilities = backend.probe()

    assert capabilities.can_listen is False
    assert capabilities.can_speak is True
