"""
Configuration module for the Dadi Care assistants.
Loads environment variables and provides application-wide settings.

The Gemini credential lives only here, on the server. It is never
rendered into the page or sent to the browser.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── API Keys ───────────────────────────────────────────────────────────────
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")

# "rest" talks to generateContent directly over httpx, "sdk" goes through google-genai
GEMINI_TRANSPORT = os.getenv("GEMINI_TRANSPORT", "rest").strip().lower()
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# ── Speech ────────────────────────────────────────────────────────────────
SPEECH_INPUT_ENABLED = _env_flag("SPEECH_INPUT_ENABLED")
SPEECH_OUTPUT_ENABLED = _env_flag("SPEECH_OUTPUT_ENABLED")
SPEECH_LANGUAGE = os.getenv("SPEECH_LANGUAGE", "en-US")

# ── Geocoding ─────────────────────────────────────────────────────────────
GEOCODING_ENABLED = _env_flag("GEOCODING_ENABLED")
GEOCODER_URL = os.getenv(
    "GEOCODER_URL", "https://api.bigdatacloud.net/data/reverse-geocode-client"
)
GEOCODER_TIMEOUT_SECONDS = float(os.getenv("GEOCODER_TIMEOUT_SECONDS", "5"))

# ── MongoDB ────────────────────────────────────────────────────────────────
MONGODB_URI = os.getenv("MONGODB_URI", "")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "dadi_care")
MONGODB_INCIDENTS_COLLECTION = os.getenv("MONGODB_INCIDENTS_COLLECTION", "incident_reports")
MONGODB_MEDICINES_COLLECTION = os.getenv("MONGODB_MEDICINES_COLLECTION", "trusted_medicines")

# ── Logging ───────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Application Settings ──────────────────────────────────────────────────
APP_TITLE = "💗 Dadi Care — Your Health Companion"
APP_DESCRIPTION = (
    "Talk to Dadi or the triage assistant about your health, verify a "
    "medicine before you take it, and report an emergency."
)
SERVER_NAME = os.getenv("SERVER_NAME", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "8000"))
