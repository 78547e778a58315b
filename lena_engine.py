# lena_engine.py
"""
Outbound calls for the Lena backend: chat replies from OpenAI and speech
synthesis from ElevenLabs (or OpenAI / gTTS as alternatives).

Every helper makes exactly one HTTP request and either returns the result or
raises. Routes in server.py decide what the client sees.
"""
import io
import logging
import os

import requests
from dotenv import load_dotenv
from gtts import gTTS, gTTSError

load_dotenv()

log = logging.getLogger("lena_engine")

# ---------------------------
# Configuration (ENV-friendly)
# ---------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE = os.getenv("OPENAI_BASE", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
OPENAI_TTS_MODEL = os.getenv("OPENAI_TTS_MODEL", "gpt-4o-mini-tts")
OPENAI_TTS_VOICE = os.getenv("OPENAI_TTS_VOICE", "alloy")

ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY")
ELEVENLABS_BASE = os.getenv("ELEVENLABS_BASE", "https://api.elevenlabs.io/v1")
ELEVENLABS_VOICE_ID = os.getenv("ELEVENLABS_VOICE_ID", "EXAVITQu4vr4xnSDxMaL")
ELEVENLABS_MODEL_ID = os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2")
ELEVENLABS_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.8,
    "style": 0.3,
    "use_speaker_boost": True,
}

TTS_PROVIDER = os.getenv("TTS_PROVIDER", "elevenlabs").lower()
GTTS_LANG = os.getenv("GTTS_LANG", "sr")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60"))

TTS_PROVIDERS = ("elevenlabs", "openai", "gtts")


class EngineError(Exception):
    """Base class for failures talking to the AI vendors."""


class EngineNotConfiguredError(EngineError):
    """A required API key is missing."""


class UpstreamTTSError(EngineError):
    def __init__(self, provider, status=None, detail=""):
        self.provider = provider
        self.status = status
        self.detail = detail
        super().__init__(f"{provider} TTS failed (status={status}): {detail[:200]}")


def check_keys():
    """Log a startup error for every missing key; the app still boots."""
    if not OPENAI_API_KEY:
        log.error("OPENAI_API_KEY is not set in the environment")
    if not ELEVENLABS_API_KEY:
        log.error("ELEVENLABS_API_KEY is not set in the environment")


# ---------- Chat ----------
def openai_chat_reply(prompt, system_prompt=None, model=None, temperature=0.4, max_tokens=700):
    """Send prompt to chat model and return assistant reply text ("" if none)."""
    if not OPENAI_API_KEY:
        raise EngineNotConfiguredError("OPENAI_API_KEY is not set")
    headers = {"Authorization": f"Bearer {OPENAI_API_KEY}", "Content-Type": "application/json"}
    body = {
        "model": model or OPENAI_MODEL,
        "messages": [],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if system_prompt:
        body["messages"].append({"role": "system", "content": system_prompt})
    body["messages"].append({"role": "user", "content": prompt})
    resp = requests.post(f"{OPENAI_BASE}/chat/completions", headers=headers, json=body, timeout=HTTP_TIMEOUT)
    resp.raise_for_status()
    j = resp.json()
    choices = j.get("choices") or [{}]
    content = (choices[0].get("message") or {}).get("content") or ""
    return content.strip()


# ---------- Speech ----------
def elevenlabs_tts_mp3(text, voice_id=None, model_id=None):
    """Request TTS from ElevenLabs. Returns bytes (mp3) and content-type."""
    if not ELEVENLABS_API_KEY:
        raise EngineNotConfiguredError("ELEVENLABS_API_KEY is not set")
    headers = {
        "xi-api-key": ELEVENLABS_API_KEY,
        "Content-Type": "application/json",
        "Accept": "audio/mpeg",
    }
    body = {
        "text": text,
        "model_id": model_id or ELEVENLABS_MODEL_ID,
        "voice_settings": ELEVENLABS_VOICE_SETTINGS,
    }
    url = f"{ELEVENLABS_BASE}/text-to-speech/{voice_id or ELEVENLABS_VOICE_ID}"
    resp = requests.post(url, headers=headers, json=body, timeout=HTTP_TIMEOUT)
    if not resp.ok:
        log.error("ElevenLabs API error: %s %s", resp.status_code, resp.text)
        raise UpstreamTTSError("elevenlabs", resp.status_code, resp.text)
    return resp.content, resp.headers.get("Content-Type", "audio/mpeg")


def openai_tts_mp3(text, voice=None, model=None):
    """Request TTS from OpenAI. Returns bytes (mp3) and content-type."""
    if not OPENAI_API_KEY:
        raise EngineNotConfiguredError("OPENAI_API_KEY is not set")
    headers = {
        "Authorization": f"Bearer {OPENAI_API_KEY}",
        "Content-Type": "application/json",
        "Accept": "audio/mpeg",
    }
    body = {
        "model": model or OPENAI_TTS_MODEL,
        "voice": voice or OPENAI_TTS_VOICE,
        "input": text,
    }
    resp = requests.post(f"{OPENAI_BASE}/audio/speech", headers=headers, json=body, timeout=HTTP_TIMEOUT)
    if not resp.ok:
        log.error("OpenAI speech API error: %s %s", resp.status_code, resp.text)
        raise UpstreamTTSError("openai", resp.status_code, resp.text)
    return resp.content, resp.headers.get("Content-Type", "audio/mpeg")


def gtts_mp3(text, lang=None):
    """Keyless fallback via Google Translate TTS. Returns bytes (mp3) and content-type."""
    buf = io.BytesIO()
    try:
        gTTS(text=text, lang=lang or GTTS_LANG).write_to_fp(buf)
    except gTTSError as e:
        log.error("gTTS error: %s", e)
        raise UpstreamTTSError("gtts", None, str(e)) from e
    return buf.getvalue(), "audio/mpeg"


def voice_configured(provider=None):
    provider = (provider or TTS_PROVIDER).lower()
    if provider == "elevenlabs":
        return bool(ELEVENLABS_API_KEY)
    if provider == "openai":
        return bool(OPENAI_API_KEY)
    return provider == "gtts"


def synthesize_speech(text, provider=None):
    """Dispatch to the configured TTS provider."""
    provider = (provider or TTS_PROVIDER).lower()
    if provider == "elevenlabs":
        return elevenlabs_tts_mp3(text)
    if provider == "openai":
        return openai_tts_mp3(text)
    if provider == "gtts":
        return gtts_mp3(text)
    raise EngineError(f"Unknown TTS provider: {provider} (expected one of {', '.join(TTS_PROVIDERS)})")
