#!/usr/bin/env python3
"""
server.py — Lena AI backend for Dentalni centar Dr Mećava (Render-ready)

Features:
 - POST /api/ask   : user message + Lena system prompt -> OpenAI chat -> {"answer": ...}
 - POST /api/voice : text -> ElevenLabs TTS -> audio/mpeg bytes (or {"audio": base64})
 - CORS locked to the clinic's websites
 - Exchange log (SQLAlchemy) readable by the admin via JWT-protected /api/conversations
 - NOTE: set OPENAI_API_KEY and ELEVENLABS_API_KEY in Render -> Environment
"""
import base64
import logging
import os
from datetime import datetime, timedelta, timezone

import jwt
from flask import Flask, Response, request, jsonify
from flask_cors import CORS
from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from werkzeug.security import check_password_hash

import lena_engine
from lena_prompts import load_system_prompt


# ---------------------------
# Configuration (ENV-friendly)
# ---------------------------
DEFAULT_SECRET_KEY = "change-me"
SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "12"))
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
# werkzeug hash, e.g. python -c "from werkzeug.security import generate_password_hash as g; print(g('pw'))"
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///lena.db")
LOG_EXCHANGES = os.getenv("LOG_EXCHANGES", "true").lower() in ("1", "true", "yes")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "https://www.drmecava.com,https://drmecava.com,https://drmecava.webnode.page",
    ).split(",")
    if o.strip()
]

MAX_MESSAGE_CHARS = int(os.getenv("MAX_MESSAGE_CHARS", "2000"))
MAX_VOICE_CHARS = int(os.getenv("MAX_VOICE_CHARS", "2500"))

PORT = int(os.environ.get("PORT", 10000))

# Client-facing messages (the widget is Serbian-only)
MSG_HEALTH = "Lena AI backend radi ✔"
MSG_MISSING_MESSAGE = "Nedostaje polje 'message'."
MSG_MESSAGE_TOO_LONG = "Poruka je preduga."
MSG_FALLBACK_ANSWER = "Nažalost, trenutno ne mogu da formulišem adekvatan odgovor."
MSG_AI_ERROR = "Greška na AI servisu. Pokušajte ponovo kasnije."
MSG_MISSING_TEXT = "Nedostaje polje 'text'."
MSG_TEXT_TOO_LONG = "Tekst je predug."
MSG_VOICE_NOT_CONFIGURED = "Glasovni servis nije konfigurisan."
MSG_VOICE_UPSTREAM = "Greška prilikom generisanja glasovnog odgovora."
MSG_VOICE_ERROR = "Greška na glasovnom servisu."

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("lena_server")

SYSTEM_PROMPT = load_system_prompt()
lena_engine.check_keys()

# ---------------------------
# Flask + DB setup
# ---------------------------
app = Flask(__name__)
CORS(
    app,
    origins=CORS_ORIGINS,
    methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.json.sort_keys = False

Base = declarative_base()
engine = create_engine(DATABASE_URL, echo=False, connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {})
SessionLocal = sessionmaker(bind=engine)


def _utcnow():
    return datetime.now(timezone.utc)


class Exchange(Base):
    __tablename__ = "exchanges"
    id = Column(Integer, primary_key=True)
    kind = Column(String(16))  # "ask" | "voice"
    request_text = Column(Text)
    response_text = Column(Text, default="")
    status = Column(String(16), default="ok")
    created_at = Column(DateTime, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "request": self.request_text,
            "response": self.response_text,
            "status": self.status,
            "time": self.created_at.isoformat() if self.created_at else None,
        }


Base.metadata.create_all(bind=engine)


def record_exchange(kind, request_text, response_text="", status="ok"):
    """Store one exchange; failures are logged and never reach the client."""
    if not LOG_EXCHANGES:
        return
    db = None
    try:
        db = SessionLocal()
        db.add(Exchange(kind=kind, request_text=request_text, response_text=response_text, status=status))
        db.commit()
    except Exception:
        if db is not None:
            db.rollback()
        log.exception("Failed to record %s exchange", kind)
    finally:
        if db is not None:
            db.close()

# ---------------------------
# JWT utilities
# ---------------------------
def create_token(subject):
    payload = {
        "sub": str(subject),
        "exp": _utcnow() + timedelta(hours=TOKEN_TTL_HOURS),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token):
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def admin_configured():
    return bool(ADMIN_PASSWORD_HASH) and SECRET_KEY != DEFAULT_SECRET_KEY


def auth_required(fn):
    def wrapper(*a, **k):
        if not admin_configured():
            log.warning("Admin endpoint hit but SECRET_KEY/ADMIN_PASSWORD_HASH are not configured")
            return jsonify({"success": False, "message": "Admin access is not configured"}), 401
        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return jsonify({"success": False, "message": "Missing token"}), 401
        token = auth.split(" ", 1)[1]
        data = verify_token(token)
        if not data or data.get("sub") != ADMIN_USERNAME:
            return jsonify({"success": False, "message": "Invalid/expired token"}), 401
        request.user = data
        return fn(*a, **k)
    wrapper.__name__ = fn.__name__
    return wrapper

# ---------------------------
# Health
# ---------------------------
@app.route("/", methods=["GET"])
def home():
    return Response(MSG_HEALTH, mimetype="text/plain")


@app.route("/status", methods=["GET"])
def status():
    return jsonify({
        "status": "online",
        "time": _utcnow().isoformat(),
        "voice_provider": lena_engine.TTS_PROVIDER,
        "voice_configured": lena_engine.voice_configured(),
    })

# ===============================
#  /api/ask – text answer
# ===============================
@app.route("/api/ask", methods=["POST"])
def api_ask():
    """
    Body JSON: { "message": "<user question>" }
    Returns: {"answer": "..."}
    """
    data = request.get_json(silent=True) or {}
    message = data.get("message") if isinstance(data, dict) else None
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": MSG_MISSING_MESSAGE}), 400
    if len(message) > MAX_MESSAGE_CHARS:
        return jsonify({"error": MSG_MESSAGE_TOO_LONG}), 400

    log.info("Question from user: %s", message)
    try:
        answer = lena_engine.openai_chat_reply(message, system_prompt=SYSTEM_PROMPT) or MSG_FALLBACK_ANSWER
    except Exception:
        log.exception("/api/ask failed")
        record_exchange("ask", message, status="error")
        return jsonify({"error": MSG_AI_ERROR}), 500

    log.info("Lena answered: %s", answer)
    record_exchange("ask", message, answer)
    return jsonify({"answer": answer})

# ======================================
#  /api/voice – TTS (audio)
# ======================================
def _voice_error(msg, code, as_json):
    if as_json:
        return jsonify({"error": msg}), code
    return Response(msg, status=code, mimetype="text/plain")


@app.route("/api/voice", methods=["POST"])
def api_voice():
    """
    Body JSON: { "text": "...", "format": "binary" | "base64" }
    Returns audio/mpeg bytes, or {"audio": "<base64>", "mimeType": "..."} for format=base64
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    as_json = str(data.get("format", "")).lower() == "base64"
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return _voice_error(MSG_MISSING_TEXT, 400, as_json)
    if len(text) > MAX_VOICE_CHARS:
        return _voice_error(MSG_TEXT_TOO_LONG, 400, as_json)

    if not lena_engine.voice_configured():
        log.error("Voice provider %s is not configured - no voice", lena_engine.TTS_PROVIDER)
        return _voice_error(MSG_VOICE_NOT_CONFIGURED, 500, as_json)

    log.info("Generating voice for text: %s ...", text[:120])
    try:
        audio_bytes, content_type = lena_engine.synthesize_speech(text)
    except lena_engine.UpstreamTTSError:
        record_exchange("voice", text, status="error")
        return _voice_error(MSG_VOICE_UPSTREAM, 500, as_json)
    except Exception:
        log.exception("/api/voice failed")
        record_exchange("voice", text, status="error")
        return _voice_error(MSG_VOICE_ERROR, 500, as_json)

    record_exchange("voice", text, f"{len(audio_bytes)} bytes {content_type}")

    if as_json:
        resp = jsonify({
            "audio": base64.b64encode(audio_bytes).decode("ascii"),
            "mimeType": content_type,
        })
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = Response(audio_bytes, mimetype=content_type)
    resp.headers["Content-Length"] = str(len(audio_bytes))
    resp.headers["Cache-Control"] = "no-store"
    return resp

# ---------------------------
# Admin: login & exchange log
# ---------------------------
@app.route("/auth/login", methods=["POST"])
def auth_login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    username = data.get("username")
    password = data.get("password")
    if not ADMIN_PASSWORD_HASH:
        log.warning("Login attempt but ADMIN_PASSWORD_HASH is not set")
        return jsonify({"success": False, "message": "Invalid username or password"}), 401
    if username == ADMIN_USERNAME and isinstance(password, str) and check_password_hash(ADMIN_PASSWORD_HASH, password):
        return jsonify({
            "success": True,
            "message": "Login successful",
            "token": create_token(username),
        })
    return jsonify({"success": False, "message": "Invalid username or password"}), 401


@app.route("/api/conversations", methods=["GET"])
@auth_required
def list_conversations():
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit, 500))
    db = SessionLocal()
    try:
        rows = db.query(Exchange).order_by(Exchange.id.desc()).limit(limit).all()
        return jsonify([r.to_dict() for r in rows])
    finally:
        db.close()


if __name__ == "__main__":
    log.info("Lena backend listening on port %s", PORT)
    app.run(host="0.0.0.0", port=PORT, threaded=True)
