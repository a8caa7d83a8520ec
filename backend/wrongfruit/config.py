import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO async mode ("" picks eventlet or threading per platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game defaults (per-room overrides come with create-room)
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "10"))
    IMPOSTER_COUNT = int(os.environ.get("IMPOSTER_COUNT", "1"))
    DISCUSSION_SECONDS = int(os.environ.get("DISCUSSION_SECONDS", "60"))
    VOTING_SECONDS = int(os.environ.get("VOTING_SECONDS", "30"))
    MAX_ROUNDS = int(os.environ.get("MAX_ROUNDS", "3"))

    # Background countdowns are off under TESTING unless this is set.
    ENABLE_TIMERS_IN_TESTS = os.environ.get("ENABLE_TIMERS_IN_TESTS", "0") == "1"
