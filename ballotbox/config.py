import os
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent  # project root (where wsgi.py is)
load_dotenv(BASE_DIR / ".env")

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///" + str(BASE_DIR / "ballotbox.db"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_MIN", "30"))
    )
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(
        days=int(os.getenv("JWT_REFRESH_TOKEN_EXPIRES_DAYS", "7"))
    )
    # EventSource can't set headers, so the feed streams accept ?jwt=
    JWT_TOKEN_LOCATION = ["headers", "query_string"]
    JWT_QUERY_STRING_NAME = "jwt"

    # Anonymous voter sessions
    VOTER_SESSION_EXPIRES = timedelta(
        minutes=int(os.getenv("VOTER_SESSION_EXPIRES_MIN", "60"))
    )

    # Tokens
    TOKEN_BATCH_MAX = int(os.getenv("TOKEN_BATCH_MAX", "500"))

    # Vote transaction retries on lock contention / dropped connections
    VOTE_MAX_ATTEMPTS = int(os.getenv("VOTE_MAX_ATTEMPTS", "3"))
    VOTE_RETRY_BACKOFF_SECONDS = float(os.getenv("VOTE_RETRY_BACKOFF_SECONDS", "0.05"))

    # Live feed (SSE)
    FEED_KEEPALIVE_SECONDS = float(os.getenv("FEED_KEEPALIVE_SECONDS", "15"))
    # How often an idle stream checks the database for writes made by other processes
    FEED_POLL_SECONDS = float(os.getenv("FEED_POLL_SECONDS", "2"))
    FEED_QUEUE_SIZE = int(os.getenv("FEED_QUEUE_SIZE", "16"))

    DEFAULT_PHOTO_URL = os.getenv("DEFAULT_PHOTO_URL", "https://picsum.photos/200")

    SWAGGER = {"title": "Ballotbox API", "uiversion": 3}
