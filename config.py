import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _database_url():
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user, password, host = os.getenv("DB_USER"), os.getenv("DB_PASS"), os.getenv("DB_HOST")
    if user and password and host:
        return (
            f"mongodb+srv://{quote_plus(user)}:{quote_plus(password)}@{host}/"
            "?retryWrites=true&w=majority"
        )
    return None


# MongoDB
DATABASE_URL = _database_url()
DATABASE_NAME = os.getenv("DATABASE_NAME", "eventhubDB")
DB_TIMEOUT_MS = int(os.getenv("DB_TIMEOUT_MS", "5000"))  # server selection timeout

# HTTP
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,https://event-hub-client-seven.vercel.app",
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
