# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Childcare Marketplace API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Server-sent events
    # Seconds of silence before a keep-alive ping frame is written to a stream
    sse_ping_interval: float = float(os.getenv("SSE_PING_INTERVAL", "30"))
    # Seconds a single write may block before the recipient is evicted (0 = no limit)
    sse_write_timeout: float = float(os.getenv("SSE_WRITE_TIMEOUT", "5"))
    # Frames buffered per stream before writers start waiting
    sse_queue_size: int = int(os.getenv("SSE_QUEUE_SIZE", "100"))

settings = Settings()  # Instantiate configuration
