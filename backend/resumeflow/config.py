from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    APP_NAME: str = "ResumeFlow"
    APP_ADDRESS: str = "0.0.0.0"
    APP_PORT: int = 8000
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_API_ENDPOINT: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    )
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_TOP_K: int = 40
    GEMINI_TOP_P: float = 0.95
    GEMINI_MAX_OUTPUT_TOKENS: int = 8192
    GEMINI_TIMEOUT: float = 60.0

    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "resumeflow"

    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CLIENT_EMAIL: Optional[str] = None
    FIREBASE_PRIVATE_KEY: Optional[str] = None
    FIREBASE_WEB_API_KEY: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def firebase_private_key(self) -> Optional[str]:
        # keys pasted into .env usually carry literal "\n" sequences
        if self.FIREBASE_PRIVATE_KEY is None:
            return None
        return self.FIREBASE_PRIVATE_KEY.replace("\\n", "\n")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
