from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    #ragic
    RAGIC_BASE_URL: str = "https://eu4.ragic.com/riveros"
    RAGIC_API_KEY: str = ""
    RAGIC_TIMEOUT_SECONDS: float = 30.0
    RECORD_LIST_LIMIT: int = 200

    #sesion
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    SESSION_COOKIE_NAME: str = "riveros_token"
    COOKIE_SECURE: bool = False

    VESSEL_TIMEZONE: str = "Europe/Berlin"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"

settings = Settings()
