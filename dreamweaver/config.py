import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration, passed explicitly to the service."""

    openai_api_key: Optional[str] = None
    model_name: str = "gpt-4o-mini"
    report_temperature: float = 0.7
    chat_temperature: float = 0.8
    request_timeout: float = Field(default=60.0, gt=0)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Read settings from the environment (and a .env file if present)."""
        if dotenv:
            load_dotenv()

        values = {
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "model_name": os.getenv("DREAM_MODEL"),
            "report_temperature": os.getenv("DREAM_REPORT_TEMPERATURE"),
            "chat_temperature": os.getenv("DREAM_CHAT_TEMPERATURE"),
            "request_timeout": os.getenv("DREAM_REQUEST_TIMEOUT"),
            "log_level": os.getenv("DREAM_LOG_LEVEL"),
        }
        origins = os.getenv("DREAM_CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        return cls(**{key: value for key, value in values.items() if value is not None})
