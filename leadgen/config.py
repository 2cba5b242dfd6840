from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)


class Settings(BaseSettings):
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    COMFYUI_BASE_URL: str = "http://localhost:8188"
    COMFYUI_REQUEST_TIMEOUT_SECONDS: float = 30.0
    COMFYUI_POLL_INTERVAL_SECONDS: float = 1.0
    COMFYUI_POLL_TIMEOUT_SECONDS: float = 120.0
    # 1.0 keeps the interval constant; values above 1.0 grow it per poll.
    COMFYUI_POLL_BACKOFF_FACTOR: float = 1.0
    COMFYUI_POLL_MAX_INTERVAL_SECONDS: float | None = None
    COMFYUI_CHECKPOINT_NAME: str = "v1-5-pruned-emaonly-fp16.safetensors"

    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3"
    OLLAMA_REQUEST_TIMEOUT_SECONDS: float = 120.0
    OLLAMA_STRUCTURED_OUTPUT: bool = False

    @field_validator("COMFYUI_POLL_INTERVAL_SECONDS", "COMFYUI_POLL_TIMEOUT_SECONDS")
    @classmethod
    def require_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Poll interval and timeout must be positive")
        return value

    @field_validator("COMFYUI_POLL_BACKOFF_FACTOR")
    @classmethod
    def require_non_shrinking(cls, value: float) -> float:
        if value < 1.0:
            raise ValueError("COMFYUI_POLL_BACKOFF_FACTOR must be >= 1.0")
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
