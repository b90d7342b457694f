import os
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()

PLACEHOLDER_API_KEY = "your_openai_api_key"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Application settings loaded from environment: remote AI credentials and models, local speech engine,
    NLP policy knobs (intent threshold, top-N sizes), scheduling defaults and storage paths.
    Every stage takes a Settings instance so tests can build their own."""
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    chat_model: str = os.getenv("CHAT_MODEL", "gpt-4o-mini")
    transcription_model: str = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
    remote_timeout_seconds: float = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "300"))  # 5 min for long recordings
    remote_max_retries: int = int(os.getenv("REMOTE_MAX_RETRIES", "3"))
    remote_json_retries: int = int(os.getenv("REMOTE_JSON_RETRIES", "1"))

    language: str = os.getenv("LANGUAGE", "es")
    whisper_model: str = os.getenv("WHISPER_MODEL", "base")
    whisper_device: str = os.getenv("WHISPER_DEVICE", "cpu")
    whisper_compute_type: str = os.getenv("WHISPER_COMPUTE_TYPE", "int8")
    transcription_placeholder: bool = _env_bool("TRANSCRIPTION_PLACEHOLDER", "true")

    intent_threshold: float = float(os.getenv("INTENT_THRESHOLD", "0.7"))
    key_topics: int = int(os.getenv("KEY_TOPICS", "10"))
    summary_sentences: int = int(os.getenv("SUMMARY_SENTENCES", "5"))
    key_points: int = int(os.getenv("KEY_POINTS", "5"))

    task_default_due_days: int = int(os.getenv("TASK_DEFAULT_DUE_DAYS", "14"))
    plan_default_days: int = int(os.getenv("PLAN_DEFAULT_DAYS", "14"))
    contingency_plan_days: int = int(os.getenv("CONTINGENCY_PLAN_DAYS", "30"))

    audio_storage_path: str = os.getenv("AUDIO_STORAGE_PATH", os.path.join("data", "audio"))
    data_root: str = os.getenv("DATA_ROOT", "data")
    persist_tracking: bool = _env_bool("PERSIST_TRACKING", "false")
    max_upload_mb: int = int(os.getenv("MAX_UPLOAD_MB", "50"))
    prompt_version: str = os.getenv("PROMPT_VERSION", "v1")

    @field_validator(
        "remote_timeout_seconds",
        "key_topics",
        "summary_sentences",
        "key_points",
        "task_default_due_days",
        "plan_default_days",
        "contingency_plan_days",
        "max_upload_mb",
    )
    @classmethod
    def must_be_positive(cls, v):
        """Reject zero or negative sizes and durations coming from env."""
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("remote_max_retries", "remote_json_retries")
    @classmethod
    def must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("intent_threshold")
    @classmethod
    def must_be_probability(cls, v):
        """Classifier confidences are probabilities, so the threshold must lie in (0, 1]."""
        if not 0 < v <= 1:
            raise ValueError("must be in (0, 1]")
        return v

    def remote_configured(self) -> bool:
        """True when an OpenAI key is set and is not the .env.example placeholder."""
        key = (self.openai_api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


settings = Settings()
