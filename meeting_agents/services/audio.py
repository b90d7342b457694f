"""Audio resource accessor and upload storage used between the HTTP layer and the transcription stage."""
import os
import uuid
from datetime import datetime
from typing import Optional

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InputError

ALLOWED_EXTENSIONS = (".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm", ".ogg", ".flac")


class AudioResource:
    """Thin read-only view over an audio file on disk."""

    def __init__(self, path: str):
        self.path = str(path)

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def size(self) -> int:
        return os.path.getsize(self.path) if self.exists() else 0

    def __repr__(self) -> str:
        return f"AudioResource({self.path!r})"


def validate_upload(filename: Optional[str], size: int, cfg: Optional[Settings] = None) -> str:
    """Check extension and size of an upload. Returns the lower-cased extension; raises InputError."""
    cfg = cfg or default_settings
    if not filename:
        raise InputError("No audio file was provided")
    ext = os.path.splitext(filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise InputError(f"Unsupported audio format '{ext or filename}'. Allowed: {', '.join(ALLOWED_EXTENSIONS)}")
    if size <= 0:
        raise InputError("Audio file is empty")
    max_bytes = cfg.max_upload_mb * 1024 * 1024
    if size > max_bytes:
        raise InputError(f"Audio file too large: {size} bytes (max {cfg.max_upload_mb} MB)")
    return ext


def save_upload(content: bytes, filename: str, cfg: Optional[Settings] = None) -> str:
    """Validate and write an upload under audio_storage_path as audio_<timestamp>_<short-id><ext>."""
    cfg = cfg or default_settings
    ext = validate_upload(filename, len(content), cfg)
    os.makedirs(cfg.audio_storage_path, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d%H%M%S")
    path = os.path.join(cfg.audio_storage_path, f"audio_{stamp}_{uuid.uuid4().hex[:8]}{ext}")
    with open(path, "wb") as f:
        f.write(content)
    return path
