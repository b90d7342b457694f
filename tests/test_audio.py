import os

import pytest

from meeting_agents.core.errors import InputError
from meeting_agents.services.audio import AudioResource, save_upload, validate_upload


def test_audio_resource_reports_file_state(audio_file, tmp_path):
    resource = AudioResource(audio_file)
    assert resource.exists()
    assert resource.size() > 0
    assert resource.name == "meeting.wav"

    missing = AudioResource(str(tmp_path / "nope.wav"))
    assert not missing.exists()
    assert missing.size() == 0


def test_validate_upload_rejects_bad_input(cfg):
    with pytest.raises(InputError):
        validate_upload("", 10, cfg)
    with pytest.raises(InputError, match="Unsupported audio format"):
        validate_upload("notes.txt", 10, cfg)
    with pytest.raises(InputError, match="empty"):
        validate_upload("meeting.wav", 0, cfg)

    small = cfg.model_copy(update={"max_upload_mb": 1})
    with pytest.raises(InputError, match="too large"):
        validate_upload("meeting.wav", 2 * 1024 * 1024, small)


def test_validate_upload_lowercases_extension(cfg):
    assert validate_upload("Meeting.MP3", 10, cfg) == ".mp3"


def test_save_upload_writes_under_storage_path(cfg):
    path = save_upload(b"fake audio", "standup.m4a", cfg)
    name = os.path.basename(path)
    assert os.path.dirname(path) == cfg.audio_storage_path
    assert name.startswith("audio_") and name.endswith(".m4a")
    with open(path, "rb") as f:
        assert f.read() == b"fake audio"
