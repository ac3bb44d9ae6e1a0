import asyncio

import cv2
import numpy as np
import pytest

from core import media as media_module
from core.exceptions import MediaAcquisitionError, UnsupportedMediaError
from core.media import MediaInput, MediaService, encode_frame

JPEG_PREFIX = "data:image/jpeg;base64,"


def _frame(value=0):
    return np.full((48, 64, 3), value, dtype=np.uint8)


class FakeCapture:
    def __init__(self, opened=True):
        self.opened = opened
        self.reads = 0
        self.released = False
        self.settings = {}

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.settings[prop] = value

    def get(self, prop):
        return self.settings.get(prop, 0)

    def read(self):
        self.reads += 1
        return True, _frame(self.reads % 255)

    def release(self):
        self.released = True


class FakeWriter:
    def __init__(self, path, fourcc, fps, size):
        self.path = path
        self.size = size
        self.frames = 0
        self.released = False

    def write(self, frame):
        self.frames += 1

    def release(self):
        self.released = True


@pytest.fixture
def fake_camera(monkeypatch):
    capture = FakeCapture()
    monkeypatch.setattr(media_module.cv2, "VideoCapture", lambda index: capture)
    monkeypatch.setattr(media_module.cv2, "VideoWriter", FakeWriter)
    return capture


def test_encode_frame_produces_jpeg_data_url():
    assert encode_frame(_frame()).startswith(JPEG_PREFIX)


def test_media_input_audio_defaults():
    assert MediaInput("video", "a.mp4", "video/mp4").has_audio is True
    assert MediaInput("image", "a.png", "image/png").has_audio is False
    assert MediaInput("video", "a.mp4", "video/mp4", has_audio_track=False).has_audio is False
    assert MediaInput("audio", "a.mp3", "audio/mpeg").has_visual is False


def test_image_upload_gets_inline_preview(tmp_path):
    path = tmp_path / "portrait.png"
    ok, buffer = cv2.imencode(".png", _frame(128))
    assert ok
    path.write_bytes(buffer.tobytes())

    media = MediaService().process_uploaded_file(str(path))

    assert media.kind == "image"
    assert media.mime_type == "image/png"
    assert media.preview_data_url.startswith("data:image/png;base64,")


def test_audio_upload_has_no_preview(tmp_path):
    path = tmp_path / "call.mp3"
    path.write_bytes(b"ID3")

    media = MediaService().process_uploaded_file(str(path))

    assert media.kind == "audio"
    assert media.preview_data_url is None
    assert media.has_audio is True


def test_video_upload_samples_a_preview_frame(tmp_path):
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    for index in range(10):
        writer.write(_frame(index * 20))
    writer.release()

    service = MediaService()
    media = service.process_uploaded_file(str(path))

    assert media.kind == "video"
    assert media.preview_data_url.startswith(JPEG_PREFIX)
    assert len(service.sample_frames(str(path), 3)) == 3


def test_unsupported_or_missing_upload_rejected(tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello", encoding="utf-8")

    with pytest.raises(UnsupportedMediaError):
        MediaService().process_uploaded_file(str(notes))
    with pytest.raises(UnsupportedMediaError):
        MediaService().process_uploaded_file(str(tmp_path / "missing.mp4"))


def test_camera_that_will_not_open_raises(monkeypatch):
    capture = FakeCapture(opened=False)
    monkeypatch.setattr(media_module.cv2, "VideoCapture", lambda index: capture)

    with pytest.raises(MediaAcquisitionError):
        MediaService().open_camera()
    assert capture.released


def test_capture_frame_without_camera_returns_none():
    assert MediaService().capture_frame() is None


def test_recording_writes_chunks_until_stopped(fake_camera, tmp_path):
    service = MediaService()
    target = str(tmp_path / "session.mp4")

    async def scenario():
        service.open_camera()
        service.start_recording(target)
        await asyncio.sleep(0.35)
        frame = service.capture_frame()
        writer = service._writer
        path = await service.stop_recording()
        return frame, writer, path

    frame, writer, path = asyncio.run(scenario())

    assert path == target
    assert writer.frames >= 2
    assert writer.released
    assert frame.startswith(JPEG_PREFIX)
    assert not service.is_recording

    service.release()
    assert fake_camera.released
    assert not service.camera_open


def test_stop_without_recording_returns_none():
    assert asyncio.run(MediaService().stop_recording()) is None


def test_recording_requires_open_camera(tmp_path):
    with pytest.raises(MediaAcquisitionError):
        MediaService().start_recording(str(tmp_path / "x.mp4"))
