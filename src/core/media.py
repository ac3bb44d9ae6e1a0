#!/usr/bin/env python3
"""
Media capture and encoding.

Wraps OpenCV camera access, chunked recording to an mp4 file, frame
sampling from video files and classification of uploaded files. Frames
leave this module as JPEG data URLs.
"""

import asyncio
import base64
import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2

from .exceptions import MediaAcquisitionError, UnsupportedMediaError

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = ('image', 'video', 'audio')
RECORDING_CHUNK_SECONDS = 0.1


@dataclass
class MediaInput:
    """A decoded upload or recording ready for analysis."""
    kind: str  # image, video, audio
    path: str
    mime_type: str
    preview_data_url: Optional[str] = None
    has_audio_track: Optional[bool] = None

    @property
    def has_audio(self) -> bool:
        if self.has_audio_track is not None:
            return self.has_audio_track
        return self.kind in ('audio', 'video')

    @property
    def has_visual(self) -> bool:
        return self.kind in ('image', 'video')


def encode_frame(frame, quality: int = 80) -> str:
    """Encode a BGR frame as a JPEG data URL."""
    ok, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return f"data:image/jpeg;base64,{base64.b64encode(buffer.tobytes()).decode('ascii')}"


def file_to_data_url(path: str, mime_type: str) -> str:
    with open(path, 'rb') as f:
        return f"data:{mime_type};base64,{base64.b64encode(f.read()).decode('ascii')}"


class MediaService:
    """Camera, recorder and file decoder."""

    def __init__(self, camera_index: int = 0, frame_width: int = 1280,
                 frame_height: int = 720, jpeg_quality: int = 80, record_fps: float = 10.0):
        self.camera_index = camera_index
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.jpeg_quality = jpeg_quality
        self.record_fps = record_fps

        self._capture = None
        self._writer = None
        self._record_task: Optional[asyncio.Task] = None
        self._recording_path: Optional[str] = None
        self._last_frame = None

    @property
    def camera_open(self) -> bool:
        return self._capture is not None

    @property
    def is_recording(self) -> bool:
        return self._record_task is not None

    def open_camera(self, index: Optional[int] = None) -> None:
        """
        Open the camera at 1280x720.

        Raises:
            MediaAcquisitionError: Device missing or access denied
        """
        index = self.camera_index if index is None else index
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            logger.error(f"Camera {index} could not be opened")
            raise MediaAcquisitionError(f"camera:{index}", "device could not be opened or access was denied")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)
        self._capture = capture
        logger.info(f"📹 Camera {index} opened")

    def capture_frame(self) -> Optional[str]:
        """
        Grab the current camera frame.

        Returns:
            JPEG data URL, or None when no camera is open or no frame is available
        """
        if self._capture is None:
            return None

        frame = self._last_frame
        if not self.is_recording or frame is None:
            ok, frame = self._capture.read()
            if not ok:
                logger.warning("Camera returned no frame")
                return None
        return encode_frame(frame, self.jpeg_quality)

    def start_recording(self, path: str) -> None:
        """
        Start writing camera frames to an mp4 file in 100 ms chunks.

        Must be called from a running event loop.
        """
        if self._capture is None:
            raise MediaAcquisitionError(f"camera:{self.camera_index}", "camera is not open")
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.frame_width
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.frame_height
        fourcc = cv2.VideoWriter_fourcc(*'mp4v')
        self._writer = cv2.VideoWriter(path, fourcc, self.record_fps, (width, height))
        self._recording_path = path
        self._record_task = asyncio.get_running_loop().create_task(self._record_loop())
        logger.info(f"🔴 Recording started: {path}")

    async def _record_loop(self):
        while True:
            ok, frame = self._capture.read()
            if ok:
                self._last_frame = frame
                self._writer.write(frame)
            await asyncio.sleep(RECORDING_CHUNK_SECONDS)

    async def stop_recording(self) -> Optional[str]:
        """
        Stop the recorder and close the file.

        Returns:
            Path of the recording, or None when nothing was recording
        """
        if self._record_task is None:
            return None

        self._record_task.cancel()
        try:
            await self._record_task
        except asyncio.CancelledError:
            pass
        self._record_task = None

        if self._writer is not None:
            self._writer.release()
            self._writer = None

        path, self._recording_path = self._recording_path, None
        logger.info(f"⏹️ Recording stopped: {path}")
        return path

    def sample_frames(self, path: str, samples: int = 5) -> List[Tuple[float, str]]:
        """
        Evenly spaced frames from a video file.

        Args:
            path: Video file path
            samples: Number of frames to take

        Returns:
            List of (seconds, JPEG data URL) pairs
        """
        capture = cv2.VideoCapture(path)
        if not capture.isOpened():
            capture.release()
            raise UnsupportedMediaError(path, 'video')

        try:
            fps = capture.get(cv2.CAP_PROP_FPS) or 30.0
            frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0
            duration = frame_count / fps if fps > 0 else 0.0
            interval = duration / samples if samples else 0.0

            frames = []
            for i in range(samples):
                seconds = i * interval
                capture.set(cv2.CAP_PROP_POS_MSEC, seconds * 1000)
                ok, frame = capture.read()
                if not ok:
                    logger.debug(f"No frame at {seconds:.2f}s in {path}")
                    continue
                frames.append((seconds, encode_frame(frame, self.jpeg_quality)))
            return frames
        finally:
            capture.release()

    def process_uploaded_file(self, path: str) -> MediaInput:
        """
        Classify an uploaded file by mime prefix.

        Raises:
            UnsupportedMediaError: Missing file or a type other than image/video/audio
        """
        if not os.path.isfile(path):
            raise UnsupportedMediaError(path)

        mime_type, _ = mimetypes.guess_type(path)
        kind = mime_type.split('/')[0] if mime_type else None
        if kind not in SUPPORTED_KINDS:
            raise UnsupportedMediaError(path, mime_type)

        preview = None
        if kind == 'image':
            preview = file_to_data_url(path, mime_type)
        elif kind == 'video':
            try:
                frames = self.sample_frames(path, 1)
                preview = frames[0][1] if frames else None
            except UnsupportedMediaError:
                logger.warning(f"Could not decode a preview frame from {path}")

        logger.info(f"Processed upload {os.path.basename(path)} as {kind} ({mime_type})")
        return MediaInput(kind=kind, path=path, mime_type=mime_type, preview_data_url=preview)

    def release(self) -> None:
        """Release the camera and any open writer."""
        if self._writer is not None:
            self._writer.release()
            self._writer = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._last_frame = None
