import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import core.llm_logger as llm_logger_module  # noqa: E402
from core.analysis.orchestrator import AnalysisOrchestrator  # noqa: E402
from core.exceptions import AdapterError, PersistenceError, ArchivalError  # noqa: E402
from core.media import MediaInput  # noqa: E402
from core.models.analysis import (  # noqa: E402
    AnalysisResult, SignalData, TimelineEvent, DetailedTimelineEvent, Alert
)
from integrations.base import AdapterResult  # noqa: E402

FIXED_MS = 1700000000000
FRAME = "data:image/jpeg;base64,AAAA"


class FakeAdapter:
    """Adapter double: initialize() returns the configured outcome or raises it."""

    service_name = "fake"

    def __init__(self, connected: bool = True, raises: Optional[Exception] = None) -> None:
        self.will_connect = connected
        self.raises = raises
        self.connected = False
        self.calls: List[Dict[str, Any]] = []

    async def initialize(self) -> bool:
        if self.raises is not None:
            raise self.raises
        self.connected = self.will_connect
        return self.connected

    def _failure(self, operation: str) -> AdapterResult:
        return AdapterResult.failure(AdapterError(self.service_name, operation, RuntimeError("HTTP 500")))


class FakeVision(FakeAdapter):
    service_name = "google_vision"

    def __init__(self, facial: Optional[Dict[str, Any]] = None, gestures: Optional[Dict[str, Any]] = None,
                 fail_facial: bool = False, fail_gestures: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.facial = facial or {"confidence": 0.9, "indicators": ["joy", "eye_contact"]}
        self.gestures = gestures or {"confidence": 0.8, "indicators": ["open_palms"], "has_full_body": True}
        self.fail_facial = fail_facial
        self.fail_gestures = fail_gestures

    async def analyze_facial_expressions(self, image_data: str) -> AdapterResult:
        self.calls.append({"op": "facial", "image": image_data})
        if self.fail_facial:
            return self._failure("analyze_facial_expressions")
        return AdapterResult.success(dict(self.facial))

    async def analyze_gestures(self, image_data: str) -> AdapterResult:
        self.calls.append({"op": "gestures", "image": image_data})
        if self.fail_gestures:
            return self._failure("analyze_gestures")
        return AdapterResult.success(dict(self.gestures))


class FakeOpenAI(FakeAdapter):
    service_name = "openai"

    def __init__(self, audio: Optional[Dict[str, Any]] = None, fail_audio: bool = False,
                 fail_text: bool = False, narrative: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.audio = audio or {"confidence": 0.7, "emotions": ["calm", "confident"]}
        self.fail_audio = fail_audio
        self.fail_text = fail_text
        self.narrative = narrative

    async def analyze_audio(self, audio_path: str) -> AdapterResult:
        self.calls.append({"op": "audio", "path": audio_path})
        if self.fail_audio:
            return self._failure("analyze_audio")
        return AdapterResult.success(dict(self.audio))

    async def analyze_text(self, text: str, context: str) -> AdapterResult:
        self.calls.append({"op": "text", "text": text, "context": context})
        if self.fail_text:
            return self._failure("analyze_text")
        return AdapterResult.success({"confidence": 0.77, "indicators": ["forward_lean", "genuine_smile"]})

    async def generate_narrative(self, prompt: str) -> AdapterResult:
        self.calls.append({"op": "narrative", "prompt": prompt})
        if self.narrative is None:
            return self._failure("generate_narrative")
        return AdapterResult.success({"narrative": self.narrative})


class FakeAnthropic(FakeAdapter):
    service_name = "anthropic"

    def __init__(self, narrative: Optional[str] = "Anthropic narrative", **kwargs) -> None:
        super().__init__(**kwargs)
        self.narrative = narrative

    async def generate_narrative(self, prompt: str) -> AdapterResult:
        self.calls.append({"op": "narrative", "prompt": prompt})
        if self.narrative is None:
            return self._failure("generate_narrative")
        return AdapterResult.success({"narrative": self.narrative})


class FakeVideo(FakeAdapter):
    service_name = "google_video"

    def __init__(self, fail: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail = fail

    async def analyze_video(self, video_path: str) -> AdapterResult:
        self.calls.append({"op": "video", "path": video_path})
        if self.fail:
            return self._failure("analyze_video")
        return AdapterResult.success({
            "confidence": 0.84,
            "indicators": ["upright_posture", "open_posture"],
            "timeline": [{"timestamp": 6, "event": "Shoulder shift observed", "confidence": 0.7}],
        })


class FakeStore(FakeAdapter):
    service_name = "supabase"

    def __init__(self, fail: bool = False, rows: Optional[List[Dict[str, Any]]] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail = fail
        self.rows = rows or []
        self.stored: List[Dict[str, Any]] = []

    async def store_analysis(self, result: AnalysisResult, mode: str, text_input: Optional[str] = None) -> str:
        if self.fail:
            raise PersistenceError("insert", "blindspots_analyses", RuntimeError("connection reset"))
        self.stored.append({"session_id": result.session_id, "mode": mode, "text_input": text_input})
        return f"row-{len(self.stored)}"

    async def get_analyses(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.rows[:limit]


class FakeArchiver(FakeAdapter):
    service_name = "github"

    def __init__(self, fail: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail = fail
        self.archived: List[str] = []

    async def archive_analysis(self, result: AnalysisResult) -> str:
        if self.fail:
            raise ArchivalError("owner/blind-spot-analyses", f"analyses/{result.session_id}.md",
                                RuntimeError("HTTP 422"))
        self.archived.append(result.session_id)
        return f"https://github.com/owner/blind-spot-analyses/blob/main/analyses/{result.session_id}.md"


class FakeMediaService:
    """Camera and upload double that never touches a device."""

    def __init__(self, frame: Optional[str] = FRAME, camera_fails: Optional[Exception] = None,
                 upload: Optional[MediaInput] = None) -> None:
        self.frame = frame
        self.camera_fails = camera_fails
        self.upload = upload
        self.camera_open = False
        self.recording_path: Optional[str] = None
        self.frames_served = 0
        self.released = 0

    def open_camera(self, index: Optional[int] = None) -> None:
        if self.camera_fails is not None:
            raise self.camera_fails
        self.camera_open = True

    def start_recording(self, path: str) -> None:
        self.recording_path = path

    def capture_frame(self) -> Optional[str]:
        if not self.camera_open:
            return None
        self.frames_served += 1
        return self.frame

    async def stop_recording(self) -> Optional[str]:
        path, self.recording_path = self.recording_path, None
        return path

    def release(self) -> None:
        self.camera_open = False
        self.released += 1

    def process_uploaded_file(self, path: str) -> MediaInput:
        return self.upload or MediaInput(kind="video", path=path, mime_type="video/mp4", preview_data_url=self.frame)


async def connect_all(*adapters: FakeAdapter) -> None:
    for adapter in adapters:
        await adapter.initialize()


@pytest.fixture(autouse=True)
def isolated_llm_log(tmp_path, monkeypatch):
    """Keep the narrative debug log out of the project root."""
    monkeypatch.setattr(llm_logger_module, "_llm_logger",
                        llm_logger_module.LLMLogger(str(tmp_path / "llm_debug.log")))


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_MS


@pytest.fixture
def orchestrator_factory(fixed_clock):
    def _factory(**adapters: Any) -> AnalysisOrchestrator:
        adapters.setdefault("media_service", FakeMediaService())
        return AnalysisOrchestrator(clock=fixed_clock, **adapters)

    return _factory


@pytest.fixture
def result_factory():
    def _factory(confidences: Optional[Dict[str, float]] = None,
                 timeline: Optional[List[TimelineEvent]] = None,
                 detailed: Optional[List[DetailedTimelineEvent]] = None,
                 alerts: Optional[List[Alert]] = None,
                 context_preset: str = "meeting",
                 media_type: str = "video",
                 indicators: Optional[Dict[str, List[str]]] = None,
                 sources: Optional[Dict[str, str]] = None,
                 trust_vector: float = 0.8) -> AnalysisResult:
        confidences = confidences or {
            "facial_expression": 0.85, "voice_tone": 0.72, "posture": 0.9,
            "gestures": 0.8, "eye_movement": 0.82,
        }
        indicators = indicators or {}
        sources = sources or {}
        signals = {
            name: SignalData(value, indicators.get(name, ["baseline"]), sources.get(name, "google-vision"))
            for name, value in confidences.items()
        }
        return AnalysisResult(
            session_id="blindspot_test_1",
            timestamp=FIXED_MS,
            context_preset=context_preset,
            signals=signals,
            trust_vector=trust_vector,
            alerts=alerts or [],
            timeline=timeline or [],
            detailed_timeline=detailed or [],
            media_type=media_type,
        )

    return _factory
