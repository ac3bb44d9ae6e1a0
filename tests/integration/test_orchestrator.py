import asyncio

import pytest

from conftest import (
    FIXED_MS, FRAME, FakeAnthropic, FakeArchiver, FakeMediaService, FakeOpenAI, FakeStore, FakeVideo,
    FakeVision, connect_all
)
from core.exceptions import MediaAcquisitionError, ValidationError
from core.formatters import parse_timecode
from core.media import MediaInput

VIDEO = MediaInput(kind="video", path="clip.mp4", mime_type="video/mp4", preview_data_url=FRAME)


def _times(events):
    return [parse_timecode(event.time) for event in events]


def test_initialize_services_isolates_a_raising_adapter(orchestrator_factory):
    """One adapter blowing up during initialize never blocks the others."""
    orchestrator = orchestrator_factory(
        google_vision=FakeVision(raises=RuntimeError("dns failure")),
        openai=FakeOpenAI(connected=False),
        supabase=FakeStore(),
    )

    status = asyncio.run(orchestrator.initialize_services())

    assert status == {"supabase": True, "openai": False, "google_vision": False}


def test_full_session_merges_every_provider(orchestrator_factory):
    vision, openai, video = FakeVision(), FakeOpenAI(), FakeVideo()
    anthropic, store, archiver = FakeAnthropic(), FakeStore(), FakeArchiver()
    orchestrator = orchestrator_factory(google_vision=vision, openai=openai, google_video=video,
                                        anthropic=anthropic, supabase=store, github=archiver)

    async def scenario():
        await connect_all(vision, openai, video, anthropic, store, archiver)
        return await orchestrator.run_session(VIDEO, "negotiation")

    result = asyncio.run(scenario())

    assert result.session_id == f"blindspot_upload_{FIXED_MS}"
    assert result.timestamp == FIXED_MS
    assert result.media_type == "video"
    assert result.signals["facial_expression"].api_source == "google-vision"
    assert result.signals["voice_tone"].indicators == ["calm", "confident"]
    assert result.signals["posture"].api_source == "google-video-intelligence"
    assert "full-body-visible" in result.signals["posture"].indicators
    assert result.signals["gestures"].api_source == "google-vision-api"
    assert result.signals["gestures"].has_full_body is True
    assert result.signals["eye_movement"].api_source == "internal-eye-tracking"
    assert not result.has_failed_sources()

    assert _times(result.timeline) == sorted(_times(result.timeline))
    calls = {event.api_call for event in result.timeline}
    assert {"google-vision-faces", "openai-audio-analysis", "google-video-frame",
            "google-vision-gesture-analysis", "internal-eye-tracking", "anthropic-narrative"} <= calls

    detailed = {entry.event for entry in result.detailed_timeline}
    assert detailed == {"Facial pattern analysis", "Vocal tone analysis",
                        "Postural shift analysis", "Eye movement pattern analysis"}
    postural = next(e for e in result.detailed_timeline if e.event == "Postural shift analysis")
    assert "feet_position" in postural.body_language_cues

    assert result.narrative == "Anthropic narrative"
    assert result.narrative_generated is True
    assert result.supabase_id == "row-1"
    assert store.stored[0]["mode"] == "upload"
    assert result.github_url.endswith(f"{result.session_id}.md")


def test_failed_calls_fall_back_to_fixed_literals(orchestrator_factory):
    vision = FakeVision(fail_facial=True)
    openai = FakeOpenAI(fail_audio=True)
    video = FakeVideo(fail=True)
    orchestrator = orchestrator_factory(google_vision=vision, openai=openai, google_video=video)

    async def scenario():
        await connect_all(vision, openai, video)
        return await orchestrator.run_session(VIDEO, "meeting")

    result = asyncio.run(scenario())

    assert result.signals["facial_expression"].confidence == 0.85
    assert result.signals["voice_tone"].confidence == 0.72
    assert result.signals["posture"].confidence == 0.91
    assert result.signals["gestures"].confidence == 0.88
    assert all(result.signals[name].api_source == "fallback"
               for name in ("facial_expression", "voice_tone", "posture", "gestures"))
    assert result.signals["eye_movement"].confidence == 0.82


def test_unconfigured_providers_leave_signals_empty(orchestrator_factory):
    """With nothing connected only eye tracking contributes and the template narrative is used."""
    orchestrator = orchestrator_factory()

    result = asyncio.run(orchestrator.run_session(VIDEO, "meeting"))

    assert result.signals["facial_expression"].api_source == "none"
    assert result.signals["facial_expression"].confidence == 0.0
    assert result.trust_vector == pytest.approx(0.82 * 0.15)
    assert result.narrative_generated is False
    assert result.narrative.startswith("# Behavioral Analysis Report")
    assert [event.api_call for event in result.timeline] == [
        "internal-eye-tracking", "internal-eye-tracking", "template-narrative"
    ]
    low = [alert for alert in result.alerts if alert.type == "low-confidence"]
    assert len(low) == 4


def test_image_upload_skips_voice(orchestrator_factory):
    openai = FakeOpenAI()
    orchestrator = orchestrator_factory(openai=openai)
    image = MediaInput(kind="image", path="face.jpg", mime_type="image/jpeg", preview_data_url=FRAME)

    async def scenario():
        await connect_all(openai)
        return await orchestrator.run_session(image, "interview")

    result = asyncio.run(scenario())

    assert result.signals["voice_tone"].api_source == "none"
    assert not [call for call in openai.calls if call["op"] == "audio"]


def test_audio_upload_without_frame_uses_facial_fallback(orchestrator_factory):
    vision = FakeVision()
    orchestrator = orchestrator_factory(google_vision=vision)
    audio = MediaInput(kind="audio", path="call.mp3", mime_type="audio/mpeg")

    async def scenario():
        await connect_all(vision)
        return await orchestrator.run_session(audio, "sales")

    result = asyncio.run(scenario())

    assert result.signals["facial_expression"].api_source == "fallback"
    assert vision.calls == []


def test_gesture_failure_derives_gestures_from_posture(orchestrator_factory):
    vision = FakeVision(fail_gestures=True)
    video = FakeVideo()
    orchestrator = orchestrator_factory(google_vision=vision, google_video=video)

    async def scenario():
        await connect_all(vision, video)
        return await orchestrator.run_session(VIDEO, "meeting")

    result = asyncio.run(scenario())

    gestures = result.signals["gestures"]
    assert gestures.confidence == pytest.approx(0.84 * 0.9)
    assert gestures.indicators == ["hand_movements", "gesture_timing"]
    assert gestures.has_full_body is False
    assert "full-body-visible" not in result.signals["posture"].indicators


def test_text_session_applies_keyword_rules(orchestrator_factory):
    store = FakeStore()
    orchestrator = orchestrator_factory(supabase=store)
    text = "Subject leans forward with a genuine smile, arms crossed near the end"

    async def scenario():
        await connect_all(store)
        return await orchestrator.analyze_text(text, "interview")

    result = asyncio.run(scenario())

    assert result.session_id == f"blindspot_text_{FIXED_MS}"
    assert result.media_type == "text"
    assert result.signals["posture"].indicators == ["forward_lean", "engagement_posture"]
    assert result.signals["facial_expression"].confidence == 0.9
    assert result.signals["gestures"].indicators == ["defensive_posture", "closed_gestures"]
    assert result.trust_vector == pytest.approx(0.7725)
    assert [alert.type for alert in result.alerts] == ["defensive"]
    assert result.alerts[0].timestamp == "00:25"

    events = [event.event for event in result.timeline]
    assert events[0] == "Text analysis initiated"
    assert "Forward lean detected in text description" in events
    assert "Positive facial expression identified" in events
    assert result.detailed_timeline == []
    assert store.stored == [{"session_id": result.session_id, "mode": "text", "text_input": text}]


def test_text_session_adds_ai_cue_extraction_when_connected(orchestrator_factory):
    openai = FakeOpenAI()
    orchestrator = orchestrator_factory(openai=openai)

    async def scenario():
        await connect_all(openai)
        return await orchestrator.analyze_text("Calm conversation", "meeting")

    result = asyncio.run(scenario())

    assert [entry.event for entry in result.detailed_timeline] == ["AI text cue extraction"]
    assert "openai-text-analysis" in {event.api_call for event in result.timeline}
    # narrative call failed, so the template took over
    assert result.narrative_generated is False


def test_storage_failures_do_not_fail_the_session(orchestrator_factory):
    store, archiver = FakeStore(fail=True), FakeArchiver(fail=True)
    orchestrator = orchestrator_factory(supabase=store, github=archiver)

    async def scenario():
        await connect_all(store, archiver)
        return await orchestrator.run_session(VIDEO, "meeting")

    result = asyncio.run(scenario())

    assert result.supabase_id is None
    assert result.github_url is None
    assert result.narrative


class BrokenArchiver(FakeArchiver):
    async def archive_analysis(self, result):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


class BrokenStore(FakeStore):
    async def store_analysis(self, result, mode, text_input=None):
        raise KeyError("id")


def test_unexpected_storage_errors_are_logged_not_raised(orchestrator_factory, caplog):
    store, archiver = BrokenStore(), BrokenArchiver()
    orchestrator = orchestrator_factory(supabase=store, github=archiver)

    async def scenario():
        await connect_all(store, archiver)
        return await orchestrator.analyze_text("Subject leans forward", "meeting")

    result = asyncio.run(scenario())

    assert result.github_url is None
    assert result.supabase_id is None
    assert "Unexpected GitHub export failure" in caplog.text
    assert "Unexpected Supabase storage failure" in caplog.text


def test_unknown_context_preset_is_rejected(orchestrator_factory):
    orchestrator = orchestrator_factory()

    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.analyze_text("anything", "poker"))


def test_analyze_upload_uses_media_service(orchestrator_factory):
    media = FakeMediaService(upload=MediaInput(kind="image", path="a.png", mime_type="image/png",
                                               preview_data_url=FRAME))
    orchestrator = orchestrator_factory(media_service=media)

    result = asyncio.run(orchestrator.analyze_upload("a.png", "presentation"))

    assert result.media_type == "image"
    assert result.session_id.startswith("blindspot_upload_")


def test_live_session_captures_frames_until_stopped(orchestrator_factory, tmp_path):
    media = FakeMediaService()
    openai, store = FakeOpenAI(), FakeStore()
    orchestrator = orchestrator_factory(media_service=media, openai=openai, supabase=store)
    orchestrator.live_interval = 0.01

    async def scenario():
        await connect_all(openai, store)
        session = await orchestrator.start_live_session("meeting", recording_dir=str(tmp_path))
        assert session.active
        await asyncio.sleep(0.1)
        result = await session.stop()
        return session, result

    session, result = asyncio.run(scenario())

    assert not session.active
    assert session.frames_captured >= 1
    assert result.session_id == f"blindspot_{FIXED_MS}"
    assert result.media_type == "live"
    # recordings carry no microphone track
    assert result.signals["voice_tone"].api_source == "fallback"
    assert store.stored[0]["mode"] == "live"
    assert media.released == 1
    assert not media.camera_open


def test_live_session_reports_camera_failure(orchestrator_factory):
    media = FakeMediaService(camera_fails=MediaAcquisitionError("camera:0", "access denied"))
    orchestrator = orchestrator_factory(media_service=media)

    with pytest.raises(MediaAcquisitionError):
        asyncio.run(orchestrator.start_live_session("meeting"))
