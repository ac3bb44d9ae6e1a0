#!/usr/bin/env python3
"""
Analysis orchestrator.

Runs one capture, upload or text session against the configured service
adapters, merges their outputs into an AnalysisResult, scores it and
performs best-effort persistence and archival.

Adapter failures come back as AdapterResult values; the orchestrator
substitutes fixed fallback signals for them. The only error raised to
callers is a media acquisition or media type failure.
"""

import asyncio
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Callable

from ..exceptions import AdapterError, ErrorRecovery, ValidationError
from ..formatters import format_timecode, parse_timecode
from ..media import MediaInput, MediaService
from ..models.analysis import (
    AnalysisResult, SignalData, TimelineEvent, DetailedTimelineEvent, Alert,
    CONTEXT_PRESETS, default_signals
)
from .narrative import NarrativeGenerator
from .signals import (
    EYE_TRACKING_SIGNAL, calculate_trust_vector, fallback_signal, generate_alerts
)

logger = logging.getLogger(__name__)

# Base signals for text sessions before keyword rules apply
TEXT_BASE_SIGNALS = {
    'facial_expression': (0.7, ['text_described_expressions']),
    'voice_tone': (0.6, ['described_vocal_cues']),
    'posture': (0.75, ['body_position_cues']),
    'gestures': (0.8, ['hand_gesture_descriptions']),
    'eye_movement': (0.65, ['gaze_pattern_descriptions']),
}


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CategoryOutcome:
    """Signals and timeline entries produced by one analysis category."""
    signals: Dict[str, SignalData] = field(default_factory=dict)
    events: List[TimelineEvent] = field(default_factory=list)
    detailed: List[DetailedTimelineEvent] = field(default_factory=list)

    def add_detailed(self, entry: DetailedTimelineEvent):
        """Detailed entries also appear as plain timeline events."""
        self.detailed.append(entry)
        self.events.append(TimelineEvent(entry.time, entry.event, entry.confidence, entry.api_call))


def _sort_by_time(events: list) -> list:
    return sorted(events, key=lambda event: parse_timecode(event.time))


class AnalysisOrchestrator:
    """Coordinates adapters, scoring and side effects for analysis sessions."""

    def __init__(self,
                 media_service: Optional[MediaService] = None,
                 openai=None,
                 anthropic=None,
                 google_vision=None,
                 google_video=None,
                 supabase=None,
                 github=None,
                 narrative: Optional[NarrativeGenerator] = None,
                 live_interval: float = 5,
                 clock: Callable[[], int] = _now_ms):
        """
        Args:
            media_service: Camera and upload handling
            openai, anthropic, google_vision, google_video: Analysis adapters (any may be None)
            supabase, github: Best-effort storage and archival adapters
            narrative: Narrative provider chain (built from the LLM adapters if omitted)
            live_interval: Seconds between live frame captures
            clock: Millisecond clock used for session ids and timestamps
        """
        self.media_service = media_service or MediaService()
        self.openai = openai
        self.anthropic = anthropic
        self.google_vision = google_vision
        self.google_video = google_video
        self.supabase = supabase
        self.github = github
        self.narrative = narrative or NarrativeGenerator(anthropic=anthropic, openai=openai)
        self.live_interval = live_interval
        self.clock = clock

    @property
    def adapters(self) -> Dict[str, Any]:
        """Configured adapters by name."""
        candidates = {
            'supabase': self.supabase,
            'github': self.github,
            'openai': self.openai,
            'anthropic': self.anthropic,
            'google_vision': self.google_vision,
            'google_video': self.google_video,
        }
        return {name: adapter for name, adapter in candidates.items() if adapter is not None}

    async def initialize_services(self) -> Dict[str, bool]:
        """
        Initialize every adapter concurrently.

        One failing or raising adapter never prevents the others from
        finishing.

        Returns:
            Mapping of adapter name to connection status
        """
        adapters = self.adapters
        outcomes = await asyncio.gather(*(adapter.initialize() for adapter in adapters.values()),
                                        return_exceptions=True)

        status = {}
        for name, outcome in zip(adapters, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"{name} initialization raised: {outcome}")
            status[name] = outcome is True

        connected = [name for name, ok in status.items() if ok]
        logger.info(f"Services initialized: {len(connected)}/{len(status)} connected ({', '.join(connected) or 'none'})")
        return status

    @staticmethod
    def _connected(adapter) -> bool:
        return adapter is not None and adapter.connected

    @staticmethod
    def _validate_preset(context_preset: str):
        if context_preset not in CONTEXT_PRESETS:
            raise ValidationError('context_preset', context_preset, f"one of {', '.join(CONTEXT_PRESETS)}")

    def _apply_fallback(self, outcome: CategoryOutcome, names: List[str], error: AdapterError):
        if not ErrorRecovery.should_fallback(error):
            raise error
        logger.warning(f"{error.message}; using fallback for {', '.join(names)}")
        for name in names:
            outcome.signals[name] = fallback_signal(name)

    # Category analyses

    async def _analyze_facial(self, frame: Optional[str]) -> CategoryOutcome:
        outcome = CategoryOutcome()
        if not self._connected(self.google_vision):
            return outcome

        outcome.events.append(TimelineEvent(format_timecode(0), 'Facial analysis started', 0.95, 'google-vision-init'))
        if frame is None:
            self._apply_fallback(outcome, ['facial_expression'],
                                 AdapterError('google_vision', 'analyze_facial_expressions',
                                              ValueError('media has no visual frame')))
            return outcome

        response = await self.google_vision.analyze_facial_expressions(frame)
        if not response.ok:
            self._apply_fallback(outcome, ['facial_expression'], response.error)
            return outcome

        data = response.payload
        outcome.signals['facial_expression'] = SignalData(data['confidence'], data['indicators'], 'google-vision')
        time_code = format_timecode(2)
        outcome.events.append(TimelineEvent(time_code, 'Micro-expressions detected in facial region',
                                            data['confidence'], 'google-vision-faces'))
        outcome.add_detailed(DetailedTimelineEvent(
            time=time_code,
            event='Facial pattern analysis',
            confidence=data['confidence'],
            api_call='google-vision-faces',
            phase='baseline',
            micro_expressions=list(data['indicators']),
            body_language_cues=['eyebrow_flash', 'lip_compression', 'nostril_flare'],
            contextual_notes='Initial facial expression baseline established',
        ))
        return outcome

    async def _analyze_voice(self, media: MediaInput) -> CategoryOutcome:
        outcome = CategoryOutcome()
        if not self._connected(self.openai) or media.kind == 'image':
            return outcome

        outcome.events.append(TimelineEvent(format_timecode(1), 'Vocal analysis started', 0.90, 'openai-whisper-init'))
        if not media.has_audio:
            self._apply_fallback(outcome, ['voice_tone'],
                                 AdapterError('openai', 'analyze_audio', ValueError('media has no audio track')))
            return outcome

        response = await self.openai.analyze_audio(media.path)
        if not response.ok:
            self._apply_fallback(outcome, ['voice_tone'], response.error)
            return outcome

        data = response.payload
        outcome.signals['voice_tone'] = SignalData(data['confidence'], data['emotions'], 'openai-whisper')
        time_code = format_timecode(3)
        outcome.events.append(TimelineEvent(time_code, 'Voice stress patterns detected',
                                            data['confidence'], 'openai-audio-analysis'))
        outcome.add_detailed(DetailedTimelineEvent(
            time=time_code,
            event='Vocal tone analysis',
            confidence=data['confidence'],
            api_call='openai-audio-analysis',
            phase='engagement',
            body_language_cues=['vocal_tremor', 'pace_changes', 'volume_variance'],
            contextual_notes='Voice analysis indicates emotional state changes',
        ))
        return outcome

    async def _analyze_body(self, media: MediaInput, frame: Optional[str]) -> CategoryOutcome:
        outcome = CategoryOutcome()
        if not self._connected(self.google_video):
            return outcome

        outcome.events.append(TimelineEvent(format_timecode(1), 'Postural analysis started', 0.88, 'google-video-init'))
        response = await self.google_video.analyze_video(media.path)
        if not response.ok:
            self._apply_fallback(outcome, ['posture', 'gestures'], response.error)
            return outcome

        data = response.payload
        posture = SignalData(data['confidence'], data['indicators'], 'google-video-intelligence')
        outcome.signals['posture'] = posture
        for observation in data.get('timeline', []):
            outcome.events.append(TimelineEvent(format_timecode(observation['timestamp']), observation['event'],
                                                observation['confidence'], 'google-video-frame'))

        gestures = None
        if self._connected(self.google_vision) and frame is not None:
            gesture_response = await self.google_vision.analyze_gestures(frame)
            if gesture_response.ok:
                gesture_data = gesture_response.payload
                gestures = SignalData(gesture_data['confidence'], gesture_data['indicators'],
                                      'google-vision-api', has_full_body=gesture_data['has_full_body'])
                if gesture_data['has_full_body']:
                    posture.indicators.append('full-body-visible')
                body_event = ('Full body posture detected with gesture analysis' if gesture_data['has_full_body']
                              else 'Upper body posture and gestures analyzed')
                outcome.events.append(TimelineEvent(format_timecode(4), body_event, gesture_data['confidence'],
                                                    'google-vision-gesture-analysis'))
            else:
                logger.warning(f"Gesture analysis failed, deriving gestures from posture: {gesture_response.error}")

        if gestures is None:
            gestures = SignalData(posture.confidence * 0.9, ['hand_movements', 'gesture_timing'],
                                  'google-video-intelligence', has_full_body=False)
        outcome.signals['gestures'] = gestures

        cues = ['forward_lean', 'shoulder_alignment', 'head_tilt']
        if gestures.has_full_body:
            cues.append('feet_position')
        outcome.add_detailed(DetailedTimelineEvent(
            time=format_timecode(4),
            event='Postural shift analysis',
            confidence=posture.confidence,
            api_call='google-video-analysis',
            phase='engagement',
            body_language_cues=cues,
            contextual_notes='Subject shows increased engagement through body positioning',
        ))
        return outcome

    def _analyze_eyes(self) -> CategoryOutcome:
        outcome = CategoryOutcome()
        outcome.signals['eye_movement'] = SignalData(EYE_TRACKING_SIGNAL.confidence,
                                                     list(EYE_TRACKING_SIGNAL.indicators),
                                                     EYE_TRACKING_SIGNAL.api_source)
        time_code = format_timecode(2)
        outcome.events.append(TimelineEvent(time_code, 'Eye accessing cues detected - up-left then down-right',
                                            0.82, 'internal-eye-tracking'))
        outcome.add_detailed(DetailedTimelineEvent(
            time=time_code,
            event='Eye movement pattern analysis',
            confidence=0.82,
            api_call='internal-eye-tracking',
            phase='challenge',
            body_language_cues=['eye_direction_up_left', 'eye_direction_down_right', 'pupil_dilation'],
            contextual_notes='Visual recall followed by internal dialogue processing',
        ))
        return outcome

    # Sessions

    async def run_session(self, media: MediaInput, context_preset: str,
                          session_id: Optional[str] = None,
                          media_type: Optional[str] = None) -> AnalysisResult:
        """
        Analyze one media input.

        Args:
            media: Decoded upload or recording
            context_preset: Interaction context
            session_id: Session id (defaults to an upload id)
            media_type: Media type recorded on the result (defaults to media.kind)

        Returns:
            Completed AnalysisResult; degraded signals carry api_source 'fallback'
        """
        self._validate_preset(context_preset)
        session_id = session_id or f"blindspot_upload_{self.clock()}"
        media_type = media_type or media.kind
        frame = media.preview_data_url
        logger.info(f"Running {media_type} session {session_id} ({context_preset})")

        outcomes = list(await asyncio.gather(
            self._analyze_facial(frame),
            self._analyze_voice(media),
            self._analyze_body(media, frame),
        ))
        outcomes.append(self._analyze_eyes())

        signals = default_signals()
        events: List[TimelineEvent] = []
        detailed: List[DetailedTimelineEvent] = []
        for outcome in outcomes:
            signals.update(outcome.signals)
            events.extend(outcome.events)
            detailed.extend(outcome.detailed)

        result = AnalysisResult(
            session_id=session_id,
            timestamp=self.clock(),
            context_preset=context_preset,
            signals=signals,
            trust_vector=calculate_trust_vector(signals),
            alerts=generate_alerts(signals),
            timeline=_sort_by_time(events),
            detailed_timeline=_sort_by_time(detailed),
            media_type=media_type,
        )

        await self._add_narrative(result)
        await self._persist(result, 'live' if media_type == 'live' else 'upload')
        return result

    async def analyze_upload(self, path: str, context_preset: str) -> AnalysisResult:
        """
        Classify and analyze an uploaded file.

        Raises:
            UnsupportedMediaError: Missing file or unsupported type
        """
        self._validate_preset(context_preset)
        media = self.media_service.process_uploaded_file(path)
        return await self.run_session(media, context_preset, session_id=f"blindspot_upload_{self.clock()}")

    async def analyze_text(self, text: str, context_preset: str) -> AnalysisResult:
        """
        Analyze a free-text description of an interaction.

        Keyword rules on the text always apply; a connected OpenAI adapter
        adds an AI cue extraction entry to the timeline.
        """
        self._validate_preset(context_preset)
        session_id = f"blindspot_text_{self.clock()}"
        lowered = text.lower()

        signals = {name: SignalData(confidence, list(indicators), 'text-analysis')
                   for name, (confidence, indicators) in TEXT_BASE_SIGNALS.items()}
        events = [TimelineEvent(format_timecode(1), 'Text analysis initiated', 0.95, 'text-processor')]
        detailed: List[DetailedTimelineEvent] = []
        pattern_alerts: List[Alert] = []

        if 'lean' in lowered or 'forward' in lowered:
            signals['posture'] = SignalData(0.85, ['forward_lean', 'engagement_posture'], 'ai-text-analysis')
            events.append(TimelineEvent(format_timecode(15), 'Forward lean detected in text description',
                                        0.85, 'ai-text-pattern'))

        if 'smile' in lowered or 'grin' in lowered:
            signals['facial_expression'] = SignalData(0.9, ['genuine_smile', 'positive_expression'], 'ai-text-analysis')
            events.append(TimelineEvent(format_timecode(20), 'Positive facial expression identified',
                                        0.9, 'ai-text-pattern'))

        if 'cross' in lowered and 'arm' in lowered:
            signals['gestures'] = SignalData(0.8, ['defensive_posture', 'closed_gestures'], 'ai-text-analysis')
            pattern_alerts.append(Alert('defensive', 'medium', format_timecode(25),
                                        'Defensive body language detected', 0.8))

        if self._connected(self.openai):
            response = await self.openai.analyze_text(text, context_preset)
            if response.ok:
                cue_outcome = CategoryOutcome()
                cue_outcome.add_detailed(DetailedTimelineEvent(
                    time=format_timecode(2),
                    event='AI text cue extraction',
                    confidence=response.payload['confidence'],
                    api_call='openai-text-analysis',
                    phase='baseline',
                    body_language_cues=list(response.payload['indicators']),
                    contextual_notes='Behavioral cues extracted from the text description',
                ))
                events.extend(cue_outcome.events)
                detailed.extend(cue_outcome.detailed)
            else:
                logger.warning(f"AI text analysis failed, using pattern matching only: {response.error}")

        result = AnalysisResult(
            session_id=session_id,
            timestamp=self.clock(),
            context_preset=context_preset,
            signals=signals,
            trust_vector=calculate_trust_vector(signals),
            alerts=generate_alerts(signals) + pattern_alerts,
            timeline=_sort_by_time(events),
            detailed_timeline=_sort_by_time(detailed),
            media_type='text',
        )

        await self._add_narrative(result)
        await self._persist(result, 'text', text_input=text)
        logger.info(f"📝 Text analysis completed: {session_id}")
        return result

    async def start_live_session(self, context_preset: str,
                                 recording_dir: Optional[str] = None) -> 'LiveSession':
        """
        Open the camera and start recording with periodic frame capture.

        Raises:
            MediaAcquisitionError: Camera could not be opened
        """
        self._validate_preset(context_preset)
        session_id = f"blindspot_{self.clock()}"
        path = os.path.join(recording_dir or tempfile.gettempdir(), f"{session_id}.mp4")

        session = LiveSession(self, session_id, context_preset, path, self.live_interval)
        session.start()
        return session

    # Side effects

    async def _add_narrative(self, result: AnalysisResult):
        narrative, source = await self.narrative.generate(result)
        result.narrative = narrative
        result.narrative_generated = source != 'template'
        result.timeline.append(TimelineEvent(format_timecode(5), 'Narrative analysis completed',
                                             result.trust_vector, f"{source}-narrative"))
        result.timeline = _sort_by_time(result.timeline)

    async def _persist(self, result: AnalysisResult, mode: str, text_input: Optional[str] = None):
        """Best-effort storage and archival; failures are logged only."""
        if self._connected(self.supabase):
            try:
                result.supabase_id = await self.supabase.store_analysis(result, mode, text_input)
            except Exception as e:
                if ErrorRecovery.is_optional_failure(e):
                    logger.warning(f"Supabase storage failed: {e}")
                else:
                    logger.warning(f"Unexpected Supabase storage failure: {e}", exc_info=True)

        if self._connected(self.github):
            try:
                result.github_url = await self.github.archive_analysis(result)
            except Exception as e:
                if ErrorRecovery.is_optional_failure(e):
                    logger.warning(f"GitHub export failed: {e}")
                else:
                    logger.warning(f"Unexpected GitHub export failure: {e}", exc_info=True)


class LiveSession:
    """A camera session with a cancellable periodic frame capture."""

    def __init__(self, orchestrator: AnalysisOrchestrator, session_id: str, context_preset: str,
                 recording_path: str, interval: float):
        self.orchestrator = orchestrator
        self.media_service = orchestrator.media_service
        self.session_id = session_id
        self.context_preset = context_preset
        self.recording_path = recording_path
        self.interval = interval
        self.frames_captured = 0
        self.latest_frame: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None

    def start(self):
        """Open the camera, start recording and schedule frame capture."""
        self.media_service.open_camera()
        try:
            self.media_service.start_recording(self.recording_path)
        except Exception:
            self.media_service.release()
            raise
        self._task = asyncio.get_running_loop().create_task(self._capture_loop())
        logger.info(f"🔴 Live analysis started: {self.session_id}")

    async def _capture_loop(self):
        while True:
            await asyncio.sleep(self.interval)
            frame = self.media_service.capture_frame()
            if frame is not None:
                self.latest_frame = frame
                self.frames_captured += 1
                logger.debug(f"Live frame {self.frames_captured} captured for {self.session_id}")

    async def stop(self) -> AnalysisResult:
        """
        Cancel frame capture, finish the recording and analyze it.

        Returns:
            AnalysisResult with media type 'live'
        """
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        try:
            frame = self.latest_frame or self.media_service.capture_frame()
            path = await self.media_service.stop_recording() or self.recording_path
            media = MediaInput(kind='video', path=path, mime_type='video/mp4',
                               preview_data_url=frame, has_audio_track=False)
            result = await self.orchestrator.run_session(media, self.context_preset,
                                                         session_id=self.session_id, media_type='live')
        finally:
            self.media_service.release()

        logger.info(f"⏹️ Live analysis stopped: {self.session_id} ({self.frames_captured} frames)")
        return result
