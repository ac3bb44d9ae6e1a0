#!/usr/bin/env python3
"""
Google Cloud Vision integration.

Calls the images:annotate REST endpoint with aiohttp and maps face,
label and object annotations to behavioral indicators.
"""

import logging
import re
from typing import List, Dict, Optional, Any

import aiohttp

from .base import ServiceAdapter, AdapterResult

logger = logging.getLogger(__name__)

VISION_URL = "https://vision.googleapis.com/v1/images:annotate"

LIKELIHOOD_CONFIDENCE = {
    'VERY_LIKELY': 0.95,
    'LIKELY': 0.75,
    'POSSIBLE': 0.5,
    'UNLIKELY': 0.25,
    'VERY_UNLIKELY': 0.05,
    'UNKNOWN': 0.5,
}

EMOTIONS = ['joy', 'sorrow', 'anger', 'surprise']

FULL_BODY_LABELS = ['standing', 'sitting', 'full body', 'whole body', 'feet', 'shoes', 'legs']
LOWER_BODY_LABELS = ['feet', 'legs', 'shoes', 'stance']
GESTURE_LABELS = ['gesture', 'pointing', 'waving', 'hand']


def likelihood_to_confidence(likelihood: Optional[str]) -> float:
    return LIKELIHOOD_CONFIDENCE.get(likelihood or 'UNKNOWN', 0.5)


def strip_data_url(image_data: str) -> str:
    """Base64 payload of a data URL (plain base64 passes through)."""
    return re.sub(r'^data:[\w/+.-]+;base64,', '', image_data)


def parse_face_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a FACE_DETECTION + LABEL_DETECTION response to facial indicators.

    Returns:
        Dict with indicators, confidence and emotions
    """
    faces = response.get('faceAnnotations') or []
    labels = response.get('labelAnnotations') or []

    indicators: List[str] = []
    emotions: List[Dict[str, Any]] = []
    confidence = 0.0

    if faces:
        face = faces[0]
        for emotion in EMOTIONS:
            likelihood = face.get(f'{emotion}Likelihood', 'UNKNOWN')
            if likelihood != 'VERY_UNLIKELY':
                emotions.append({'emotion': emotion, 'confidence': likelihood_to_confidence(likelihood)})

        if face.get('headwearLikelihood') == 'VERY_UNLIKELY' and face.get('blurredLikelihood') == 'VERY_UNLIKELY':
            indicators.append('clear-facial-visibility')
        if face.get('landmarkingConfidence', 0) > 0.8:
            indicators.append('facial-landmark-detection')
        if abs(face.get('rollAngle', 0)) > 5:
            indicators.append('head-tilt-detected')
        if abs(face.get('panAngle', 0)) > 10:
            indicators.append('head-turn-detected')

        confidence = face.get('detectionConfidence') or 0.85

    if not emotions:
        emotions.append({'emotion': 'neutral', 'confidence': 0.8})

    for label in labels:
        description = label.get('description', '').lower()
        if any(word in description for word in ('face', 'person', 'expression')):
            indicators.append(description.replace(' ', '-'))
        if any(word in description for word in FULL_BODY_LABELS):
            indicators.append(f"full-body-{description.replace(' ', '-')}")

    return {
        'indicators': indicators or ['baseline-expression'],
        'confidence': confidence,
        'emotions': emotions,
    }


def parse_gesture_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a LABEL_DETECTION + OBJECT_LOCALIZATION response to gesture data.

    Returns:
        Dict with indicators, confidence, gestures and has_full_body
    """
    labels = response.get('labelAnnotations') or []
    objects = response.get('localizedObjectAnnotations') or []

    indicators: List[str] = []
    gestures: List[Dict[str, Any]] = []
    has_full_body = False

    for label in labels:
        description = label.get('description', '').lower()

        if any(word in description for word in ('standing', 'sitting', 'full body', 'whole body')):
            has_full_body = True
            indicators.append('full-body-visible')
        if 'torso' in description or 'upper body' in description:
            indicators.append('upper-body-visible')
        if any(word in description for word in LOWER_BODY_LABELS):
            has_full_body = True
            indicators.append('lower-body-visible')
        if any(word in description for word in GESTURE_LABELS):
            gestures.append({
                'type': description.replace(' ', '_'),
                'confidence': label.get('score') or 0.7,
                'timestamp': 0,
            })

    for obj in objects:
        if obj.get('name', '').lower() != 'person':
            continue
        vertices = (obj.get('boundingPoly') or {}).get('normalizedVertices') or []
        if len(vertices) >= 4:
            height = abs(vertices[2].get('y', 0) - vertices[0].get('y', 0))
            if height > 0.7:
                has_full_body = True
                indicators.append('full-person-detected')

    return {
        'indicators': indicators or ['partial-body-view'],
        'confidence': 0.85 if has_full_body else 0.65,
        'gestures': gestures or [{'type': 'minimal_movement', 'confidence': 0.5, 'timestamp': 0}],
        'has_full_body': has_full_body,
    }


class GoogleVisionAdapter(ServiceAdapter):
    """Google Vision REST client."""

    service_name = 'google_vision'

    def __init__(self, api_key: Optional[str] = None, timeout: int = 30):
        super().__init__()
        self.api_key = api_key
        self.timeout = timeout

    async def _connect(self) -> bool:
        if not self.api_key:
            logger.warning("Google API key missing")
            return False
        return True

    async def _annotate(self, image_data: str, features: List[Dict[str, Any]]) -> Dict[str, Any]:
        """POST one annotate request and return its first response."""
        body = {
            'requests': [{
                'image': {'content': strip_data_url(image_data)},
                'features': features,
            }]
        }
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.post(VISION_URL, params={'key': self.api_key}, json=body) as response:
                response.raise_for_status()
                data = await response.json()

        responses = data.get('responses') or [{}]
        first = responses[0] or {}
        if 'error' in first:
            raise ValueError(f"Google Vision API error: {first['error'].get('message', first['error'])}")
        return first

    async def analyze_facial_expressions(self, image_data: str) -> AdapterResult:
        """
        Facial expression analysis of one frame.

        Args:
            image_data: JPEG data URL or base64 string

        Returns:
            AdapterResult with {indicators, confidence, emotions}
        """
        async def request() -> Dict[str, Any]:
            response = await self._annotate(image_data, [
                {'type': 'FACE_DETECTION', 'maxResults': 5},
                {'type': 'LABEL_DETECTION', 'maxResults': 10},
            ])
            return parse_face_response(response)

        return await self._call('analyze_facial_expressions', request)

    async def analyze_gestures(self, image_data: str) -> AdapterResult:
        """
        Body visibility and gesture analysis of one frame.

        Returns:
            AdapterResult with {indicators, confidence, gestures, has_full_body}
        """
        async def request() -> Dict[str, Any]:
            response = await self._annotate(image_data, [
                {'type': 'LABEL_DETECTION', 'maxResults': 20},
                {'type': 'OBJECT_LOCALIZATION', 'maxResults': 10},
            ])
            return parse_gesture_response(response)

        return await self._call('analyze_gestures', request)
