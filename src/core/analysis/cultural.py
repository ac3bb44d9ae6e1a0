#!/usr/bin/env python3
"""
Cultural context profiles.

Fixed per-region norms for eye contact, gestures, personal space and
touch. Only regions listed here adjust signals; any other tag is a
pass-through.
"""

from typing import Dict, Optional

from ..models.behavior import CulturalProfile, GestureInterpretation

CULTURAL_CONTEXTS: Dict[str, CulturalProfile] = {
    'western': CulturalProfile(
        region='western',
        personal_space=18,
        direct_gaze_acceptable=True,
        gender_considerations=False,
        hierarchy_influence=False,
        gesture_interpretations={
            'thumbs_up': GestureInterpretation('approval', 'positive', False),
            'crossed_arms': GestureInterpretation('defensive or cold', 'negative', True),
            'open_palms': GestureInterpretation('honesty and openness', 'positive', False),
            'pointing': GestureInterpretation('directing attention', 'neutral', True),
        },
        touch_norms={
            'business_handshake': 'firm',
            'social_touch': 'minimal',
            'personal_boundaries': 'strict',
        },
    ),
    'eastern': CulturalProfile(
        region='eastern',
        personal_space=24,
        direct_gaze_acceptable=False,
        gender_considerations=True,
        hierarchy_influence=True,
        gesture_interpretations={
            'bow': GestureInterpretation('respect and greeting', 'positive', False),
            'direct_pointing': GestureInterpretation('rude', 'negative', False),
            'two_handed_presentation': GestureInterpretation('respect', 'positive', False),
        },
        touch_norms={
            'business_handshake': 'light',
            'social_touch': 'minimal',
            'personal_boundaries': 'strict',
        },
    ),
}

# Offered to users; only western and eastern carry a profile
OFFERED_CULTURES = ['western', 'eastern', 'latin', 'middle_eastern', 'african', 'nordic']


def get_cultural_profile(region: Optional[str]) -> Optional[CulturalProfile]:
    """Look up a profile by region tag, None when the region is undefined."""
    if not region:
        return None
    return CULTURAL_CONTEXTS.get(region.lower())
