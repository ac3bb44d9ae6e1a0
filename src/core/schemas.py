#!/usr/bin/env python3
"""
Centralized JSON schemas for OpenAI structured outputs.

Contains all JSON schemas used for LLM responses to ensure consistency
and enable structured output validation.
"""

from typing import Dict, Any

# Schema for vocal emotion analysis of a transcript
VOCAL_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "emotions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Emotional states detected in the speech (e.g. calm, anxious, confident)"
        },
        "confidence": {
            "type": "number",
            "minimum": 0.0,
            "maximum": 1.0,
            "description": "Confidence in the emotional reading"
        },
        "stress_level": {
            "type": "string",
            "enum": ["low", "medium", "high"],
            "description": "Overall vocal stress level"
        }
    },
    "required": ["emotions", "confidence", "stress_level"],
    "additionalProperties": False
}

# Schema for behavioral cues extracted from a free-text description
TEXT_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "indicators": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Snake_case behavioral indicator tags (e.g. forward_lean, lip_compression)"
        },
        "confidence": {
            "type": "number",
            "minimum": 0.0,
            "maximum": 1.0,
            "description": "Confidence that the description supports the indicators"
        },
        "summary": {
            "type": "string",
            "description": "One-sentence behavioral summary"
        }
    },
    "required": ["indicators", "confidence", "summary"],
    "additionalProperties": False
}


def get_schema_by_type(analysis_type: str) -> Dict[str, Any]:
    """
    Get JSON schema by analysis type.

    Args:
        analysis_type: Type of analysis ("vocal", "text")

    Returns:
        JSON schema dictionary

    Raises:
        ValueError: If analysis_type is not recognized
    """
    schemas = {
        "vocal": VOCAL_ANALYSIS_SCHEMA,
        "audio": VOCAL_ANALYSIS_SCHEMA,  # Alias for vocal
        "text": TEXT_ANALYSIS_SCHEMA,
    }

    if analysis_type not in schemas:
        raise ValueError(f"Unknown analysis type: {analysis_type}")

    return schemas[analysis_type]
