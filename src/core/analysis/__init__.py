#!/usr/bin/env python3
"""
Behavioral analysis for Blind Spot sessions.

Signal scoring, cultural adjustment, heuristics stages and the session
orchestrator live in submodules; import them directly.
"""

from .pipeline import AnalysisPipeline, AnalysisStage

__all__ = ['AnalysisPipeline', 'AnalysisStage']
