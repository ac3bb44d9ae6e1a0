#!/usr/bin/env python3
"""
Heuristic pipeline stages.

Each stage wraps one BehavioralAnalyzer operation so the report generator
can run the whole heuristics layer as a single dependency-ordered pipeline.
"""

import logging
from typing import List, Dict, Any, Optional

from ..models.analysis import AnalysisResult
from .behavioral import BehavioralAnalyzer
from .pipeline import AnalysisPipeline, AnalysisStage

logger = logging.getLogger(__name__)


def _working_result(result: AnalysisResult, context: Dict[str, Any]) -> AnalysisResult:
    """Culturally adjusted copy when available, else the original result."""
    return context.get('adjusted_result') or result


class HeuristicStage(AnalysisStage):
    """Stage backed by a shared BehavioralAnalyzer."""

    def __init__(self, analyzer: BehavioralAnalyzer, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.analyzer = analyzer


class CulturalContextStage(HeuristicStage):
    """Re-reads gesture and eye signals for the requested culture."""

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        culture = context.get('cultural_context') or 'western'
        return {'adjusted_result': self.analyzer.apply_cultural_context(result, culture)}


class BaselineStage(HeuristicStage):

    def get_dependencies(self) -> List[str]:
        return ['CulturalContextStage']

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        duration = self.config.get('observation_duration', 10)
        return {'baseline_behavior': self.analyzer.establish_baseline(_working_result(result, context), duration)}


class SignalClusterStage(HeuristicStage):

    def get_dependencies(self) -> List[str]:
        return ['CulturalContextStage']

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        return {'signal_clusters': self.analyzer.detect_signal_clusters(_working_result(result, context))}


class TemporalPatternStage(HeuristicStage):

    def get_dependencies(self) -> List[str]:
        return ['CulturalContextStage']

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        return {'temporal_patterns': self.analyzer.analyze_temporal_patterns(_working_result(result, context))}


class StressComfortStage(HeuristicStage):

    def get_dependencies(self) -> List[str]:
        return ['CulturalContextStage']

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        return {'stress_comfort_indicators': self.analyzer.assess_stress_comfort_levels(_working_result(result, context))}


class InsightStage(HeuristicStage):
    """Summarizes the other stages into insight sentences."""

    def get_dependencies(self) -> List[str]:
        return ['BaselineStage', 'SignalClusterStage', 'TemporalPatternStage', 'StressComfortStage']

    def can_process(self, result: AnalysisResult, context: Dict[str, Any]) -> bool:
        return context.get('baseline_behavior') is not None

    def process(self, result: AnalysisResult, context: Dict[str, Any]) -> Dict[str, Any]:
        insights = self.analyzer.generate_advanced_insights(
            context['baseline_behavior'],
            context.get('signal_clusters', []),
            context.get('temporal_patterns', []),
            context.get('stress_comfort_indicators', []),
        )
        return {'advanced_insights': insights}


def build_heuristics_pipeline(analyzer: Optional[BehavioralAnalyzer] = None) -> AnalysisPipeline:
    """
    Assemble the standard heuristics pipeline.

    Args:
        analyzer: Analyzer shared by every stage (a default one is created if omitted)

    Returns:
        Pipeline ready to run on an AnalysisResult
    """
    analyzer = analyzer or BehavioralAnalyzer()
    pipeline = AnalysisPipeline()
    pipeline.add_stage(CulturalContextStage(analyzer))
    pipeline.add_stage(BaselineStage(analyzer))
    pipeline.add_stage(SignalClusterStage(analyzer))
    pipeline.add_stage(TemporalPatternStage(analyzer))
    pipeline.add_stage(StressComfortStage(analyzer))
    pipeline.add_stage(InsightStage(analyzer))
    return pipeline
