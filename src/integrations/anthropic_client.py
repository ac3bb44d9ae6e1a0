#!/usr/bin/env python3
"""
Anthropic integration for behavioral assessments and narratives.

Primary narrative provider. Responses are plain text from the first
content block of a messages.create call.
"""

import json
import logging
from typing import Dict, Optional, Any

from anthropic import AsyncAnthropic

from core.exceptions import LLMError
from core.llm_logger import get_llm_logger
from .base import ServiceAdapter, AdapterResult

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATIONS = ['Continue monitoring', 'Consider additional context']


def behavior_prompt(data: Dict[str, Any], context: str) -> str:
    """Prompt asking for a JSON assessment of the signal snapshot."""
    return f"""As an expert behavioral analyst, analyze the following multi-signal data for a {context} context:

Trust Vector: {data.get('trust_vector')}
Signals: {json.dumps(data.get('signals', {}))}
Alerts: {json.dumps(data.get('alerts', []))}

Provide a comprehensive behavioral analysis including:
1. Overall assessment and confidence level
2. Key behavioral patterns identified
3. Risk factors and considerations
4. Recommendations for interpretation

Format your response as JSON with analysis, confidence, and recommendations fields."""


class AnthropicAdapter(ServiceAdapter):
    """Async Anthropic messages client."""

    service_name = 'anthropic'

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-haiku-20240307",
                 timeout: int = 30, client: Optional[AsyncAnthropic] = None):
        super().__init__()
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = client
        self.max_tokens = 1000

    async def _connect(self) -> bool:
        if self.client is None:
            if not self.api_key:
                logger.warning("Anthropic API key missing")
                return False
            self.client = AsyncAnthropic(api_key=self.api_key, timeout=self.timeout)
        return True

    async def _complete(self, prompt: str, analysis_type: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}]
        )

        block = response.content[0] if response.content else None
        text = block.text if block is not None and getattr(block, 'type', 'text') == 'text' else ''

        usage = getattr(response, 'usage', None)
        token_usage = {}
        if usage is not None:
            token_usage = {
                'prompt_tokens': usage.input_tokens,
                'completion_tokens': usage.output_tokens,
                'total_tokens': usage.input_tokens + usage.output_tokens,
            }
        get_llm_logger().log_llm_interaction('', prompt, text, token_usage, analysis_type)
        return text

    async def analyze_behavior(self, data: Dict[str, Any], context: str) -> AdapterResult:
        """
        Structured assessment of a signal snapshot.

        Adapter-level operation for callers holding a result; session runs
        go through generate_narrative instead and never call this.

        Args:
            data: Dict with trust_vector, signals and alerts
            context: Context preset

        Returns:
            AdapterResult with {analysis, confidence, recommendations}
        """
        async def request() -> Dict[str, Any]:
            text = await self._complete(behavior_prompt(data, context), "behavior_assessment")
            result = json.loads(text or '{}')
            return {
                'analysis': result.get('analysis') or 'Analysis completed.',
                'confidence': result.get('confidence') or 0.7,
                'recommendations': result.get('recommendations') or list(DEFAULT_RECOMMENDATIONS),
            }

        return await self._call('analyze_behavior', request)

    async def generate_narrative(self, prompt: str) -> AdapterResult:
        """Free-form narrative. Payload: {narrative}."""
        async def request() -> Dict[str, Any]:
            narrative = (await self._complete(prompt, "narrative")).strip()
            if not narrative:
                raise LLMError("anthropic", self.model, ValueError("empty narrative"))
            return {'narrative': narrative}

        return await self._call('generate_narrative', request)
