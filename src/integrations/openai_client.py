#!/usr/bin/env python3
"""
OpenAI integration for vocal and textual behavior analysis.

Provides:
- Whisper transcription followed by a structured emotional reading
- Behavioral indicator extraction from free-text descriptions
- Narrative generation as the secondary narrative provider
"""

import json
import logging
from typing import List, Dict, Optional, Any

from openai import AsyncOpenAI

from core.exceptions import LLMError
from core.llm_logger import get_llm_logger
from core.schemas import get_schema_by_type
from .base import ServiceAdapter, AdapterResult

logger = logging.getLogger(__name__)

VOCAL_SYSTEM_PROMPT = (
    "You are an expert in vocal analysis and psychology. Analyze the following transcript for "
    "emotional indicators, stress patterns, and deception signals. Return a JSON object with "
    "emotions array and confidence score."
)

NARRATIVE_SYSTEM_PROMPT = (
    "You are an expert behavioral analyst. Write evidence-based, cautious interpretations of "
    "non-verbal signal data. Never claim certainty about deception."
)


def text_system_prompt(context: str) -> str:
    return (f"You are analyzing text for behavioral patterns in a {context} context. Focus on "
            f"linguistic indicators of stress, deception, confidence, and emotional state. "
            f"Return JSON with indicators array and confidence score.")


class OpenAIAdapter(ServiceAdapter):
    """Async OpenAI client with structured outputs."""

    service_name = 'openai'

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini",
                 timeout: int = 30, client: Optional[AsyncOpenAI] = None):
        """
        Initialize OpenAI adapter.

        Args:
            api_key: OpenAI API key
            model: Chat model used for structured analysis and narratives
            timeout: Request timeout in seconds
            client: Pre-built client (tests inject a fake here)
        """
        super().__init__()
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = client
        self.max_tokens = 1500
        self.temperature = 0.3  # Lower temperature for more consistent analysis

    async def _connect(self) -> bool:
        if self.client is None:
            if not self.api_key:
                logger.warning("OpenAI API key missing")
                return False
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)

        await self.client.models.list()
        return True

    async def _make_structured_request(self, messages: List[Dict[str, str]], schema: Dict[str, Any],
                                       analysis_type: str = "unknown") -> Dict[str, Any]:
        """Make a structured request to OpenAI API with JSON schema enforcement."""
        logger.debug(f"Making OpenAI structured API call for {analysis_type}")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": f"{analysis_type}_response",
                    "schema": schema,
                    "strict": True
                }
            }
        )

        # Detect truncated responses early
        finish_reason = getattr(response.choices[0], "finish_reason", None)
        if finish_reason == "length":
            raise LLMError("openai", self.model, ValueError("response truncated (finish_reason=length)"))

        content = response.choices[0].message.content
        usage = self._usage(response)
        logger.info(f"OpenAI {analysis_type} call successful - tokens: {usage.get('total_tokens', 'unknown')} total")

        system_prompt = next((m['content'] for m in messages if m.get('role') == 'system'), '')
        user_prompt = next((m['content'] for m in messages if m.get('role') == 'user'), '')
        llm_logger = get_llm_logger()
        llm_logger.log_llm_interaction(system_prompt, user_prompt, content, usage, analysis_type)

        try:
            parsed = json.loads(content)
        except (TypeError, json.JSONDecodeError) as e:
            logger.warning(f"OpenAI {analysis_type} returned invalid JSON: {e}")
            llm_logger.log_error("JSONDecodeError", str(e), analysis_type)
            parsed = {'_validation_error': str(e)}

        llm_logger.log_parsed_analysis(parsed, analysis_type)
        return parsed

    @staticmethod
    def _usage(response) -> Dict[str, int]:
        usage = getattr(response, 'usage', None)
        if usage is None:
            return {}
        return {
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens
        }

    async def analyze_audio(self, audio_path: str) -> AdapterResult:
        """
        Transcribe audio with Whisper and read emotional indicators from it.

        Args:
            audio_path: Path to an audio (or video) file

        Returns:
            AdapterResult with {emotions, confidence, transcript}
        """
        async def request() -> Dict[str, Any]:
            with open(audio_path, 'rb') as audio_file:
                transcription = await self.client.audio.transcriptions.create(
                    model="whisper-1",
                    file=audio_file
                )
            transcript = getattr(transcription, 'text', '') or ''

            messages = [
                {"role": "system", "content": VOCAL_SYSTEM_PROMPT},
                {"role": "user", "content": f'Analyze this transcript for vocal behavioral patterns: "{transcript}"'}
            ]
            analysis = await self._make_structured_request(messages, get_schema_by_type("vocal"), "vocal_analysis")

            return {
                'emotions': analysis.get('emotions') or ['neutral'],
                'confidence': analysis.get('confidence') or 0.5,
                'transcript': transcript,
            }

        return await self._call('analyze_audio', request)

    async def analyze_text(self, text: str, context: str) -> AdapterResult:
        """
        Extract behavioral indicators from a text description.

        Returns:
            AdapterResult with {indicators, confidence}
        """
        async def request() -> Dict[str, Any]:
            messages = [
                {"role": "system", "content": text_system_prompt(context)},
                {"role": "user", "content": f'Analyze this text: "{text}"'}
            ]
            analysis = await self._make_structured_request(messages, get_schema_by_type("text"), "text_analysis")
            return {
                'indicators': analysis.get('indicators') or ['baseline'],
                'confidence': analysis.get('confidence') or 0.5,
            }

        return await self._call('analyze_text', request)

    async def generate_narrative(self, prompt: str) -> AdapterResult:
        """Free-form narrative completion. Payload: {narrative}."""
        async def request() -> Dict[str, Any]:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": NARRATIVE_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
            narrative = (response.choices[0].message.content or '').strip()
            get_llm_logger().log_llm_interaction(NARRATIVE_SYSTEM_PROMPT, prompt, narrative,
                                                 self._usage(response), "narrative")
            if not narrative:
                raise LLMError("openai", self.model, ValueError("empty narrative"))
            return {'narrative': narrative}

        return await self._call('generate_narrative', request)
