"""
Gemini Speech Scorer for Tonr

Rates a speech transcript 1-100 and returns ordered coaching feedback,
tuned to the requested tonality. Uses the google.genai SDK with JSON
output; anything that is not a valid {rating, feedback} object is a
scoring failure.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from app.config.settings import get_settings
from app.domain.interfaces import SpeechScorer
from app.domain.models import ScoreResult, Tonality
from app.infrastructure.exceptions import ConfigurationError, ScorerError


logger = logging.getLogger(__name__)


TONALITY_STYLES = {
    Tonality.NEUTRAL: {
        "name": "Neutral",
        "description": "clean, natural communication style",
        "focus": "Focus on clarity, natural flow, and balanced delivery.",
    },
    Tonality.ASSERTIVE: {
        "name": "Assertive",
        "description": "direct, decisive communication style",
        "focus": "Focus on directness, confidence, and decisive language patterns.",
    },
    Tonality.COMPOSED: {
        "name": "Composed",
        "description": "calm, controlled communication style",
        "focus": "Focus on calm delivery, controlled pacing, and measured responses.",
    },
}


def build_system_instruction(tonality: Tonality) -> str:
    style = TONALITY_STYLES[tonality]
    return (
        f"You are an expert speech communication coach specializing in "
        f"{style['name'].lower()} communication. "
        f"Provide constructive, actionable feedback."
    )


def build_prompt(transcript: str, tonality: Tonality) -> str:
    """Build the coaching prompt for one transcript."""
    style = TONALITY_STYLES[tonality]
    name = style["name"].lower()

    return f"""You are a speech communication coach specializing in {name} communication style ({style['description']}).

Analyze the following speech transcript and provide:
1. A rating from 1-100 based on:
   - Clarity and articulation
   - Confidence and presence
   - Use of filler words
   - Pacing and pauses
   - Alignment with {name} communication style
   - Overall communication effectiveness

2. Specific areas for improvement (3-5 bullet points) that help the speaker achieve a more {name} tone. {style['focus']}

Transcript: "{transcript}"

Respond in JSON format:
{{
  "rating": <number 1-100>,
  "feedback": ["point 1", "point 2", "point 3"]
}}"""


def parse_score(response_text: Optional[str]) -> ScoreResult:
    """
    Parse the model output into a ScoreResult.

    Markdown code fences are tolerated. Ratings given as whole floats
    (``72.0``) are accepted; anything else out of shape raises ScorerError.
    """
    if not response_text or not response_text.strip():
        raise ScorerError("Empty response from scorer", operation="parse")

    text = response_text.strip()

    # Remove markdown code blocks
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]

    if text.endswith("```"):
        text = text[:-3]

    try:
        data: Dict[str, Any] = json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise ScorerError("Scorer returned invalid JSON", operation="parse", original_error=e)

    if not isinstance(data, dict):
        raise ScorerError("Scorer returned a non-object response", operation="parse")

    rating = data.get("rating")
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ScorerError(f"Scorer returned a non-integer rating: {rating!r}", operation="parse")

    feedback = data.get("feedback")
    if not isinstance(feedback, list) or not all(isinstance(p, str) for p in feedback):
        raise ScorerError("Scorer feedback is not a list of strings", operation="parse")

    try:
        return ScoreResult(rating=rating, feedback=feedback)
    except PydanticValidationError as e:
        raise ScorerError(f"Scorer output out of range: {e}", operation="parse", original_error=e)


class GeminiSpeechScorer(SpeechScorer):
    """
    Speech scorer backed by Gemini.

    No retries: a failed call is surfaced to the caller as ScorerError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        settings = get_settings()
        self._model = model or settings.gemini_model
        self._temperature = (
            temperature if temperature is not None else settings.scorer_temperature
        )

        self._api_key = api_key or settings.google_api_key
        self._client = client

        logger.info(f"GeminiSpeechScorer initialized with model: {self._model}")

    def _get_client(self) -> genai.Client:
        """Create the SDK client on first use."""
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(
                    "Missing GOOGLE_API_KEY environment variable",
                    missing_keys=["GOOGLE_API_KEY"]
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def score(self, transcript: str, tonality: Tonality) -> ScoreResult:
        """
        Rate a transcript for the given tonality.

        Raises:
            ScorerError: on SDK failure or unusable output
            ConfigurationError: if no API key is configured
        """
        client = self._get_client()
        try:
            response = await asyncio.to_thread(
                lambda: client.models.generate_content(
                    model=self._model,
                    contents=build_prompt(transcript, tonality),
                    config=types.GenerateContentConfig(
                        system_instruction=build_system_instruction(tonality),
                        temperature=self._temperature,
                        response_mime_type="application/json",
                    ),
                )
            )
        except Exception as e:
            logger.error(f"Gemini scoring call failed: {e}")
            raise ScorerError(
                f"Failed to analyze speech: {e}",
                model=self._model,
                operation="score",
                original_error=e,
            )

        result = parse_score(response.text)
        logger.debug(f"Scored transcript ({len(transcript)} chars) at {result.rating}")
        return result
