"""
Meter reading extraction through the Gemini vision API.

The extractor never raises: network failures, missing configuration and
unreadable images all come back as an ExtractionResult carrying ``error``.
"""

import json
import logging
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import google.generativeai as genai

from metertrack.core.config import settings

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.1,
    "top_p": 0.8,
    "top_k": 40,
    "max_output_tokens": 1024,
}

# Confidence assigned when only a bare number could be recovered
FALLBACK_CONFIDENCE = 70.0
DEFAULT_UNIT = "m³"

EXTRACTION_PROMPT = """
Analyze this meter image and extract the current reading.

Instructions:
1. Look for digital or analog meter displays (energy or gas meters)
2. Identify the main reading number (usually the largest/most prominent number)
3. For GAS METERS: The reading is in m³ (cubic meters) - this is what we want
4. For ELECTRICITY METERS: The reading is in kWh (kilowatt-hours)
5. Ignore any decimal places beyond 1-2 digits
6. If you see multiple numbers, choose the one that represents the total consumption
7. If the image is unclear or doesn't contain a meter, return an error

Please respond in this exact JSON format:
{
  "reading": <number>,
  "confidence": <number between 0-100>,
  "unit": "m³" or "kWh" (depending on meter type),
  "extractedText": "<any text you can read from the image>",
  "error": null
}

IMPORTANT: Gas meters showing m³ readings are perfectly valid and should NOT return an error.
If you cannot read the meter or the image is not a meter, set error to a descriptive message and reading to 0.
"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")

_configured_key: Optional[str] = None


@dataclass
class ExtractionResult:
    reading: float
    confidence: float
    unit: str
    extracted_text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_gemini_model(model_name: Optional[str] = None):
    """
    Returns a configured GenerativeModel, or raises RuntimeError if Gemini is not configured.
    """
    global _configured_key

    if not settings.gemini_configured:
        raise RuntimeError("Gemini API key not configured")

    if _configured_key != settings.GEMINI_API_KEY:
        genai.configure(api_key=settings.GEMINI_API_KEY)
        _configured_key = settings.GEMINI_API_KEY
        logger.info("Gemini AI enabled")

    name = model_name or settings.GEMINI_MODEL
    return genai.GenerativeModel(name, generation_config=GENERATION_CONFIG)


def extract_meter_reading(image_bytes: bytes, mime_type: str) -> ExtractionResult:
    """
    Extract the numeric reading shown in a meter photo.

    Args:
        image_bytes: Raw image payload
        mime_type: Declared media type of the payload (e.g. image/jpeg)

    Returns:
        ExtractionResult; ``error`` is set when no reading could be extracted
    """
    try:
        model = get_gemini_model()
        response = model.generate_content([
            EXTRACTION_PROMPT,
            {"mime_type": mime_type, "data": image_bytes},
        ])
        text = response.text or ""
    except Exception as e:
        logger.error(f"Gemini API error: {e}")
        return ExtractionResult(
            reading=0.0,
            confidence=0.0,
            unit="kWh",
            error=f"API Error: {e}",
        )

    return parse_extraction_response(text)


def parse_extraction_response(text: str) -> ExtractionResult:
    """
    Turn the model's answer into an ExtractionResult.

    Prefers the JSON object the prompt asks for; falls back to the first
    number in the text with a fixed confidence.
    """
    match = _JSON_OBJECT.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
            return ExtractionResult(
                reading=float(parsed.get("reading") or 0),
                confidence=float(parsed.get("confidence") or 0),
                unit=parsed.get("unit") or DEFAULT_UNIT,
                extracted_text=parsed.get("extractedText") or "",
                error=parsed.get("error") or None,
            )
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to parse Gemini response: {e}")

    number = _NUMBER.search(text)
    if number:
        return ExtractionResult(
            reading=float(number.group(0)),
            confidence=FALLBACK_CONFIDENCE,
            unit=DEFAULT_UNIT,
            extracted_text=text,
        )

    return ExtractionResult(
        reading=0.0,
        confidence=0.0,
        unit=DEFAULT_UNIT,
        extracted_text=text,
        error="Could not extract meter reading from image",
    )
