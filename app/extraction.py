"""
AI-assisted stat extraction.

Wraps a LangChain chat model (Gemini by default) that reads character card
screenshots or free-text descriptions and answers with JSON. Replies are
untrusted guesses: every field goes through the same coercion as CSV cells
before it reaches a record.
"""

from __future__ import annotations

import base64
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .codegen import resource_name
from .csv_io import format_number
from .log_config import get_logger
from .models import ExtractedStats, NewCharacter
from .normalize import coerce_field
from .rules import CANONICAL_HEADERS, CHARACTER_TYPES, DEFAULT_RELEASE, DEFAULT_TYPE, NUMERIC_FIELDS, RELEASE_TYPES

log = get_logger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"

# Card screenshots sent per model call in a batch scan.
BATCH_SIZE = 5

UNKNOWN_NAME = "Unknown"

STAT_FIELDS_HELP = (
    "- name: Character name\n"
    "- str_init, agi_init, sta_init: The primary stats (numeric)\n"
    "- str_mul_in, agi_mul_in, sta_mul_in: The gains in parentheses (e.g. +0.65 -> 0.65)\n"
    "- bmv_str, bmv_agi, bmv_sta: The threshold values in the description "
    "(e.g. \"Every 17 points of Strength\" -> 17)\n"
    "- release: Element name at bottom.\n"
    "- type: Card tier, if shown."
)

IMAGE_PROMPT = (
    "Analyze this game character card and extract all statistics.\n"
    f"{STAT_FIELDS_HELP}\n"
    "Return a single JSON object only."
)

BATCH_IMAGE_PROMPT = (
    "I am providing multiple screenshots of game character cards. "
    "Extract the stats for EACH image into an array of objects.\n"
    f"{STAT_FIELDS_HELP}\n"
    "Return a JSON ARRAY of objects only, one per image, in the same order."
)

GENERATE_PROMPT = (
    'Generate balanced game stats for a character named "{name}" based on this description: "{description}".\n'
    "Ensure multipliers (str_mul_in, agi_mul_in, sta_mul_in) are between 0.1 and 2.0.\n"
    f"Use one of these tiers for type: {', '.join(CHARACTER_TYPES)}.\n"
    f"Use one of these elements for release: {', '.join(RELEASE_TYPES)}.\n"
    "Return a single JSON object with the keys record, type, release, str_init, agi_init, sta_init, "
    "str_mul_in, agi_mul_in, sta_mul_in, bmv_str, bmv_agi, bmv_sta, chinese."
)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ExtractionError(RuntimeError):
    """The AI service failed or answered with something that is not JSON."""


def _snap(value: Optional[str], choices: Sequence[str]) -> Optional[str]:
    if not value:
        return None
    # Longest first, so "Limited Legends" is not taken for "Legends".
    for choice in sorted(choices, key=len, reverse=True):
        if choice in value:
            return choice
    return None


def coerce_extracted(payload: Dict[str, Any]) -> ExtractedStats:
    """
    Clean one reply object into typed, partial stats.

    Unknown keys and `id` are dropped. `type` and `release` are snapped to
    the longest known value contained in the reply, or left unset. JSON
    floats are rendered without exponents before coercion.
    """
    fields: Dict[str, Any] = {}
    for key in CANONICAL_HEADERS:
        if key in ("image", "pimage") or payload.get(key) is None:
            continue
        value = payload[key]
        raw = format_number(value) if isinstance(value, float) else str(value)
        fields[key] = coerce_field(key, raw)

    fields["type"] = _snap(fields.get("type"), CHARACTER_TYPES)
    fields["release"] = _snap(fields.get("release"), RELEASE_TYPES)
    if not fields.get("name"):
        fields.pop("name", None)
    return ExtractedStats(**fields)


def stats_to_record(stats: ExtractedStats) -> NewCharacter:
    """
    Turn scanned stats into a new record ready for insertion.

    Missing names become "Unknown"; image identifiers derive from the name.
    """
    name = stats.name or UNKNOWN_NAME
    resource = resource_name(stats.name or "")
    fields: Dict[str, Any] = {
        "record": stats.record or "",
        "name": name,
        "image": resource,
        "pimage": f"P{resource}",
        "type": stats.type or DEFAULT_TYPE,
        "release": stats.release or DEFAULT_RELEASE,
        "chinese": bool(stats.chinese),
    }
    for key in NUMERIC_FIELDS:
        fields[key] = getattr(stats, key) or 0.0
    return NewCharacter(**fields)


def parse_reply(text: str) -> Any:
    cleaned = _FENCE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"AI reply is not valid JSON: {e}") from e


def _content_text(content: Any) -> str:
    # Chat models may answer with a list of content parts.
    if isinstance(content, list):
        return "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    return str(content or "")


class StatExtractor:
    """
    Stat extraction through a vision-capable chat model.

    Example:
        extractor = StatExtractor(api_key="...")
        stats = await extractor.extract_from_image(png_bytes, "image/png")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        llm_client: Optional[Any] = None,
        temperature: float = 0.0,
    ):
        if llm_client is None and api_key:
            from langchain_google_genai import ChatGoogleGenerativeAI

            llm_client = ChatGoogleGenerativeAI(
                model=model,
                google_api_key=api_key,
                temperature=temperature,
            )
            log.info("Gemini client created: model=%s", model)

        self.llm_client = llm_client
        self.model = model

    def is_available(self) -> bool:
        return self.llm_client is not None

    async def _ask(self, content: List[Dict[str, Any]]) -> Any:
        from langchain_core.messages import HumanMessage

        if self.llm_client is None:
            raise ExtractionError("AI extraction is not configured")
        try:
            response = await self.llm_client.ainvoke([HumanMessage(content=content)])
        except Exception as e:
            log.error("AI extraction request failed: %s", e)
            raise ExtractionError(str(e)) from e

        text = _content_text(getattr(response, "content", ""))
        if not text.strip():
            raise ExtractionError("AI service returned no text")
        return parse_reply(text)

    @staticmethod
    def _image_part(image: bytes, mime_type: str) -> Dict[str, Any]:
        b64_image = base64.b64encode(image).decode("ascii")
        return {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64_image}"}}

    async def generate_stats(self, name: str, description: str = "") -> ExtractedStats:
        prompt = GENERATE_PROMPT.format(name=name, description=description)
        reply = await self._ask([{"type": "text", "text": prompt}])
        if not isinstance(reply, dict):
            raise ExtractionError("Expected a JSON object from the AI service")
        stats = coerce_extracted(reply)
        return stats.model_copy(update={"name": name})

    async def extract_from_image(self, image: bytes, mime_type: str = "image/png") -> ExtractedStats:
        reply = await self._ask([self._image_part(image, mime_type), {"type": "text", "text": IMAGE_PROMPT}])
        if isinstance(reply, list):
            reply = reply[0] if reply else {}
        if not isinstance(reply, dict):
            raise ExtractionError("Expected a JSON object from the AI service")
        return coerce_extracted(reply)

    async def extract_from_images(
        self,
        images: Sequence[Tuple[bytes, str]],
        batch_size: int = BATCH_SIZE,
    ) -> List[ExtractedStats]:
        """Scan card screenshots, at most `batch_size` per model call, in order."""
        results: List[ExtractedStats] = []
        for start in range(0, len(images), batch_size):
            chunk = images[start:start + batch_size]
            parts = [self._image_part(image, mime_type) for image, mime_type in chunk]
            parts.append({"type": "text", "text": BATCH_IMAGE_PROMPT})
            reply = await self._ask(parts)
            if isinstance(reply, dict):
                reply = [reply]
            if not isinstance(reply, list):
                raise ExtractionError("Expected a JSON array from the AI service")
            results.extend(coerce_extracted(item) for item in reply if isinstance(item, dict))
        return results

    async def scan_records(self, images: Sequence[Tuple[bytes, str]]) -> List[NewCharacter]:
        return [stats_to_record(stats) for stats in await self.extract_from_images(images)]


__all__ = ["StatExtractor", "ExtractionError", "coerce_extracted", "parse_reply", "stats_to_record"]
