# storefront/services/ai/translation_service.py
"""Content translation on top of the chat provider"""
import json
import logging
from typing import Any, Dict, Optional

from storefront.core.exceptions import AIServiceError
from storefront.services.ai.deepseek_client import TRANSLATION_TEMPERATURE

logger = logging.getLogger(__name__)

ENGLISH_MARKERS = ["the ", "and ", "or ", "is ", "are ", "be ", "have ", "has "]
FRENCH_MARKERS = [" le ", " la ", " et ", " ou ", " est ", " sont ", " avoir ", " a "]


def parse_json_object(content: str) -> Optional[Dict[str, Any]]:
    """Decode a JSON object, tolerating prose or code fences around it"""
    try:
        decoded = json.loads(content)
        if isinstance(decoded, dict):
            return decoded
    except ValueError:
        pass

    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    try:
        decoded = json.loads(content[start:end + 1])
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def is_likely_source_language(text: str, source: str, target: str) -> bool:
    """Heuristic: does a French 'translation' still read as English?"""
    if target == "en" or source == target:
        return False

    if target != "fr":
        return False

    lowered = text.lower()
    english_count = sum(lowered.count(marker) for marker in ENGLISH_MARKERS)
    french_count = sum(lowered.count(marker) for marker in FRENCH_MARKERS)

    return english_count > 2 and french_count == 0


class ContentTranslationService:
    """Translates free text and field maps through a translation provider"""

    def __init__(self, translator):
        self.translator = translator

    def translate_text(self, text: Optional[str], source_locale: str = "en", target_locale: str = "fr") -> Optional[str]:
        text = text.strip() if isinstance(text, str) else ""
        if text == "":
            return None
        return str(self.translator.translate(text, source_locale, target_locale)).strip()

    def translate_fields(
            self,
            fields: Dict[str, Any],
            source_locale: str = "en",
            target_locale: str = "fr",
    ) -> Dict[str, Any]:
        """
        Translate every non-empty string value in fields.

        Tries a single JSON-object request first when the provider supports
        chat, then falls back to one translate() call per field.
        """
        result: Dict[str, Any] = {}
        to_translate: Dict[str, str] = {}

        for key, value in fields.items():
            if not isinstance(value, str):
                result[key] = value
                continue
            value = value.strip()
            if value == "":
                result[key] = value
                continue
            to_translate[key] = value

        if not to_translate:
            return result

        if hasattr(self.translator, "chat"):
            try:
                translated = self._translate_object(to_translate, source_locale, target_locale)
            except AIServiceError as e:
                logger.warning(f"Batch translation failed, falling back to per-field: {e}")
            else:
                if translated:
                    for key, value in to_translate.items():
                        candidate = translated.get(key)
                        if isinstance(candidate, str) and candidate.strip():
                            result[key] = candidate.strip()
                        else:
                            result[key] = value
                    return result

        for key, value in to_translate.items():
            result[key] = str(self.translator.translate(value, source_locale, target_locale)).strip()

        return result

    def safe_translation_updates(
            self,
            fields: Dict[str, Any],
            source_locale: str = "en",
            target_locale: str = "fr",
    ) -> Dict[str, str]:
        """
        Translate fields and keep only values that are safe to store.

        Values that look untranslated are dropped so existing content stays
        untouched.
        """
        translated = self.translate_fields(fields, source_locale, target_locale)
        updates: Dict[str, str] = {}

        for key, value in translated.items():
            if not isinstance(value, str) or value == "":
                continue
            if is_likely_source_language(value, source_locale, target_locale):
                logger.warning(
                    f"Discarding translation for field '{key}' ({source_locale}->{target_locale}): "
                    f"output still looks like the source language"
                )
                continue
            updates[key] = value

        return updates

    def _translate_object(self, data: Dict[str, str], source_locale: str, target_locale: str) -> Dict[str, str]:
        payload = json.dumps(data, ensure_ascii=False)
        target_name = self.translator.locale_to_language(target_locale)
        source_name = self.translator.locale_to_language(source_locale)

        content = self.translator.chat([
            {
                "role": "system",
                "content": (
                    "You are a translator.\n"
                    f"Translate from {source_name} to {target_name}.\n"
                    "Input will be a JSON object. Return ONLY valid JSON with the SAME keys and translated string values.\n"
                    "Rules:\n"
                    "- Keep URLs, route paths (e.g. /(tabs)/home), and brand names unchanged.\n"
                    "- Preserve HTML tags/attributes if present; translate only human-readable text.\n"
                    "- Do not add extra keys. Do not wrap in markdown.\n"
                ),
            },
            {
                "role": "user",
                "content": f"Translate this JSON object values to {target_name}:\n{payload}",
            },
        ], TRANSLATION_TEMPERATURE)

        decoded = parse_json_object(content)
        if not decoded:
            return {}

        return {
            key: value
            for key, value in decoded.items()
            if isinstance(key, str) and isinstance(value, str)
        }
