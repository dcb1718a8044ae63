"""
Shared pieces of the Gemini REST API used by the image and speech providers.

API Docs: https://ai.google.dev/api/generate-content
"""

import base64
import re
from typing import Any, Dict, Optional, Tuple

from core.errors import GenerationError
from core.secrets import get_api_key

API_URL = "https://generativelanguage.googleapis.com/v1beta"
API_KEY_NAME = "GEMINI_API_KEY"


def resolve_api_key(api_key: Optional[str]) -> str:
    """Return the configured key or raise a MISSING_API_KEY error."""
    key = api_key or get_api_key(API_KEY_NAME)
    if not key:
        raise GenerationError(
            "Gemini API key required. Set GEMINI_API_KEY, run "
            "`reelsmith secrets set GEMINI_API_KEY` or `reelsmith config set gemini.apiKey <key>`.",
            "MISSING_API_KEY",
        )
    return key


def request_headers(api_key: str) -> Dict[str, str]:
    return {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }


def generate_content_url(model: str, base_url: Optional[str] = None) -> str:
    return f"{base_url or API_URL}/models/{model}:generateContent"


def extract_inline_data(response: Dict[str, Any]) -> Optional[Tuple[bytes, str]]:
    """
    Find the first inline binary part of a generateContent response.

    Returns:
        (decoded bytes, mime type) or None if the response has no binary part
    """
    for candidate in response.get("candidates", []):
        for part in candidate.get("content", {}).get("parts", []):
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                return base64.b64decode(inline["data"]), inline.get("mimeType", "")
    return None


def extract_text(response: Dict[str, Any]) -> str:
    """Concatenate text parts (used for error messages when no data came back)."""
    texts = []
    for candidate in response.get("candidates", []):
        for part in candidate.get("content", {}).get("parts", []):
            if part.get("text"):
                texts.append(part["text"])
    return " ".join(texts)


def sample_rate_from_mime(mime_type: str, default: int = 24000) -> int:
    """Parse ``rate=NNNN`` from an ``audio/L16;codec=pcm;rate=24000`` mime type."""
    match = re.search(r"rate=(\d+)", mime_type or "")
    return int(match.group(1)) if match else default
