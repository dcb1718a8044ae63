"""
Cache key derivation.

A key is a pure function of the normalized request parameters: defaults
filled in, then serialized as canonical JSON (sorted keys, no whitespace)
and hashed. Field order and omitted optionals therefore never change a key.
"""

import hashlib
import json
from typing import Any, Dict, Optional

from core.models.generation import GenerateImageParams, GenerateMusicParams
from core.models.project import Voice

KEY_LENGTH = 16

DEFAULT_VOICE = Voice(
    language_code="en-US",
    name="Kore",
    speaking_rate=1.0,
    pitch=0.0,
    volume_gain_db=0.0,
)


def cache_key(params: Dict[str, Any]) -> str:
    """Digest of a normalized parameter dict."""
    canonical = json.dumps(params, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:KEY_LENGTH]


def image_cache_key(params: GenerateImageParams) -> str:
    return cache_key(params.normalized())


def music_cache_key(params: GenerateMusicParams) -> str:
    return cache_key(params.normalized())


def merge_voice(*voices: Optional[Voice]) -> Voice:
    """
    Layer voice settings; later non-empty fields win.

    ``merge_voice(DEFAULT_VOICE, project_defaults, scene_voice)`` gives the
    effective voice for a scene.
    """
    merged: Dict[str, Any] = {}
    for voice in voices:
        if voice is None:
            continue
        merged.update({k: v for k, v in vars(voice).items() if v is not None})
    return Voice(**merged)


def narration_params(text: str, voice: Optional[Voice] = None) -> Dict[str, Any]:
    return {
        "text": text,
        "voice": merge_voice(DEFAULT_VOICE, voice).to_dict(),
    }


def narration_cache_key(text: str, voice: Optional[Voice] = None) -> str:
    return cache_key(narration_params(text, voice))
