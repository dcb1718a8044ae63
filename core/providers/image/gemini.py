"""
Gemini Image Generation Provider

Uses the generateContent endpoint with IMAGE response modality. Style and
aspect ratio are not native request fields for this model, so they are folded
into the prompt text.

API Docs: https://ai.google.dev/gemini-api/docs/image-generation
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from core.models.generation import DEFAULT_ASPECT_RATIO, DEFAULT_IMAGE_STYLE, IMAGE_MODEL
from ..base import ImageProvider, ProviderConfig, ImageGenerationResult
from ..gemini import (
    extract_inline_data,
    extract_text,
    generate_content_url,
    request_headers,
    resolve_api_key,
)

logger = logging.getLogger(__name__)


class GeminiImageProvider(ImageProvider):
    """Google Gemini image generation provider"""

    STYLE_PROMPTS = {
        "photorealistic": "photorealistic, high quality photograph, professional photography",
        "illustration": "digital illustration, artistic style, clean and modern",
        "anime": "anime style, japanese animation, manga art",
        "sketch": "pencil sketch, hand drawn, artistic sketch",
    }

    ASPECT_PROMPTS = {
        "16:9": "widescreen format, horizontal orientation",
        "9:16": "vertical format, portrait orientation",
        "1:1": "square format",
        "4:3": "standard format",
    }

    def __init__(self, config: Optional[ProviderConfig] = None):
        """
        Initialize Gemini image provider.

        Args:
            config: Provider configuration. If None, the API key is looked up
                   on first use (keychain, config file, GEMINI_API_KEY).
        """
        super().__init__(config or ProviderConfig())
        self.model = self.config.model or IMAGE_MODEL

    @property
    def name(self) -> str:
        return "gemini"

    def enhance_prompt(
        self,
        prompt: str,
        style: Optional[str] = None,
        aspect_ratio: Optional[str] = None
    ) -> str:
        """Append style and framing phrases to the user's prompt."""
        parts = [prompt.rstrip(". ")]
        style_text = self.STYLE_PROMPTS.get(style or DEFAULT_IMAGE_STYLE)
        if style_text:
            parts.append(style_text)
        aspect_text = self.ASPECT_PROMPTS.get(aspect_ratio or DEFAULT_ASPECT_RATIO)
        if aspect_text:
            parts.append(aspect_text)
        return ". ".join(parts) + "."

    async def generate_image(
        self,
        prompt: str,
        style: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        seed: Optional[int] = None
    ) -> ImageGenerationResult:
        """
        Generate an image with Gemini.

        Returns:
            ImageGenerationResult with PNG (or provider-chosen format) bytes
        """
        api_key = resolve_api_key(self.config.api_key)
        full_prompt = self.enhance_prompt(prompt, style, aspect_ratio)

        generation_config = {"responseModalities": ["TEXT", "IMAGE"]}
        if seed is not None:
            generation_config["seed"] = seed

        request_body = {
            "contents": [{"parts": [{"text": full_prompt}]}],
            "generationConfig": generation_config,
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    generate_content_url(self.model, self.config.base_url),
                    headers=request_headers(api_key),
                    json=request_body
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        return ImageGenerationResult(
                            success=False,
                            error_message=f"Gemini API error ({response.status}): {error_text}"
                        )

                    result = await response.json()

        except aiohttp.ClientError as e:
            return ImageGenerationResult(
                success=False,
                error_message=f"Gemini API request failed: {str(e)}"
            )
        except asyncio.TimeoutError:
            return ImageGenerationResult(
                success=False,
                error_message=f"Gemini API request timed out after {self.config.timeout}s"
            )

        inline = extract_inline_data(result)
        if inline is None:
            return ImageGenerationResult(
                success=False,
                error_message=f"Gemini returned no image data. {extract_text(result)}".strip()
            )

        image_data, mime_type = inline
        logger.info(f"Generated image ({len(image_data)} bytes, {mime_type})")
        return ImageGenerationResult(
            success=True,
            image_data=image_data,
            mime_type=mime_type or "image/png",
            provider_metadata={
                "model": self.model,
                "prompt": full_prompt,
            }
        )
