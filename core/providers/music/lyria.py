"""
Lyria RealTime Music Provider

Lyria streams music over a bidirectional websocket session. The provider
opens a session, sends the weighted prompts and generation config, starts
playback and collects PCM chunks until the requested duration has arrived.
Output is 16-bit PCM at 48kHz stereo, returned as WAV.

API Docs: https://ai.google.dev/gemini-api/docs/music-generation
"""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from core.audio_utils import pcm_to_wav
from core.models.generation import MUSIC_MODEL, MusicConfig, WeightedPrompt
from ..base import MusicProvider, ProviderConfig, MusicGenerationResult
from ..gemini import resolve_api_key

logger = logging.getLogger(__name__)


class LyriaMusicProvider(MusicProvider):
    """Google Lyria realtime music generation provider"""

    WS_URL = (
        "wss://generativelanguage.googleapis.com/ws/"
        "google.ai.generativelanguage.v1alpha.GenerativeService.BidiGenerateMusic"
    )

    SAMPLE_RATE = 48000
    CHANNELS = 2
    SAMPLE_WIDTH = 2

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.model = self.config.model or MUSIC_MODEL

    @property
    def name(self) -> str:
        return "lyria"

    @property
    def bytes_per_second(self) -> int:
        return self.SAMPLE_RATE * self.CHANNELS * self.SAMPLE_WIDTH

    def _generation_config(self, config: Optional[MusicConfig], seed: Optional[int]) -> Dict[str, Any]:
        api_config = (config or MusicConfig()).to_api()
        if seed is not None:
            api_config["seed"] = seed
        return api_config

    def _decode_message(self, msg: aiohttp.WSMessage) -> Optional[Dict[str, Any]]:
        if msg.type == aiohttp.WSMsgType.TEXT:
            return json.loads(msg.data)
        if msg.type == aiohttp.WSMsgType.BINARY:
            return json.loads(msg.data.decode("utf-8"))
        return None

    async def _stream(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        prompts: List[WeightedPrompt],
        config: Dict[str, Any],
        target_bytes: int
    ) -> bytes:
        await ws.send_json({"setup": {"model": self.model}})
        await ws.send_json({
            "clientContent": {
                "weightedPrompts": [{"text": p.text, "weight": p.weight} for p in prompts]
            }
        })
        await ws.send_json({"musicGenerationConfig": config})
        await ws.send_json({"playbackControl": "PLAY"})

        audio = bytearray()
        async for msg in ws:
            if msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

            payload = self._decode_message(msg)
            if not payload:
                continue

            if "filteredPrompt" in payload:
                logger.warning(f"Lyria filtered prompt: {payload['filteredPrompt']}")

            for chunk in payload.get("serverContent", {}).get("audioChunks", []):
                audio.extend(base64.b64decode(chunk.get("data", "")))

            if len(audio) >= target_bytes:
                await ws.send_json({"playbackControl": "STOP"})
                break

        return bytes(audio[:target_bytes])

    async def generate_music(
        self,
        prompts: List[WeightedPrompt],
        duration: float,
        config: Optional[MusicConfig] = None,
        seed: Optional[int] = None
    ) -> MusicGenerationResult:
        """
        Generate music with Lyria.

        Args:
            prompts: Weighted prompts
            duration: Seconds of audio to collect
            config: Generation controls
            seed: Optional seed

        Returns:
            MusicGenerationResult with WAV bytes
        """
        api_key = resolve_api_key(self.config.api_key)
        target_bytes = int(duration * self.SAMPLE_RATE) * self.CHANNELS * self.SAMPLE_WIDTH

        try:
            # Streaming is roughly realtime, so allow the music length on top of the timeout
            timeout = aiohttp.ClientTimeout(total=self.config.timeout + duration)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(
                    f"{self.config.base_url or self.WS_URL}?key={api_key}",
                    heartbeat=30
                ) as ws:
                    pcm = await asyncio.wait_for(
                        self._stream(ws, prompts, self._generation_config(config, seed), target_bytes),
                        timeout=self.config.timeout + duration
                    )

        except aiohttp.ClientError as e:
            return MusicGenerationResult(
                success=False,
                error_message=f"Lyria session failed: {str(e)}"
            )
        except asyncio.TimeoutError:
            return MusicGenerationResult(
                success=False,
                error_message=f"Lyria session timed out after {self.config.timeout + duration:.0f}s"
            )

        if not pcm:
            return MusicGenerationResult(
                success=False,
                error_message="Lyria returned no audio"
            )

        actual_duration = len(pcm) / self.bytes_per_second
        logger.info(f"Generated {actual_duration:.1f}s of music")

        return MusicGenerationResult(
            success=True,
            audio_data=pcm_to_wav(pcm, self.SAMPLE_RATE, self.CHANNELS, self.SAMPLE_WIDTH),
            duration=actual_duration,
            sample_rate=self.SAMPLE_RATE,
            channels=self.CHANNELS,
            provider_metadata={
                "model": self.model,
                "prompts": [p.text for p in prompts],
            }
        )
