"""Abstract base classes for provider interfaces"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, List
from enum import Enum

from core.models.generation import MusicConfig, WeightedPrompt
from core.models.project import Voice


class ProviderType(Enum):
    """Available generation backends"""
    MOCK = "mock"
    GEMINI = "gemini"


def _mask_secret(value: Optional[str]) -> str:
    """Mask a secret value for safe display in logs/repr."""
    if value is None:
        return "None"
    if len(value) <= 8:
        return "'***'"
    return f"'{value[:4]}...{value[-4:]}'"


@dataclass
class ProviderConfig:
    """Configuration shared by all generation providers"""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    timeout: int = 120  # seconds
    extra_params: Dict[str, Any] = None

    def __post_init__(self):
        if self.extra_params is None:
            self.extra_params = {}

    def __repr__(self) -> str:
        """Safe repr that masks API key to prevent accidental exposure in logs."""
        return (
            f"ProviderConfig(api_key={_mask_secret(self.api_key)}, "
            f"base_url={self.base_url!r}, model={self.model!r}, "
            f"timeout={self.timeout})"
        )


@dataclass
class AudioGenerationResult:
    """Result from speech generation"""
    success: bool
    audio_data: Optional[bytes] = None
    duration: Optional[float] = None
    format: str = "wav"
    sample_rate: int = 24000
    channels: int = 1
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.provider_metadata is None:
            self.provider_metadata = {}


@dataclass
class MusicGenerationResult:
    """Result from music generation"""
    success: bool
    audio_data: Optional[bytes] = None
    duration: Optional[float] = None
    format: str = "wav"
    sample_rate: int = 48000
    channels: int = 2  # Stereo for music
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.provider_metadata is None:
            self.provider_metadata = {}


@dataclass
class ImageGenerationResult:
    """Result from image generation"""
    success: bool
    image_data: Optional[bytes] = None
    mime_type: str = "image/png"
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.provider_metadata is None:
            self.provider_metadata = {}


class ImageProvider(ABC):
    """
    Abstract base class for image generation providers.

    All image providers (Gemini, Mock) must implement this interface.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        style: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        seed: Optional[int] = None
    ) -> ImageGenerationResult:
        """
        Generate image from text prompt.

        Args:
            prompt: Text description of image
            style: One of photorealistic, illustration, anime, sketch
            aspect_ratio: Aspect ratio hint (e.g., "16:9", "9:16", "1:1")
            seed: Optional seed for repeatable output

        Returns:
            ImageGenerationResult with image bytes
        """
        pass


class AudioProvider(ABC):
    """
    Abstract base class for speech providers.

    All audio providers (Gemini TTS, Mock) must implement this interface.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_speech(self, text: str, voice: Voice) -> AudioGenerationResult:
        """
        Generate speech from text.

        Args:
            text: Text to convert to speech
            voice: Fully merged voice settings

        Returns:
            AudioGenerationResult with WAV bytes and duration
        """
        pass


class MusicProvider(ABC):
    """
    Abstract base class for music generation providers.

    All music providers (Lyria, Mock) must implement this interface.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_music(
        self,
        prompts: List[WeightedPrompt],
        duration: float,
        config: Optional[MusicConfig] = None,
        seed: Optional[int] = None
    ) -> MusicGenerationResult:
        """
        Generate background music.

        Args:
            prompts: Weighted text prompts steering the music
            duration: Target duration in seconds
            config: Generation controls (bpm, density, ...)
            seed: Optional seed for repeatable output

        Returns:
            MusicGenerationResult with WAV bytes
        """
        pass
