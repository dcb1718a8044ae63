"""Provider configuration and factory"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .providers import (
    PROVIDER_REGISTRY,
    AudioProvider,
    ImageProvider,
    MusicProvider,
    ProviderConfig,
    ProviderType,
)

logger = logging.getLogger(__name__)

# Provider name per kind for each backend
BACKENDS = {
    ProviderType.GEMINI: {"image": "gemini", "audio": "gemini_tts", "music": "lyria"},
    ProviderType.MOCK: {"image": "mock", "audio": "mock", "music": "mock"},
}


@dataclass
class ProviderSet:
    """The three generation providers one render uses"""
    image: ImageProvider
    audio: AudioProvider
    music: MusicProvider


class ProviderFactory:
    """Factory for creating generation providers from configuration"""

    @staticmethod
    def create(kind: str, name: str, config: Optional[ProviderConfig] = None):
        """
        Instantiate one provider from the registry.

        Args:
            kind: "image", "audio" or "music"
            name: Registered provider name within that kind
            config: Provider configuration (provider default when None)
        """
        try:
            entry = PROVIDER_REGISTRY[kind][name]
        except KeyError:
            raise ValueError(f"Unknown {kind} provider: {name}")
        return entry["class"](config)

    @staticmethod
    def create_from_env(
        backend: Optional[str] = None,
        api_key: Optional[str] = None
    ) -> ProviderSet:
        """
        Create providers from environment variables.

        Environment variables:
        - REELSMITH_PROVIDER: "gemini" or "mock" (defaults to "gemini")
        - GEMINI_API_KEY: API key, looked up lazily on first generation

        Args:
            backend: Override backend (defaults to REELSMITH_PROVIDER env var)
            api_key: Explicit API key (skips keychain/config/env lookup)

        Returns:
            ProviderSet for the chosen backend
        """
        backend_str = backend or os.getenv("REELSMITH_PROVIDER", ProviderType.GEMINI.value)

        try:
            backend_enum = ProviderType(backend_str.lower())
        except ValueError:
            logger.warning(f"Invalid provider backend '{backend_str}', falling back to gemini")
            backend_enum = ProviderType.GEMINI

        names = BACKENDS[backend_enum]
        config = ProviderConfig(api_key=api_key) if api_key else None
        return ProviderSet(
            image=ProviderFactory.create("image", names["image"], config),
            audio=ProviderFactory.create("audio", names["audio"], config),
            music=ProviderFactory.create("music", names["music"], config),
        )

    @staticmethod
    def create_mock() -> ProviderSet:
        """Create mock providers (for testing and offline renders)"""
        return ProviderFactory.create_from_env(ProviderType.MOCK.value)
