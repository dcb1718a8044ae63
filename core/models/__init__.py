"""Data models for Reelsmith"""

from .generation import (
    FileSource,
    GenerateImageParams,
    GenerateMusicParams,
    ImageSource,
    ImageStyle,
    MusicConfig,
    MusicSource,
    WeightedPrompt,
    is_generate_source,
    parse_image_source,
    parse_music_source,
)
from .project import (
    Animation,
    AnimationType,
    AudioSettings,
    Background,
    BackgroundMusic,
    CompositeContent,
    ImageContent,
    ImageFit,
    Layer,
    Narration,
    NarrationDefaults,
    NarrationTiming,
    Position,
    Project,
    ProjectSettings,
    Scene,
    SceneType,
    TextContent,
    TextStyle,
    Transition,
    TransitionType,
    VideoContent,
    VideoTrim,
    Voice,
    VolumeMix,
)
from .render import (
    NarrationMix,
    NarrationResult,
    ProgressCallback,
    RenderConfig,
    RenderOptions,
    RenderResult,
)
from .cache import (
    CacheEntry,
    CacheManifest,
    CacheSize,
    CacheStatus,
    CacheUsage,
)
