"""
Error types raised across the render pipeline.

Every error carries a machine-readable ``code`` and a ``details`` dict so the
CLI (or any other caller) can report failures without parsing messages.
"""

from typing import Any, Dict, Optional


class ReelsmithError(Exception):
    """Base class for all structured errors."""

    def __init__(
        self,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class ParseError(ReelsmithError):
    """Raised when a project file cannot be read or decoded."""
    pass


class ValidationError(ReelsmithError):
    """Raised when project content violates a field-level rule."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class RenderError(ReelsmithError):
    """Raised when a scene cannot be rendered."""
    pass


class UnknownSceneTypeError(RenderError):
    """Raised when no renderer is registered for a scene type."""

    def __init__(self, scene_type: str, registered: Optional[list] = None):
        super().__init__(
            f"Unknown scene type: {scene_type}",
            "UNKNOWN_SCENE_TYPE",
            {"type": scene_type, "registered": registered or []},
        )
        self.scene_type = scene_type


class ProcessError(ReelsmithError):
    """Raised when an external process cannot be started or is unavailable."""
    pass


class FFmpegError(ProcessError):
    """Raised when an FFmpeg invocation exits with an error."""
    pass


class GenerationError(ReelsmithError):
    """Raised when a deferred-generation request cannot be fulfilled."""

    def __init__(
        self,
        message: str,
        code: str = "GENERATION_FAILED",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code, details)


class NarrationError(ReelsmithError):
    """Raised when narration audio cannot be produced for a scene."""

    def __init__(
        self,
        message: str,
        scene_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        merged = dict(details or {})
        if scene_id is not None:
            merged.setdefault("sceneId", scene_id)
        super().__init__(message, "NARRATION_ERROR", merged)
        self.scene_id = scene_id
