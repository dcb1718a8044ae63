"""Music generation providers"""

from .lyria import LyriaMusicProvider

__all__ = ["LyriaMusicProvider"]
