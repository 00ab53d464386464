"""
Audio module - one-shot sound effects.
"""

from storyvm.audio.manager import SoundPlayer

__all__ = ["SoundPlayer"]
