"""
Sound effect playback for script-triggered sounds.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pygame

from storyvm.core.events import EventBus, WorldEvent


class SoundPlayer:
    """
    Plays one-shot sound effects requested by scripts and dialogue.

    Sounds are loaded lazily and cached by path. A missing or unreadable
    file is logged and ignored so that a bad asset never interrupts a
    handler chain.
    """

    def __init__(self, event_bus: EventBus | None = None, volume: float = 1.0):
        self.event_bus = event_bus
        self._volume = max(0.0, min(1.0, volume))
        self._sound_cache: dict[str, pygame.mixer.Sound] = {}
        self._initialized: bool = False

    def init(self) -> None:
        """Initialize the mixer if the host has not already done so."""
        if pygame.mixer.get_init():
            self._initialized = True
            return

        try:
            pygame.mixer.init()
            self._initialized = True
            logging.info("Sound player initialized.")
        except pygame.error as e:
            logging.error(f"Failed to initialize sound player: {e}")

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, value))

    def _get_sound(self, path: str) -> pygame.mixer.Sound | None:
        if not self._initialized:
            return None

        if path not in self._sound_cache:
            if not Path(path).exists():
                logging.warning(f"Sound file not found: {path}")
                return None
            try:
                self._sound_cache[path] = pygame.mixer.Sound(path)
            except pygame.error as e:
                logging.error(f"Failed to load sound {path}: {e}")
                return None

        return self._sound_cache[path]

    def play(self, path: str) -> pygame.mixer.Channel | None:
        """
        Play a sound effect once.

        Returns:
            The channel used, or None if nothing was played.
        """
        sound = self._get_sound(path)
        if not sound:
            return None

        channel = sound.play()
        if channel:
            channel.set_volume(self._volume)

        if self.event_bus:
            self.event_bus.publish(WorldEvent.SOUND_PLAYED, path=path)

        return channel
