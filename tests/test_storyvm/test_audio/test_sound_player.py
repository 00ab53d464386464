import pytest
from unittest.mock import MagicMock
from storyvm.audio.manager import SoundPlayer
from storyvm.core.events import WorldEvent

def test_sound_player_init():
    import pygame
    # Simulate mixer not initialized yet
    pygame.mixer.get_init.return_value = None

    player = SoundPlayer()
    player.init()

    assert player._initialized
    pygame.mixer.init.assert_called_once()

def test_volume_is_clamped():
    player = SoundPlayer(volume=3.0)
    assert player.volume == 1.0

    player.volume = -1
    assert player.volume == 0.0

def test_play_uses_cache_and_publishes(event_bus):
    received = []
    def on_sound(event):
        received.append(event)
    event_bus.subscribe(WorldEvent.SOUND_PLAYED, on_sound)

    player = SoundPlayer(event_bus, volume=0.5)
    player._initialized = True

    sound = MagicMock()
    channel = MagicMock()
    sound.play.return_value = channel
    player._sound_cache["door.ogg"] = sound

    assert player.play("door.ogg") is channel
    channel.set_volume.assert_called_with(0.5)
    assert received[0]["path"] == "door.ogg"

def test_missing_file_is_ignored(tmp_path, caplog):
    player = SoundPlayer()
    player._initialized = True

    assert player.play(str(tmp_path / "missing.ogg")) is None
    assert "not found" in caplog.text

def test_play_before_init_does_nothing():
    player = SoundPlayer()
    assert player.play("door.ogg") is None
