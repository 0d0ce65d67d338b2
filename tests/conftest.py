import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pytest

from config import SynthSettings
from controls import ControlSurface
from engine import AudioEngine
from registry import VoiceRegistry

SR = 1000  # round numbers keep envelope times exact


@pytest.fixture
def settings():
    return SynthSettings()


@pytest.fixture
def engine():
    return AudioEngine(sample_rate=SR, block_size=10, fft_size=64)


@pytest.fixture
def registry(engine, settings):
    return VoiceRegistry(engine, settings)


@pytest.fixture
def controls(settings):
    def factory(volume):
        return AudioEngine(sample_rate=SR, block_size=10, fft_size=64, volume=volume)
    return ControlSurface(settings, engine_factory=factory, open_stream=False)
