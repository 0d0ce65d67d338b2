import os
from dataclasses import dataclass

from errors import InvalidSetting

# ---------------------- Config ----------------------
SAMPLE_RATE = 44100
CHANNELS = 1
BLOCK_SIZE = 256       # smaller = lower latency, but risk crackles
FFT_SIZE = 2048        # analyser window; the scope shows FFT_SIZE // 2 samples

WAVE_SINE = 'sine'
WAVE_SQUARE = 'square'
WAVE_SAW = 'sawtooth'
WAVE_TRIANGLE = 'triangle'
WAVEFORMS = (WAVE_SINE, WAVE_SQUARE, WAVE_SAW, WAVE_TRIANGLE)

# Defaults for a new session
DEFAULT_WAVEFORM = WAVE_SINE
DEFAULT_BASE_FREQUENCY = 261.63  # C4
DEFAULT_VOLUME = 0.5
ENV_ATTACK = 0.1
ENV_RELEASE = 0.3

# Control ranges (what the shell lets the user dial in)
BASE_FREQ_MIN = 65.41
BASE_FREQ_MAX = 1046.5
BASE_FREQ_STEP = 5.0
VOLUME_STEP = 0.05
ENV_MAX = 2.0
ENV_STEP = 0.05

# Window
WINDOW_SIZE = (1000, 700)
WINDOW_TITLE = "Oscilloscope Synth"
FPS = 60

LOG_LEVEL = os.environ.get("OSCSYNTH_LOG_LEVEL", "WARNING").upper()


@dataclass
class SynthSettings:
    """Session configuration read by voice creation and the control surface.

    Every assignment is validated, so a bad value raises InvalidSetting and
    leaves the previous value in place.
    """
    waveform: str = DEFAULT_WAVEFORM
    base_frequency: float = DEFAULT_BASE_FREQUENCY
    volume: float = DEFAULT_VOLUME
    attack: float = ENV_ATTACK
    release: float = ENV_RELEASE

    def __setattr__(self, name, value):
        super().__setattr__(name, _validate(name, value))


def _validate(name, value):
    if name == 'waveform':
        if value not in WAVEFORMS:
            raise InvalidSetting(f"waveform must be one of {WAVEFORMS}, got {value!r}")
        return value
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidSetting(f"{name} must be a number, got {value!r}") from None
    if value != value:  # NaN
        raise InvalidSetting(f"{name} must be a number")
    if name == 'base_frequency' and value <= 0:
        raise InvalidSetting(f"base_frequency must be positive, got {value}")
    if name == 'volume' and not 0.0 <= value <= 1.0:
        raise InvalidSetting(f"volume must be in [0, 1], got {value}")
    if name in ('attack', 'release') and value < 0:
        raise InvalidSetting(f"{name} must be non-negative, got {value}")
    return value
