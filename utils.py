import numpy as np
from config import *

# ---------------------- Waveforms ----------------------
# Every generator takes phases in cycles (1.0 = one period) and returns [-1, 1].

def sine(phases):
    return np.sin(2*np.pi*phases)

def square(phases):
    return np.where((phases % 1.0) < 0.5, 1.0, -1.0)

def sawtooth(phases):
    p = phases % 1.0
    return 2.0 * (p - np.floor(0.5 + p))

def triangle(phases):
    return 1.0 - 4.0 * np.abs(0.5 - ((phases + 0.25) % 1.0))

WAVE_GENERATORS = {
    WAVE_SINE: sine,
    WAVE_SQUARE: square,
    WAVE_SAW: sawtooth,
    WAVE_TRIANGLE: triangle,
}

def gen_waveform(wave_type, phases):
    return WAVE_GENERATORS[wave_type](phases)

def phase_block(phase, freq, frames, sample_rate=SAMPLE_RATE):
    """Phases for `frames` samples starting at `phase`, plus the phase to carry over."""
    inc = freq / sample_rate
    phases = phase + np.arange(frames) * inc
    return phases, (phase + frames * inc) % 1.0

# ---------------------- Scope samples ----------------------
def to_unsigned_bytes(samples):
    """Float samples in [-1, 1] to 8-bit unsigned, 128 = zero crossing."""
    scaled = np.floor(128.0 * (1.0 + np.asarray(samples, dtype=np.float64)))
    return np.clip(scaled, 0, 255).astype(np.uint8)

def clamp(value, lo, hi):
    return max(lo, min(hi, value))
