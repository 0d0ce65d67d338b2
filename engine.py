"""Block-based audio engine: a sample clock, a small node graph and an output stream.

Nodes are pulled once per block by ``AudioEngine.render``. Everything that
changes the graph or schedules automation takes the engine lock, so the
control thread can schedule while the stream callback is rendering.
"""
import logging
import threading

import numpy as np

from config import SAMPLE_RATE, BLOCK_SIZE, CHANNELS, FFT_SIZE, DEFAULT_VOLUME, WAVEFORMS
from errors import AudioInitError, InvalidSetting
from utils import gen_waveform, phase_block, to_unsigned_bytes

logger = logging.getLogger(__name__)


class AudioParam:
    """A value with a timeline of set / linear-ramp events on the engine clock."""

    def __init__(self, engine, value):
        self.engine = engine
        self._anchor = (0.0, float(value))
        self._events = []  # (time, value, is_ramp), sorted by time

    @property
    def value(self):
        return self.value_at(self.engine.current_time)

    @value.setter
    def value(self, v):
        with self.engine.lock:
            self._events = []
            self._anchor = (self.engine.current_time, float(v))

    def set_value_at_time(self, value, when):
        self._insert(when, value, False)

    def linear_ramp_to_value_at_time(self, value, when):
        self._insert(when, value, True)

    def cancel_scheduled_values(self, when):
        with self.engine.lock:
            self._events = [ev for ev in self._events if ev[0] < when]

    def value_at(self, when):
        with self.engine.lock:
            return float(self._evaluate(np.array([when], dtype=np.float64))[0])

    def values(self, start, frames, sample_rate):
        times = start + np.arange(frames) / sample_rate
        return self._evaluate(times)

    def prune(self, when):
        """Fold events that are fully in the past into the anchor."""
        past = [ev for ev in self._events if ev[0] <= when]
        if past:
            t, v, _ = past[-1]
            self._anchor = (t, v)
            self._events = self._events[len(past):]

    def _insert(self, when, value, is_ramp):
        with self.engine.lock:
            self._events.append((float(when), float(value), is_ramp))
            self._events.sort(key=lambda ev: ev[0])

    def _evaluate(self, times):
        prev_t, prev_v = self._anchor
        out = np.full(times.shape, prev_v, dtype=np.float64)
        for t, v, is_ramp in self._events:
            if is_ramp and t > prev_t:
                ramping = (times > prev_t) & (times < t)
                out[ramping] = prev_v + (v - prev_v) * (times[ramping] - prev_t) / (t - prev_t)
            # an event at or before now has already landed, including zero-length ramps
            out[times >= t] = v
            prev_t, prev_v = t, v
        return out


class AudioNode:
    def __init__(self, engine):
        self.engine = engine
        self.inputs = []
        self.outputs = []

    def connect(self, dest):
        with self.engine.lock:
            dest.inputs.append(self)
            self.outputs.append(dest)
        return dest

    def disconnect(self):
        with self.engine.lock:
            for dest in self.outputs:
                if self in dest.inputs:
                    dest.inputs.remove(self)
            self.outputs = []

    def finished(self, when):
        return False

    def pull(self, start, frames):
        mix = np.zeros(frames, dtype=np.float64)
        end = start + frames / self.engine.sample_rate
        for node in list(self.inputs):
            mix += node.pull(start, frames)
            if node.finished(end):
                node.disconnect()
        return mix


class OscillatorNode(AudioNode):
    """Free-running oscillator; frequency and waveform can change while it plays."""

    def __init__(self, engine, waveform, frequency):
        super().__init__(engine)
        if waveform not in WAVEFORMS:
            raise InvalidSetting(f"unknown waveform {waveform!r}")
        self.waveform = waveform
        self.frequency = float(frequency)
        self.phase = 0.0
        self.start_time = None
        self.stop_time = None

    def start(self, when=None):
        with self.engine.lock:
            self.start_time = self.engine.current_time if when is None else float(when)

    def stop(self, when=None):
        with self.engine.lock:
            self.stop_time = self.engine.current_time if when is None else float(when)

    def set_frequency(self, frequency):
        with self.engine.lock:
            self.frequency = float(frequency)

    def set_waveform(self, waveform):
        if waveform not in WAVEFORMS:
            raise InvalidSetting(f"unknown waveform {waveform!r}")
        with self.engine.lock:
            self.waveform = waveform

    def finished(self, when):
        return self.stop_time is not None and when >= self.stop_time

    def pull(self, start, frames):
        if self.start_time is None:
            return np.zeros(frames, dtype=np.float64)
        phases, self.phase = phase_block(self.phase, self.frequency, frames, self.engine.sample_rate)
        block = gen_waveform(self.waveform, phases)
        times = start + np.arange(frames) / self.engine.sample_rate
        live = times >= self.start_time
        if self.stop_time is not None:
            live &= times < self.stop_time
        return np.where(live, block, 0.0)


class GainNode(AudioNode):
    """Gain stage. A transient stage (one per voice) is done once every source
    feeding it has been reaped; the master bus is not transient."""

    def __init__(self, engine, gain=1.0, transient=False):
        super().__init__(engine)
        self.gain = AudioParam(engine, gain)
        self.transient = transient
        self._had_input = False

    def finished(self, when):
        return self.transient and self._had_input and not self.inputs

    def pull(self, start, frames):
        if self.inputs:
            self._had_input = True
        mix = super().pull(start, frames)
        gains = self.gain.values(start, frames, self.engine.sample_rate)
        self.gain.prune(start + frames / self.engine.sample_rate)
        return mix * gains


class AnalyserNode(AudioNode):
    """Pass-through tap keeping the most recent `fft_size` samples."""

    def __init__(self, engine, fft_size=FFT_SIZE):
        super().__init__(engine)
        self.fft_size = fft_size
        self._ring = np.zeros(fft_size, dtype=np.float64)

    @property
    def frequency_bin_count(self):
        return self.fft_size // 2

    def pull(self, start, frames):
        block = super().pull(start, frames)
        if frames == 0:
            return block
        if frames >= self.fft_size:
            self._ring[:] = block[-self.fft_size:]
        else:
            self._ring = np.roll(self._ring, -frames)
            self._ring[-frames:] = block
        return block

    def get_byte_time_domain_data(self, out):
        """Fill `out` (uint8) with the latest len(out) samples; 128 is silence."""
        with self.engine.lock:
            n = min(len(out), self.fft_size)
            out[:n] = to_unsigned_bytes(self._ring[-n:])
        return out


class AudioEngine:
    """Sample clock plus master bus -> analyser -> output.

    ``render`` advances the clock. With ``start()`` a sounddevice stream
    calls it from its own thread; without, callers drive it directly.
    """

    def __init__(self, sample_rate=SAMPLE_RATE, block_size=BLOCK_SIZE, fft_size=FFT_SIZE,
                 volume=DEFAULT_VOLUME):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.lock = threading.RLock()
        self.frames_rendered = 0
        self.stream = None
        self.master = GainNode(self, volume)
        self.analyser = AnalyserNode(self, fft_size)
        self.master.connect(self.analyser)

    @property
    def current_time(self):
        return self.frames_rendered / self.sample_rate

    @property
    def output_bus(self):
        return self.master

    def create_oscillator(self, waveform, frequency):
        return OscillatorNode(self, waveform, frequency)

    def create_gain(self, gain=1.0, transient=False):
        return GainNode(self, gain, transient)

    def render(self, frames):
        with self.lock:
            block = self.analyser.pull(self.current_time, frames)
            self.frames_rendered += frames
        return np.clip(block, -1.0, 1.0).astype(np.float32)

    # ---------- Output stream ----------
    def start(self):
        if self.stream is not None:
            return
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise AudioInitError(f"sounddevice unavailable: {e}") from e
        stream = None
        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=CHANNELS,
                dtype='float32',
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            if stream is not None:
                stream.close()
            raise AudioInitError(f"could not open audio output: {e}") from e
        self.stream = stream
        logger.info("audio stream open: %d Hz, block %d", self.sample_rate, self.block_size)

    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.warning("audio stream status: %s", status)
        outdata[:, 0] = self.render(frames)

    def close(self):
        if self.stream is None:
            return
        self.stream.stop()
        self.stream.close()
        self.stream = None
        logger.info("audio stream closed")
