import sys
import types

import numpy as np
import pytest

from engine import AudioEngine, AudioParam
from errors import AudioInitError, InvalidSetting


def test_linear_ramp_interpolates(engine):
    p = AudioParam(engine, 0.0)
    p.set_value_at_time(0.0, 0.0)
    p.linear_ramp_to_value_at_time(1.0, 1.0)
    assert p.value_at(0.0) == 0.0
    assert p.value_at(0.5) == pytest.approx(0.5)
    assert p.value_at(1.0) == 1.0
    assert p.value_at(3.0) == 1.0


def test_zero_length_ramp_jumps(engine):
    p = AudioParam(engine, 0.0)
    p.set_value_at_time(0.0, 0.25)
    p.linear_ramp_to_value_at_time(1.0, 0.25)
    v = p.value_at(0.25)
    assert v == 1.0
    assert not np.isnan(v)
    assert p.value_at(0.2) == 0.0


def test_cancel_drops_future_events(engine):
    p = AudioParam(engine, 0.0)
    p.set_value_at_time(0.0, 0.0)
    p.linear_ramp_to_value_at_time(1.0, 1.0)
    p.cancel_scheduled_values(0.5)
    assert p.value_at(0.9) == 0.0


def test_value_setter_overrides_automation(engine):
    p = AudioParam(engine, 0.0)
    p.linear_ramp_to_value_at_time(1.0, 5.0)
    p.value = 0.7
    assert p.value == pytest.approx(0.7)
    assert p.value_at(6.0) == pytest.approx(0.7)


def test_prune_keeps_ramp_in_progress(engine):
    p = AudioParam(engine, 0.0)
    p.set_value_at_time(0.0, 0.0)
    p.linear_ramp_to_value_at_time(1.0, 1.0)
    p.prune(0.5)
    assert p.value_at(0.75) == pytest.approx(0.75)


def test_silent_engine_reads_midpoint(engine):
    engine.render(engine.block_size)
    buf = np.zeros(engine.analyser.frequency_bin_count, dtype=np.uint8)
    engine.analyser.get_byte_time_domain_data(buf)
    assert (buf == 128).all()
    assert engine.current_time == pytest.approx(engine.block_size / engine.sample_rate)


def test_oscillator_through_bus_reaches_tap(engine):
    osc = engine.create_oscillator('square', 50.0)
    osc.connect(engine.master)
    osc.start(0.0)
    out = engine.render(64)
    # square at full scale through the 0.5 master gain
    assert np.allclose(np.abs(out), 0.5)
    buf = np.zeros(32, dtype=np.uint8)
    engine.analyser.get_byte_time_domain_data(buf)
    assert set(buf.tolist()) <= {64, 192}


def test_oscillator_silent_before_start(engine):
    osc = engine.create_oscillator('sine', 100.0)
    osc.connect(engine.master)
    osc.start(0.05)
    out = engine.render(100)
    assert not out[:50].any()
    assert out[50:].any()


def test_finished_sources_are_disconnected(engine):
    osc = engine.create_oscillator('sine', 100.0)
    gain = engine.create_gain(1.0, transient=True)
    osc.connect(gain)
    gain.connect(engine.master)
    osc.start(0.0)
    osc.stop(0.02)
    engine.render(10)
    assert gain in engine.master.inputs
    engine.render(20)
    assert osc not in gain.inputs
    assert gain not in engine.master.inputs
    assert not engine.render(10).any()


def test_phase_is_continuous_across_retune(engine):
    osc = engine.create_oscillator('sawtooth', 100.0)
    osc.connect(engine.master)
    osc.start(0.0)
    engine.render(5)
    phase = osc.phase
    assert phase == pytest.approx(0.5)
    osc.set_frequency(200.0)
    assert osc.phase == phase
    engine.render(1)
    assert osc.phase == pytest.approx(0.7)


def test_unknown_waveform_rejected(engine):
    with pytest.raises(InvalidSetting):
        engine.create_oscillator('noise', 100.0)
    osc = engine.create_oscillator('sine', 100.0)
    with pytest.raises(InvalidSetting):
        osc.set_waveform('pulse')
    assert osc.waveform == 'sine'


def test_start_without_sounddevice_raises(monkeypatch):
    monkeypatch.setitem(sys.modules, "sounddevice", None)
    eng = AudioEngine()
    with pytest.raises(AudioInitError):
        eng.start()
    assert eng.stream is None


class FailingStream:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        FailingStream.instances.append(self)

    def start(self):
        raise RuntimeError("device busy")

    def close(self):
        self.closed = True


def test_failed_stream_start_closes_the_stream(monkeypatch):
    FailingStream.instances = []
    fake_sd = types.SimpleNamespace(OutputStream=FailingStream)
    monkeypatch.setitem(sys.modules, "sounddevice", fake_sd)
    eng = AudioEngine()
    with pytest.raises(AudioInitError):
        eng.start()
    assert eng.stream is None
    assert len(FailingStream.instances) == 1
    assert FailingStream.instances[0].closed
    with pytest.raises(AudioInitError):
        eng.start()
    assert all(s.closed for s in FailingStream.instances)


def test_render_zero_frames(engine):
    osc = engine.create_oscillator('square', 50.0)
    osc.connect(engine.master)
    osc.start(0.0)
    engine.render(32)
    buf = np.zeros(32, dtype=np.uint8)
    before = engine.analyser.get_byte_time_domain_data(buf).copy()
    out = engine.render(0)
    assert out.shape == (0,)
    assert engine.current_time == pytest.approx(0.032)
    assert (engine.analyser.get_byte_time_domain_data(buf) == before).all()
