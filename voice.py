"""One sounding note: an oscillator feeding its own envelope gain stage."""
import logging

from tuning import NoteId, note_frequency

logger = logging.getLogger(__name__)


class Voice:
    def __init__(self, note, frequency, oscillator, gain, started_at):
        self.note = note
        self.frequency = frequency
        self.oscillator = oscillator
        self.gain = gain
        self.started_at = started_at
        self.stop_time = None

    @classmethod
    def start(cls, note, settings, output_bus, now):
        """Create, connect and start a voice; the attack ramps 0 -> 1 from `now`."""
        note = NoteId.parse(note)
        frequency = note_frequency(note, settings.base_frequency)
        engine = output_bus.engine

        oscillator = engine.create_oscillator(settings.waveform, frequency)
        gain = engine.create_gain(0.0, transient=True)
        gain.gain.set_value_at_time(0.0, now)
        gain.gain.linear_ramp_to_value_at_time(1.0, now + settings.attack)

        oscillator.connect(gain)
        gain.connect(output_bus)
        oscillator.start(now)
        logger.debug("voice %s started at %.3fs, %.2f Hz", note, now, frequency)
        return cls(note, frequency, oscillator, gain, now)

    @property
    def stopped(self):
        return self.stop_time is not None

    def retune(self, frequency):
        self.frequency = float(frequency)
        self.oscillator.set_frequency(self.frequency)

    def rewave(self, waveform):
        self.oscillator.set_waveform(waveform)

    def stop(self, settings, now):
        """Release from the current level; returns when the oscillator terminates."""
        if self.stopped:
            return self.stop_time
        param = self.gain.gain
        level = param.value_at(now)
        param.cancel_scheduled_values(now)
        param.set_value_at_time(level, now)
        param.linear_ramp_to_value_at_time(0.0, now + settings.release)
        self.stop_time = now + settings.release
        self.oscillator.stop(self.stop_time)
        logger.debug("voice %s releasing from %.3f, ends at %.3fs", self.note, level, self.stop_time)
        return self.stop_time

    def released(self, now):
        """True once the scheduled termination has passed."""
        return self.stopped and now >= self.stop_time

    def __repr__(self):
        state = f"stop={self.stop_time:.3f}" if self.stopped else "held"
        return f"<Voice {self.note} {self.frequency:.2f}Hz {state}>"
