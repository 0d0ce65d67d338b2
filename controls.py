"""Control surface: what the window's keys, mouse and sliders call into."""
import logging

from config import SynthSettings
from engine import AudioEngine
from registry import VoiceRegistry
from tuning import NoteId

logger = logging.getLogger(__name__)


class ControlSurface:
    """Routes UI events to the registry, the master bus and the scope.

    Audio starts on the first user interaction. Until then the scope stays
    Idle and there is no engine; once it is Live it stays Live. With
    ``open_stream=False`` the engine is never attached to a sound device
    and has to be advanced with ``engine.render``.
    """

    def __init__(self, settings=None, visualizer=None, engine_factory=AudioEngine, open_stream=True):
        self.settings = settings if settings is not None else SynthSettings()
        self.visualizer = visualizer
        self.engine_factory = engine_factory
        self.open_stream = open_stream
        self.engine = None
        self.registry = None
        self.current_note = "-"
        self.current_freq = "-"

    @property
    def is_live(self):
        return self.engine is not None

    def on_first_user_interaction(self):
        """Start audio and switch the scope to Live. Only the first call does anything."""
        if self.engine is not None:
            return False
        engine = self.engine_factory(volume=self.settings.volume)
        if self.open_stream:
            engine.start()  # AudioInitError propagates; we stay Idle
        self.engine = engine
        self.registry = VoiceRegistry(engine, self.settings)
        if self.visualizer is not None:
            self.visualizer.go_live(engine.analyser)
        logger.info("audio live")
        return True

    # ---------- Notes ----------
    def on_note_down(self, note):
        note = NoteId.parse(note)
        self.on_first_user_interaction()
        voice = self.registry.note_on(note)
        if voice is None:
            return None
        self._show_note(note, voice.frequency)
        if self.visualizer is not None:
            self.visualizer.note_on(note)
        return voice

    def on_note_up(self, note):
        note = NoteId.parse(note)
        if self.registry is None:
            return None
        stop_time = self.registry.note_off(note)
        if self.visualizer is not None:
            self.visualizer.note_off(note)
        if self.registry.active_count() == 0:
            self.current_note = "-"
            self.current_freq = "-"
        return stop_time

    def panic(self):
        if self.registry is None:
            return
        self.registry.all_notes_off()
        if self.visualizer is not None:
            self.visualizer.active.clear()
        self.current_note = "-"
        self.current_freq = "-"

    # ---------- Settings ----------
    def on_waveform_change(self, waveform):
        self.settings.waveform = waveform
        if self.visualizer is not None:
            self.visualizer.set_waveform(waveform)
        if self.registry is not None:
            self.registry.rewave_all(waveform)

    def on_base_frequency_change(self, hz):
        """Retune held notes; returns {note: new frequency} for each of them."""
        self.settings.base_frequency = hz
        if self.registry is None:
            return {}
        freqs = self.registry.retune_all(self.settings.base_frequency)
        for note, freq in freqs.items():
            self._show_note(note, freq)
        return freqs

    def on_volume_change(self, level):
        self.settings.volume = level
        if self.engine is not None:
            self.engine.master.gain.value = self.settings.volume

    def on_attack_change(self, seconds):
        self.settings.attack = seconds

    def on_release_change(self, seconds):
        self.settings.release = seconds

    # ---------- Housekeeping ----------
    def tick(self):
        """Drop voices whose release tail has finished."""
        if self.registry is None:
            return []
        return self.registry.reap()

    def close(self):
        if self.engine is not None:
            self.engine.close()

    def _show_note(self, note, freq):
        self.current_note = note.label
        self.current_freq = f"{freq:.2f}"
