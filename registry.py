"""Active voices keyed by note, at most one per note."""
import logging

from errors import VoiceAlreadyActive
from tuning import NoteId, note_frequency
from voice import Voice

logger = logging.getLogger(__name__)


class VoiceRegistry:
    """Logical membership of held notes.

    A voice leaves the registry the moment its note is released. Its
    oscillator keeps sounding through the release tail, so stopped voices are
    parked in ``releasing`` until ``reap`` sees their stop time pass.
    """

    def __init__(self, engine, settings):
        self.engine = engine
        self.settings = settings
        self.voices = {}      # NoteId -> Voice
        self.releasing = []   # stopped voices still in their tail

    def start_voice(self, note):
        """Start a voice, refusing notes that already have one."""
        note = NoteId.parse(note)
        if note in self.voices:
            raise VoiceAlreadyActive(note)
        voice = Voice.start(note, self.settings, self.engine.output_bus, self.engine.current_time)
        self.voices[note] = voice
        return voice

    def note_on(self, note):
        note = NoteId.parse(note)
        if note in self.voices:
            return None
        return self.start_voice(note)

    def note_off(self, note):
        note = NoteId.parse(note)
        voice = self.voices.pop(note, None)
        if voice is None:
            return None
        stop_time = voice.stop(self.settings, self.engine.current_time)
        self.releasing.append(voice)
        return stop_time

    def all_notes_off(self):
        for note in list(self.voices):
            self.note_off(note)

    def is_active(self, note):
        return NoteId.parse(note) in self.voices

    def active_count(self):
        return len(self.voices)

    def active_notes(self):
        return sorted(self.voices, key=lambda n: n.semitones)

    def get(self, note):
        return self.voices.get(NoteId.parse(note))

    def update_all(self, fn):
        """Apply fn(voice) to every held voice; returns {note: result}."""
        return {note: fn(voice) for note, voice in list(self.voices.items())}

    def retune_all(self, base_frequency):
        def retune(voice):
            freq = note_frequency(voice.note, base_frequency)
            voice.retune(freq)
            return freq
        freqs = self.update_all(retune)
        if freqs:
            logger.debug("retuned %d voices to base %.2f Hz", len(freqs), base_frequency)
        return freqs

    def rewave_all(self, waveform):
        self.update_all(lambda voice: voice.rewave(waveform))

    def reap(self, now=None):
        now = self.engine.current_time if now is None else now
        done = [v for v in self.releasing if v.released(now)]
        for voice in done:
            self.releasing.remove(voice)
        return done

    def releasing_count(self):
        return len(self.releasing)

    def __len__(self):
        return len(self.voices)

    def __contains__(self, note):
        return self.is_active(note)
