# errors.py


class SynthError(Exception):
    """Base class for synth errors."""


class UnknownNote(SynthError, KeyError):
    """Note identifier outside the keyboard range."""

    def __init__(self, note):
        super().__init__(note)
        self.note = note

    def __str__(self):
        return f"unknown note: {self.note!r}"


class VoiceAlreadyActive(SynthError):
    """A voice was started for a note that is already sounding."""

    def __init__(self, note):
        super().__init__(f"voice already active for {note}")
        self.note = note


class AudioInitError(SynthError):
    """The audio output could not be opened."""


class InvalidSetting(SynthError, ValueError):
    pass
