"""Equal-temperament tuning for the 17-key keyboard (C4 up to E5)."""
from enum import Enum

from errors import UnknownNote


class NoteId(Enum):
    C = 0
    CS = 1
    D = 2
    DS = 3
    E = 4
    F = 5
    FS = 6
    G = 7
    GS = 8
    A = 9
    AS = 10
    B = 11
    C5 = 12
    CS5 = 13
    D5 = 14
    DS5 = 15
    E5 = 16

    @property
    def semitones(self):
        return self.value

    @property
    def label(self):
        return self.name.replace('S', '#', 1) if 'S' in self.name else self.name

    @property
    def is_sharp(self):
        return 'S' in self.name

    @classmethod
    def parse(cls, note):
        """Accept a NoteId or its label ('C#', 'E5')."""
        if isinstance(note, cls):
            return note
        try:
            return _BY_LABEL[note]
        except (KeyError, TypeError):
            raise UnknownNote(note) from None

    def __str__(self):
        return self.label


_BY_LABEL = {n.label: n for n in NoteId}

# multiplier = 2 ** (semitones / 12), computed once
TUNING_TABLE = {n: 2.0 ** (n.semitones / 12.0) for n in NoteId}
TUNING_TABLE[NoteId.C] = 1.0
TUNING_TABLE[NoteId.C5] = 2.0


def frequency_multiplier(note):
    return TUNING_TABLE[NoteId.parse(note)]


def note_frequency(note, base_frequency):
    return base_frequency * frequency_multiplier(note)
