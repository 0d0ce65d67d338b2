# ---------------------- Key -> Note mapping ----------------------
from tuning import NoteId

# Home row plays the white keys, the row above plays the black keys.
WHITE_KEYS = ['A','S','D','F','G','H','J','K','L',';']          # C D E F G A B C5 D5 E5
BLACK_KEYS = {'W':'C#', 'E':'D#', 'T':'F#', 'Y':'G#', 'U':'A#', 'O':'C#5', 'P':'D#5'}

WHITE_NOTES = ['C','D','E','F','G','A','B','C5','D5','E5']
# White-key slot each black key sits to the right of
BLACK_SLOTS = {'C#':0, 'D#':1, 'F#':3, 'G#':4, 'A#':5, 'C#5':7, 'D#5':8}

def build_keymap():
    """pygame key code -> NoteId. pygame reports letter keys by their lowercase code."""
    km = {}
    for key, name in zip(WHITE_KEYS, WHITE_NOTES):
        km[ord(key.lower())] = NoteId.parse(name)
    for key, name in BLACK_KEYS.items():
        km[ord(key.lower())] = NoteId.parse(name)
    return km

def key_labels():
    """NoteId -> the keyboard letter that plays it."""
    labels = {NoteId.parse(name): key for key, name in zip(WHITE_KEYS, WHITE_NOTES)}
    labels.update({NoteId.parse(name): key for key, name in BLACK_KEYS.items()})
    return labels
