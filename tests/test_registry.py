import pytest

from errors import UnknownNote, VoiceAlreadyActive
from tuning import NoteId, frequency_multiplier


def test_note_on_is_idempotent(registry, engine):
    first = registry.note_on(NoteId.C)
    assert first is not None
    assert registry.note_on(NoteId.C) is None
    assert registry.note_on('C') is None
    assert registry.active_count() == 1
    assert len(engine.master.inputs) == 1


def test_start_voice_rejects_duplicates(registry, engine):
    voice = registry.start_voice(NoteId.D)
    with pytest.raises(VoiceAlreadyActive):
        registry.start_voice(NoteId.D)
    assert registry.get(NoteId.D) is voice
    assert len(engine.master.inputs) == 1


def test_note_off_when_inactive_is_noop(registry):
    registry.note_on(NoteId.E)
    before = dict(registry.voices)
    assert registry.note_off(NoteId.F) is None
    assert registry.voices == before
    assert registry.releasing_count() == 0


def test_note_off_removes_logically_at_once(registry, engine, settings):
    settings.release = 0.3
    registry.note_on(NoteId.G)
    assert registry.is_active(NoteId.G)
    engine.render(100)
    stop_time = registry.note_off(NoteId.G)
    assert not registry.is_active(NoteId.G)
    assert stop_time == pytest.approx(0.4)
    # still sounding through its tail
    assert registry.releasing_count() == 1
    assert engine.render(100).any()
    assert registry.reap() == []
    engine.render(250)
    reaped = registry.reap()
    assert [v.note for v in reaped] == [NoteId.G]
    assert registry.releasing_count() == 0
    assert engine.master.inputs == []
    assert engine.master in engine.analyser.inputs


def test_every_note_at_once(registry, settings):
    for note in NoteId:
        registry.note_on(note)
    assert registry.active_count() == 17
    freqs = {n: registry.get(n).frequency for n in NoteId}
    assert len(set(freqs.values())) == 17
    for note, freq in freqs.items():
        assert freq == pytest.approx(settings.base_frequency * frequency_multiplier(note))
    assert registry.active_notes()[0] is NoteId.C
    assert registry.active_notes()[-1] is NoteId.E5


def test_retune_all_tracks_base_frequency(registry, engine):
    registry.note_on(NoteId.C)
    registry.note_on(NoteId.A)
    engine.render(50)
    phase = registry.get(NoteId.A).oscillator.phase
    freqs = registry.retune_all(220.0)
    assert freqs == {
        NoteId.C: pytest.approx(220.0),
        NoteId.A: pytest.approx(220.0 * 2 ** (9 / 12)),
    }
    assert registry.get(NoteId.A).oscillator.frequency == pytest.approx(370.0, abs=0.01)
    assert registry.get(NoteId.A).oscillator.phase == phase


def test_rewave_all(registry):
    registry.note_on(NoteId.C)
    registry.note_on(NoteId.E)
    registry.rewave_all('square')
    assert {v.oscillator.waveform for v in registry.voices.values()} == {'square'}


def test_update_all_skips_released_notes(registry):
    registry.note_on(NoteId.C)
    registry.note_on(NoteId.D)
    registry.note_off(NoteId.D)
    seen = registry.update_all(lambda v: v.note)
    assert seen == {NoteId.C: NoteId.C}


def test_unknown_note_changes_nothing(registry, engine):
    with pytest.raises(UnknownNote):
        registry.note_on('Q')
    with pytest.raises(UnknownNote):
        registry.note_off('Q')
    assert registry.active_count() == 0
    assert engine.master.inputs == []


def test_all_notes_off(registry):
    for note in (NoteId.C, NoteId.E, NoteId.G):
        registry.note_on(note)
    registry.all_notes_off()
    assert registry.active_count() == 0
    assert registry.releasing_count() == 3
