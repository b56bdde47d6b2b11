"""Buzzer tests."""

from __future__ import annotations

import sys

from chip8emu.chip8.sound import HISTORY_LENGTH, Chip8SoundProcessor


class DummySound:
    def __init__(self, buffer):
        self.buffer = buffer


class DummyChannel:
    def __init__(self, mixer):
        self.mixer = mixer
        self.busy = False

    def get_busy(self):
        return self.busy

    def play(self, sound):
        self.mixer.played.append(sound)
        self.busy = True

    def set_volume(self, volume):
        self.mixer.last_volume = volume

    def stop(self):
        self.mixer.stopped = True
        self.busy = False


class DummyMixer:
    def __init__(self):
        self.initialized = False
        self.played = []
        self.last_volume = None
        self.stopped = False
        self.channel = None

    def init(self, **kwargs):
        self.initialized = True
        self.init_kwargs = kwargs

    def get_init(self):
        return self.initialized

    def Channel(self, index):
        self.channel = DummyChannel(self)
        return self.channel

    def Sound(self, *args, **kwargs):
        buffer = kwargs.get("buffer") or (args[0] if args else None)
        return DummySound(buffer)


class DummyPygame:
    def __init__(self):
        self.mixer = DummyMixer()


class BrokenMixer(DummyMixer):
    def init(self, **kwargs):
        raise RuntimeError("no audio device")


def test_sound_processor_history_only():
    sp = Chip8SoundProcessor()
    sp.emit()
    sp.emit()
    assert list(sp.history) == ["emit", "emit"]


def test_sound_processor_history_is_bounded():
    sp = Chip8SoundProcessor()
    for _ in range(HISTORY_LENGTH * 4):
        sp.emit()
    assert len(sp.history) == HISTORY_LENGTH


def test_sound_processor_plays_tone_with_mixer(monkeypatch):
    dummy = DummyPygame()
    monkeypatch.setitem(sys.modules, "pygame", dummy)

    sp = Chip8SoundProcessor(enable_audio=True, volume=0.5)
    sp.emit()
    assert dummy.mixer.initialized
    assert dummy.mixer.init_kwargs["frequency"] == 44100
    assert dummy.mixer.last_volume == 0.5
    assert len(dummy.mixer.played) == 1
    assert len(dummy.mixer.played[0].buffer) == int(44100 * (1.0 / 60.0))

    # Channel still busy: no overlapping playback.
    sp.emit()
    assert len(dummy.mixer.played) == 1

    sp.stop()
    assert dummy.mixer.stopped
    sp.emit()
    assert len(dummy.mixer.played) == 2


def test_sound_processor_disables_audio_when_mixer_fails(monkeypatch):
    dummy = DummyPygame()
    dummy.mixer = BrokenMixer()
    monkeypatch.setitem(sys.modules, "pygame", dummy)

    sp = Chip8SoundProcessor(enable_audio=True)
    sp.emit()
    assert sp.enable_audio is False
    assert list(sp.history) == ["emit"]


def test_rendered_tone_is_square_wave():
    sp = Chip8SoundProcessor(sample_rate=8000, frequency=1000.0, duration=0.001)
    tone = sp._render_tone()
    assert list(tone) == [32767, 32767, 32767, 32767, -32767, -32767, -32767, -32767]
