import os
import logging

os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', "1")

import pygame

from config import *
from controls import ControlSurface
from errors import AudioInitError, InvalidSetting
from piano_mapping import build_keymap, key_labels
from utils import clamp
from visualizer import Visualizer, RenderLoop

logger = logging.getLogger(__name__)

WAVE_KEYS = {pygame.K_1: WAVE_SINE, pygame.K_2: WAVE_SQUARE, pygame.K_3: WAVE_SAW, pygame.K_4: WAVE_TRIANGLE}


# ---------------------- Main ----------------------
def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # sound goes through sounddevice, so leave pygame's mixer alone
    pygame.display.init()
    pygame.font.init()
    screen = pygame.display.set_mode(WINDOW_SIZE)
    pygame.display.set_caption(WINDOW_TITLE)

    keymap = build_keymap()
    settings = SynthSettings()
    vis = Visualizer(screen, key_labels())
    controls = ControlSurface(settings, vis)

    state = {"status": "", "mouse_note": None}

    def start_audio():
        try:
            controls.on_first_user_interaction()
        except AudioInitError as e:
            logger.error("audio init failed: %s", e)
            state["status"] = f"Audio unavailable: {e}"
            return False
        return True

    def adjust(setter, value, label):
        try:
            setter(value)
        except InvalidSetting as e:
            logger.warning("%s", e)
            return
        state["status"] = label

    def handle_key_down(event):
        key = event.key
        audio_ok = start_audio()
        if key == pygame.K_ESCAPE:
            controls.panic(); state["status"] = "PANIC!"
            return
        if key in WAVE_KEYS:
            adjust(controls.on_waveform_change, WAVE_KEYS[key], f"Wave: {WAVE_KEYS[key]}")
            return
        if key in (pygame.K_UP, pygame.K_DOWN):
            step = BASE_FREQ_STEP if key == pygame.K_UP else -BASE_FREQ_STEP
            hz = clamp(settings.base_frequency + step, BASE_FREQ_MIN, BASE_FREQ_MAX)
            adjust(controls.on_base_frequency_change, hz, f"Base: {hz:.2f} Hz")
            return
        if key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS, pygame.K_MINUS, pygame.K_KP_MINUS):
            step = -VOLUME_STEP if key in (pygame.K_MINUS, pygame.K_KP_MINUS) else VOLUME_STEP
            vol = round(clamp(settings.volume + step, 0.0, 1.0), 2)
            adjust(controls.on_volume_change, vol, f"Volume: {vol*100:.0f}")
            return
        if key in (pygame.K_z, pygame.K_x):
            step = -ENV_STEP if key == pygame.K_z else ENV_STEP
            att = round(clamp(settings.attack + step, 0.0, ENV_MAX), 2)
            adjust(controls.on_attack_change, att, f"Attack: {att:.2f}s")
            return
        if key in (pygame.K_c, pygame.K_v):
            step = -ENV_STEP if key == pygame.K_c else ENV_STEP
            rel = round(clamp(settings.release + step, 0.0, ENV_MAX), 2)
            adjust(controls.on_release_change, rel, f"Release: {rel:.2f}s")
            return
        if key in keymap and audio_ok:
            controls.on_note_down(keymap[key])

    def frame():
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            elif event.type == pygame.KEYDOWN:
                handle_key_down(event)
            elif event.type == pygame.KEYUP:
                if event.key in keymap:
                    controls.on_note_up(keymap[event.key])
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                note = vis.note_at(event.pos)
                if start_audio() and note is not None:
                    controls.on_note_down(note)
                    state["mouse_note"] = note
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                if state["mouse_note"] is not None:
                    controls.on_note_up(state["mouse_note"])
                    state["mouse_note"] = None
            elif event.type == pygame.MOUSEMOTION and state["mouse_note"] is not None:
                # dragging off a key releases it
                if vis.note_at(event.pos) != state["mouse_note"]:
                    controls.on_note_up(state["mouse_note"])
                    state["mouse_note"] = None

        controls.tick()
        vis.update()
        vis.draw(settings, controls.current_note, controls.current_freq, state["status"])
        return True

    # held keys would otherwise retrigger note-on
    pygame.key.set_repeat()
    loop = RenderLoop(frame, FPS)
    try:
        loop.run()
    finally:
        controls.close()
        pygame.quit()


if __name__ == "__main__":
    main()
