# visualizer.py
import threading
import time, math
import logging
import numpy as np
import pygame
from config import *
from piano_mapping import WHITE_NOTES, BLACK_SLOTS
from tuning import NoteId

logger = logging.getLogger(__name__)

WHITE_ORDER = [NoteId.parse(n) for n in WHITE_NOTES]
BLACK_ORDER = {NoteId.parse(n): slot for n, slot in BLACK_SLOTS.items()}

# ------- Styling -------
WAVE_COLORS = {
    WAVE_SINE:     (0, 255, 136),
    WAVE_SQUARE:   (255, 160, 90),
    WAVE_SAW:      (90, 180, 255),
    WAVE_TRIANGLE: (230, 120, 255),
}
WHITE    = (238,238,238)
BLACK    = (28,28,28)
BG       = (26,26,46)
SCOPE_BG = (15,15,26)
GRID     = (42,42,74)
CENTER   = (74,74,122)
CARD     = (24,24,40)
OUTL     = (54,54,84)
TEXT     = (230,230,230)
MUTED    = (150,150,170)

# ------- Layout (tweak freely) -------
PAD         = 20
SCOPE_H     = 320
GRID_COLS   = 10
GRID_ROWS   = 6
TRACE_W     = 2
GLOW_W      = 8
KEY_W       = 60
KEY_H       = 180
KEY_GAP     = 4
BLACK_W     = 38
BLACK_H     = 110
CARD_PAD    = 14


def waveform_points(samples, width, height):
    """Polyline through the scope buffer: sample i at x = i * width / n, y = (v / 128) * height / 2."""
    n = len(samples)
    slice_width = width / n
    xs = np.arange(n) * slice_width
    ys = (np.asarray(samples, dtype=np.float64) / 128.0) * height / 2
    return list(zip(xs.tolist(), ys.tolist()))


def draw_grid(surf):
    w, h = surf.get_size()
    for i in range(GRID_COLS + 1):
        x = round(w / GRID_COLS * i)
        pygame.draw.line(surf, GRID, (x, 0), (x, h), 1)
    for i in range(GRID_ROWS + 1):
        y = round(h / GRID_ROWS * i)
        pygame.draw.line(surf, GRID, (0, y), (w, y), 1)


def draw_trace(surf, points, color):
    glow = tuple(c // 3 for c in color)
    pygame.draw.lines(surf, glow, False, points, GLOW_W)
    pygame.draw.lines(surf, color, False, points, TRACE_W)


class Visualizer:
    """Oscilloscope on top, 17-key keyboard card below, status line at the bottom.

    The scope starts Idle (static grid with a flat line, drawn once and
    cached) and switches to Live the first time ``go_live`` is handed an
    analyser. Live frames copy the analyser's samples into the scope buffer
    and redraw the trace.
    """
    def __init__(self, surface, key_labels=None):
        self.surf = surface
        self.key_labels = key_labels or {}
        self.active = set()  # held NoteIds
        self.waveform = DEFAULT_WAVEFORM
        self.last_frame_time = time.time()
        self.fps_smooth = float(FPS)
        self._font = None

        self.analyser = None
        self.scope_buffer = None
        self._idle_scope = None

        # dynamic geometry (computed on resize/init)
        self._compute_layout()

    @property
    def is_live(self):
        return self.analyser is not None

    def go_live(self, analyser):
        """Idle -> Live, once. Later calls are ignored and return False."""
        if self.analyser is not None:
            return False
        self.analyser = analyser
        self.scope_buffer = np.full(analyser.frequency_bin_count, 128, dtype=np.uint8)
        self._idle_scope = None
        logger.info("scope live, %d samples per frame", len(self.scope_buffer))
        return True

    # ---------- Public hooks ----------
    def note_on(self, note):
        self.active.add(note)

    def note_off(self, note):
        self.active.discard(note)

    def set_waveform(self, waveform):
        self.waveform = waveform
        self._idle_scope = None

    # ---------- Frame update & draw ----------
    def update(self):
        now = time.time()
        dt = now - self.last_frame_time
        self.last_frame_time = now
        self.fps_smooth = 0.92*self.fps_smooth + 0.08*(1.0/max(1e-5, dt))

    def draw(self, settings, current_note="-", current_freq="-", status_msg=""):
        w, h = self.surf.get_size()
        if (w, h) != (self._w, self._h):
            self._compute_layout()

        if self._font is None:
            self._font = pygame.font.SysFont(None, 22)

        self.surf.fill(BG)
        if self.is_live:
            self.render_step()
        else:
            self.draw_idle()
        self._draw_keyboard_card()
        self._draw_status(settings, current_note, current_freq, status_msg)

        pygame.display.flip()

    # ---------- Scope ----------
    def render_step(self):
        """One Live frame: sample the tap, clear, grid, centre line, trace."""
        if not self.is_live:
            return False
        self.analyser.get_byte_time_domain_data(self.scope_buffer)
        surf = self.scope_surf
        w, h = surf.get_size()
        surf.fill(SCOPE_BG)
        draw_grid(surf)
        pygame.draw.line(surf, CENTER, (0, h / 2), (w, h / 2), 1)
        draw_trace(surf, waveform_points(self.scope_buffer, w, h), WAVE_COLORS[self.waveform])
        return True

    def draw_idle(self):
        if self._idle_scope is None:
            self._idle_scope = pygame.Surface(self.scope_rect.size)
            w, h = self.scope_rect.size
            self._idle_scope.fill(SCOPE_BG)
            draw_grid(self._idle_scope)
            draw_trace(self._idle_scope, [(0, h / 2), (w, h / 2)], WAVE_COLORS[self.waveform])
        self.surf.blit(self._idle_scope, self.scope_rect.topleft)

    # ---------- Geometry ----------
    def _compute_layout(self):
        self._w, self._h = self.surf.get_size()

        self.scope_rect = pygame.Rect(PAD, PAD, self._w - 2*PAD, SCOPE_H)
        self.scope_surf = self.surf.subsurface(self.scope_rect)
        self._idle_scope = None

        kb_width = len(WHITE_ORDER) * KEY_W + (len(WHITE_ORDER)-1) * KEY_GAP
        kb_card_w = kb_width + CARD_PAD*2
        kb_card_x = (self._w - kb_card_w) // 2
        kb_card_y = self.scope_rect.bottom + PAD
        self.kb_card = pygame.Rect(kb_card_x, kb_card_y, kb_card_w, KEY_H + CARD_PAD*2)
        self.kb_left = self.kb_card.x + CARD_PAD
        self.kb_top = self.kb_card.y + CARD_PAD

        self.key_rects = self._compute_key_rects()
        self.status_y = self.kb_card.bottom + PAD

    def _compute_key_rects(self):
        rects = {}
        for i, note in enumerate(WHITE_ORDER):
            x = self.kb_left + i*(KEY_W+KEY_GAP)
            rects[note] = (pygame.Rect(x, self.kb_top, KEY_W, KEY_H), False)
        for note, slot in BLACK_ORDER.items():
            x = self.kb_left + slot*(KEY_W+KEY_GAP) + KEY_W + KEY_GAP//2 - BLACK_W//2
            rects[note] = (pygame.Rect(x, self.kb_top, BLACK_W, BLACK_H), True)
        return rects

    def note_at(self, pos):
        """Note under a mouse position, black keys first since they sit on top."""
        hits = [(note, is_black) for note, (rect, is_black) in self.key_rects.items()
                if rect.collidepoint(pos)]
        for note, is_black in hits:
            if is_black:
                return note
        return hits[0][0] if hits else None

    # ---------- Drawing pieces ----------
    def _draw_keyboard_card(self):
        pygame.draw.rect(self.surf, CARD, self.kb_card, border_radius=14)
        pygame.draw.rect(self.surf, OUTL, self.kb_card, width=1, border_radius=14)

        # whites first, then blacks for layering
        for is_black_pass in (False, True):
            for note, (rect, is_black) in self.key_rects.items():
                if is_black != is_black_pass:
                    continue
                pygame.draw.rect(self.surf, BLACK if is_black else WHITE, rect, border_radius=6)
                pygame.draw.rect(self.surf, OUTL, rect, width=1, border_radius=6)
                if note in self.active:
                    self._draw_glow(rect)
                self._draw_key_label(note, rect, is_black)

    def _draw_glow(self, rect):
        breath = 0.55 + 0.45*math.sin(time.time()*7.5)
        col = WAVE_COLORS[self.waveform]
        s = pygame.Surface(rect.size, pygame.SRCALPHA)
        pygame.draw.rect(s, (*col, int(90 + 120*breath)), s.get_rect(), border_radius=6)
        self.surf.blit(s, rect.topleft)
        thin = pygame.Surface((rect.w, 3), pygame.SRCALPHA)
        thin.fill((*col, 220))
        self.surf.blit(thin, (rect.x, rect.bottom - 6))

    def _draw_key_label(self, note, rect, is_black):
        letter = self.key_labels.get(note)
        if letter is None or self._font is None:
            return
        col = MUTED if is_black else BLACK
        img = self._font.render(letter, True, col)
        self.surf.blit(img, (rect.centerx - img.get_width()//2, rect.bottom - 28))

    def _draw_status(self, settings, current_note, current_freq, status_msg):
        font = self._font
        info = (f"Note {current_note} | Freq {current_freq} Hz | Wave {settings.waveform} | "
                f"Base {settings.base_frequency:.2f} Hz | Vol {settings.volume*100:.0f} | "
                f"Attack {settings.attack:.2f}s | Release {settings.release:.2f}s | FPS {self.fps_smooth:,.0f}")
        img = font.render(info, True, TEXT)
        self.surf.blit(img, (PAD, self.status_y))

        if not self.is_live:
            idle = font.render("Click or press a key to start audio", True, MUTED)
            self.surf.blit(idle, (self._w - PAD - idle.get_width(), self.status_y + 24))
        if status_msg:
            sm = font.render(status_msg, True, (180,220,180))
            self.surf.blit(sm, (PAD, self.status_y + 24))

        hint = "1-4 wave | Up/Down base freq | +/- volume | Z/X attack | C/V release | Esc panic"
        hint_img = font.render(hint, True, MUTED)
        self.surf.blit(hint_img, (PAD, self.status_y + 48))


class RenderLoop:
    """Calls `frame` once per display frame until cancelled.

    `frame` returning False also ends the loop. The cancel token is a
    threading.Event so anything holding it can stop the loop between frames.
    """
    def __init__(self, frame, fps=FPS, cancel=None, clock=None):
        self.frame = frame
        self.fps = fps
        self.cancel_token = cancel if cancel is not None else threading.Event()
        self.clock = clock
        self.frames = 0

    def cancel(self):
        self.cancel_token.set()

    @property
    def cancelled(self):
        return self.cancel_token.is_set()

    def run(self):
        clock = self.clock or pygame.time.Clock()
        while not self.cancel_token.is_set():
            if self.frame() is False:
                self.cancel()
                break
            self.frames += 1
            clock.tick(self.fps)
        return self.frames
