"""Host-side input handling: USB keyboard and mouse reports turned into emulator events."""

from dataclasses import dataclass
from enum import Enum, auto

from .keymap import modifier_to_xt, usb_to_xt

# Button bits of a USB mouse report.
MOUSE_BUTTON_LEFT = 1 << 0
MOUSE_BUTTON_RIGHT = 1 << 1
MOUSE_BUTTON_MIDDLE = 1 << 2

# Largest motion reported to the emulated mouse in one event, per axis.
MOUSE_DISPLACEMENT_MAX = 127
MOUSE_DISPLACEMENT_MIN = -127

# Rate of the host's free-running microsecond counter.
CLOCK_HZ = 1_000_000

RAW_KEY_SLOTS = 6
MODIFIER_BITS = 8


class EventType(Enum):
    """Kind of input event handed to the emulator."""

    KEY_PRESS = auto()
    KEY_RELEASE = auto()
    MOUSE_PRESS = auto()
    MOUSE_RELEASE = auto()
    MOUSE_MOVE = auto()


class MouseButton(Enum):
    """Button of the emulated serial mouse."""

    LEFT = auto()
    RIGHT = auto()
    MIDDLE = auto()


class MouseEvent(Enum):
    """Kind of report coming from the host mouse driver."""

    MOVE = auto()
    DOWN = auto()
    UP = auto()
    WHEEL = auto()


@dataclass(frozen=True)
class InputEvent:
    """One keyboard or mouse event for the emulator."""

    event_type: EventType
    scancode: int = 0
    button: MouseButton | None = None
    dx: int = 0
    dy: int = 0


def _clamp(value):
    return max(MOUSE_DISPLACEMENT_MIN, min(MOUSE_DISPLACEMENT_MAX, value))


def _button_from_bits(buttons):
    # Later checks win, as in the report decoder: middle over right over left.
    button = None
    if buttons & MOUSE_BUTTON_LEFT:
        button = MouseButton.LEFT
    if buttons & MOUSE_BUTTON_RIGHT:
        button = MouseButton.RIGHT
    if buttons & MOUSE_BUTTON_MIDDLE:
        button = MouseButton.MIDDLE
    return button


class HostInput:
    """Turns raw keyboard and mouse reports into events passed to ``sink``."""

    def __init__(self, sink, screen_width, screen_height):
        if screen_width < 0 or screen_height < 0:
            raise ValueError("screen size must not be negative")
        self._sink = sink
        self.last_modifiers = 0
        self.last_raw_keys = (0,) * RAW_KEY_SLOTS
        self.last_buttons = 0
        self.mouse_x = screen_width // 2
        self.mouse_y = screen_height // 2

    def queue_event(self, event):
        """Hand one event to the emulator."""
        self._sink(event)

    def _queue_key(self, event_type, scancode):
        if scancode:
            self.queue_event(InputEvent(event_type, scancode=scancode))

    def key_status_raw(self, modifiers, raw_keys):
        """Process a boot-protocol keyboard report: modifier byte and six key slots."""
        if not 0 <= modifiers <= 0xFF:
            raise ValueError(f"modifier byte out of range: {modifiers}")
        keys = tuple(raw_keys)
        if len(keys) != RAW_KEY_SLOTS:
            raise ValueError(f"expected {RAW_KEY_SLOTS} key slots, got {len(keys)}")
        if any(not 0 <= key <= 0xFF for key in keys):
            raise ValueError("key usage code out of range")

        for bit in range(MODIFIER_BITS):
            mask = 1 << bit
            was_pressed = bool(self.last_modifiers & mask)
            is_pressed = bool(modifiers & mask)
            if is_pressed and not was_pressed:
                self._queue_key(EventType.KEY_PRESS, modifier_to_xt(bit))
            elif was_pressed and not is_pressed:
                self._queue_key(EventType.KEY_RELEASE, modifier_to_xt(bit))
        self.last_modifiers = modifiers

        for key in self.last_raw_keys:
            if key:
                self._queue_key(EventType.KEY_RELEASE, usb_to_xt(key))
        for key in keys:
            if key:
                self._queue_key(EventType.KEY_PRESS, usb_to_xt(key))
        self.last_raw_keys = keys

    def mouse_event(self, event, buttons, x, y, wheel):
        """Process an absolute-position mouse report."""
        if event is MouseEvent.MOVE:
            if x != self.mouse_x or y != self.mouse_y:
                dx = _clamp(x - self.mouse_x)
                dy = _clamp(y - self.mouse_y)
            else:
                dx = dy = 0
            self.queue_event(InputEvent(EventType.MOUSE_MOVE, dx=dx, dy=dy))
        elif event in (MouseEvent.DOWN, MouseEvent.UP):
            button = _button_from_bits(buttons)
            if button is not None:
                kind = EventType.MOUSE_PRESS if event is MouseEvent.DOWN else EventType.MOUSE_RELEASE
                self.queue_event(InputEvent(kind, button=button))
        self.last_buttons = buttons
        self.mouse_x = x
        self.mouse_y = y


class HostTimer:
    """Extends a wrapping 32-bit tick counter into a monotonically growing count."""

    def __init__(self, clock):
        self._clock = clock
        self._last_sample = clock() & 0xFFFFFFFF
        self._current = 0

    def host_freq(self):
        """Ticks per second of the underlying counter."""
        return CLOCK_HZ

    def ticks(self):
        """Total ticks elapsed since the timer was created."""
        sample = self._clock() & 0xFFFFFFFF
        if sample >= self._last_sample:
            delta = sample - self._last_sample
        else:
            delta = (0xFFFFFFFF - self._last_sample) + sample
        self._last_sample = sample
        self._current += delta
        return self._current