"""An 8086-family processor core with host input translation, keymap and audio buffering."""

__version__ = "0.1.0"
__all__ = [
    "keymap",
    "audio",
    "registers",
    "host",
    "alu",
    "core",
    "ops_arith",
    "ops_control",
]