"""Translation of USB HID keyboard usages to PC/XT scan codes."""

# USB HID usage code -> XT make code. Codes above 0xFF carry an 0xE0 prefix.
# Usages not listed here have no XT equivalent and translate to 0.
_USB_TO_XT = {
    0x04: 0x1E, 0x05: 0x30, 0x06: 0x2E, 0x07: 0x20, 0x08: 0x12, 0x09: 0x21,
    0x0A: 0x22, 0x0B: 0x23, 0x0C: 0x17, 0x0D: 0x24, 0x0E: 0x25, 0x0F: 0x26,
    0x10: 0x32, 0x11: 0x31, 0x12: 0x18, 0x13: 0x19, 0x14: 0x10, 0x15: 0x13,
    0x16: 0x1F, 0x17: 0x14, 0x18: 0x16, 0x19: 0x2F, 0x1A: 0x11, 0x1B: 0x2D,
    0x1C: 0x15, 0x1D: 0x2C,
    # digits 1..9, 0
    0x1E: 0x02, 0x1F: 0x03, 0x20: 0x04, 0x21: 0x05, 0x22: 0x06, 0x23: 0x07,
    0x24: 0x08, 0x25: 0x09, 0x26: 0x0A, 0x27: 0x0B,
    0x28: 0x1C, 0x29: 0x01, 0x2A: 0x0E, 0x2B: 0x0F, 0x2C: 0x39, 0x2D: 0x0C,
    0x2E: 0x0D, 0x2F: 0x1A, 0x30: 0x1B, 0x31: 0x2B,
    0x33: 0x27, 0x34: 0x28, 0x35: 0x29, 0x36: 0x33, 0x37: 0x34, 0x38: 0x35,
    0x39: 0x3A,
    # F1..F12
    0x3A: 0x3B, 0x3B: 0x3C, 0x3C: 0x3D, 0x3D: 0x3E, 0x3E: 0x3F, 0x3F: 0x40,
    0x40: 0x41, 0x41: 0x42, 0x42: 0x43, 0x43: 0x44, 0x44: 0x57, 0x45: 0x58,
    0x46: 0xE037, 0x47: 0x46,
    0x49: 0xE052, 0x4A: 0xE047, 0x4B: 0xE049, 0x4C: 0xE053, 0x4D: 0xE04F,
    0x4E: 0xE051, 0x4F: 0xE04D, 0x50: 0xE04B, 0x51: 0xE050, 0x52: 0xE048,
    0x53: 0x45, 0x54: 0xE035, 0x55: 0x37, 0x56: 0x4A, 0x57: 0x4E,
    0x58: 0xE01C,
    # keypad 1..9, 0, decimal
    0x59: 0x4F, 0x5A: 0x50, 0x5B: 0x51, 0x5C: 0x4B, 0x5D: 0x4C, 0x5E: 0x4D,
    0x5F: 0x47, 0x60: 0x48, 0x61: 0x49, 0x62: 0x52, 0x63: 0x53,
    0x64: 0x56, 0x65: 0xE05D,
    # F13..F24
    0x68: 0x5B, 0x69: 0x5C, 0x6A: 0x5D, 0x6B: 0x63, 0x6C: 0x64, 0x6D: 0x65,
    0x6E: 0x66, 0x6F: 0x67, 0x70: 0x68, 0x71: 0x69, 0x72: 0x6A, 0x73: 0x6B,
    0x75: 0xE03B,
    0x7A: 0xE008, 0x7B: 0xE017, 0x7C: 0xE018, 0x7D: 0xE00A,
    0x7F: 0xE020, 0x80: 0xE030, 0x81: 0xE02E,
    0x89: 0x7D,
    # left/right modifiers
    0xE0: 0x1D, 0xE1: 0x2A, 0xE2: 0x38, 0xE3: 0xE05B,
    0xE4: 0xE01D, 0xE5: 0x36, 0xE6: 0xE038, 0xE7: 0xE05C,
}

# Bit position in the USB modifier byte -> XT make code.
_MODIFIER_TO_XT = (
    0x1D,    # left ctrl
    0x2A,    # left shift
    0x38,    # alt
    0xE05B,  # left win
    0xE01D,  # right ctrl
    0x36,    # right shift
    0xE038,  # alt gr
    0xE05C,  # right win
    0x00,    # unknown
)


def usb_to_xt(usage):
    """Return the XT scan code for a USB usage code (0 if it has none)."""
    if not 0 <= usage <= 0xFF:
        raise ValueError(f"USB usage code out of range: {usage}")
    return _USB_TO_XT.get(usage, 0)


def modifier_to_xt(bit):
    """Return the XT scan code for a bit position of the USB modifier byte."""
    if not 0 <= bit < len(_MODIFIER_TO_XT):
        raise ValueError(f"modifier bit out of range: {bit}")
    return _MODIFIER_TO_XT[bit]