"""Mixed 8-bit mono sample buffer shared between the emulator and the host."""

BUFFER_CAPACITY = 96000
SILENCE = 128


def _int16(value):
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class Audio:
    """Ring of unsigned 8-bit samples, refilled by the emulator, drained by the host."""

    def __init__(self, sample_rate, latency):
        if sample_rate < 0 or latency < 0:
            raise ValueError("sample rate and latency must not be negative")
        self.sample_rate = sample_rate
        self.latency = latency
        self.buffer_size = (sample_rate // 1000) * latency
        self._buffer = bytearray([SILENCE]) * BUFFER_CAPACITY
        self._write_pos = self.buffer_size

    @property
    def pending(self):
        """Number of samples queued and not yet drained."""
        return self._write_pos

    def is_buffer_filled(self):
        """True when no more samples are wanted until the host drains some."""
        return self._write_pos >= self.buffer_size

    def push_sample(self, sample):
        """Queue one signed mixed sample; return whether it was stored."""
        if self.is_buffer_filled() or self._write_pos >= BUFFER_CAPACITY:
            return False
        self._buffer[self._write_pos] = (sample + SILENCE) & 0xFF
        self._write_pos += 1
        return True

    def fill_audio_buffer(self, length):
        """Remove and return the oldest ``length`` samples as bytes."""
        if length < 0 or length > self.buffer_size or length > BUFFER_CAPACITY:
            raise ValueError(f"cannot take {length} samples from the buffer")
        data = bytes(self._buffer[:length])
        end = min(self.buffer_size, BUFFER_CAPACITY)
        self._buffer[: end - length] = self._buffer[length:end]
        self._write_pos = max(self._write_pos - length, 0)
        return data


def mix_sample(adlib=None, disney=None, blaster=None, speaker=None):
    """Mix the enabled sound sources (None means disabled) into one int16 sample."""
    total = 0
    if adlib is not None:
        total = _int16(adlib) >> 8
    if disney is not None:
        total += _int16(disney)
    if blaster is not None:
        total += _int16(blaster)
    if speaker is not None:
        total += _int16(speaker) >> 1
    return _int16(total)


def pwm_chunk(audio, chunk_size):
    """Drain samples for a stereo PWM chunk: each sample scaled to 12 bits, twice."""
    out = []
    for sample in audio.fill_audio_buffer(chunk_size // 2):
        value = sample << 4
        out.extend((value, value))
    return out


def pcm16_chunk(audio, chunk_size):
    """Drain samples for a stereo signed 16-bit chunk, each sample twice."""
    out = []
    for sample in audio.fill_audio_buffer(chunk_size // 2):
        value = _int16((sample - SILENCE) * 256)
        out.extend((value, value))
    return out