import pytest

from faux86.audio import Audio, SILENCE, mix_sample, pcm16_chunk, pwm_chunk


def drained(latency=8):
    audio = Audio(1000, latency)
    audio.fill_audio_buffer(audio.buffer_size)
    return audio


def test_buffer_size_from_rate_and_latency():
    assert Audio(1000, 5).buffer_size == 5
    assert Audio(1999, 5).buffer_size == 5


def test_new_buffer_is_full_of_silence():
    audio = Audio(1000, 6)
    assert audio.is_buffer_filled()
    assert audio.fill_audio_buffer(6) == bytes([SILENCE]) * 6
    assert not audio.is_buffer_filled()
    assert audio.pending == 0


def test_pushed_samples_come_back_offset():
    audio = drained(4)
    samples = [-128, -1, 0, 127]
    assert all(audio.push_sample(s) for s in samples)
    assert audio.is_buffer_filled()
    assert audio.fill_audio_buffer(4) == bytes(s + SILENCE for s in samples)


def test_push_when_full_is_ignored():
    audio = drained(2)
    audio.push_sample(1)
    audio.push_sample(2)
    assert audio.push_sample(3) is False
    assert audio.pending == 2


def test_partial_drain_keeps_order():
    audio = drained(4)
    for s in (10, 20, 30, 40):
        audio.push_sample(s)
    first = audio.fill_audio_buffer(2)
    assert audio.pending == 2
    second = audio.fill_audio_buffer(2)
    assert list(first + second) == [s + SILENCE for s in (10, 20, 30, 40)]


def test_pending_never_negative():
    audio = drained(4)
    audio.push_sample(1)
    audio.fill_audio_buffer(4)
    assert audio.pending == 0


@pytest.mark.parametrize("length", [-1, 5])
def test_bad_drain_length(length):
    audio = Audio(1000, 4)
    with pytest.raises(ValueError):
        audio.fill_audio_buffer(length)


def test_negative_settings_rejected():
    with pytest.raises(ValueError):
        Audio(-1, 5)


def test_mix_nothing_is_zero():
    assert mix_sample(None, None, None, None) == 0


def test_mix_adlib_is_scaled_down():
    assert mix_sample(adlib=37 << 8) == 37
    assert mix_sample(adlib=-(5 << 8)) == -5


def test_mix_speaker_is_halved():
    assert mix_sample(speaker=2 * 21) == 21


def test_mix_sums_sources():
    assert mix_sample(None, 3, 4, None) == 7


def test_mix_wraps_to_int16():
    assert mix_sample(None, 32767, 1, None) == -32768


def test_pwm_chunk_duplicates_scaled_samples():
    audio = drained(4)
    samples = [-100, 0, 50, 127]
    for s in samples:
        audio.push_sample(s)
    chunk = pwm_chunk(audio, 8)
    assert len(chunk) == 8
    assert chunk[0::2] == chunk[1::2]
    assert all(v % 16 == 0 for v in chunk)
    assert [v >> 4 for v in chunk[0::2]] == [s + SILENCE for s in samples]


def test_pcm16_silence_is_zero():
    audio = Audio(1000, 4)
    assert pcm16_chunk(audio, 8) == [0] * 8


def test_pcm16_preserves_order_and_sign():
    audio = drained(4)
    samples = [-128, -1, 1, 127]
    for s in samples:
        audio.push_sample(s)
    chunk = pcm16_chunk(audio, 8)
    left = chunk[0::2]
    assert left == chunk[1::2]
    assert left == sorted(left)
    assert [v < 0 for v in left] == [s < 0 for s in samples]
    assert all(v % 256 == 0 for v in left)