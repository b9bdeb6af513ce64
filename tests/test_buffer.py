import numpy as np
import pytest

from recitekit.audio.buffer import AudioBuffer, BufferTracker, new_span_seconds
from recitekit.audio.energy import EnergySampler, relative_energy
from recitekit.audio.vad import is_voice, window_count

from conftest import silent_block, voiced_block


def test_new_span_is_non_negative_and_zero_after_advance():
    tracker = BufferTracker(16_000)
    total = 0
    for step, growth in enumerate([0, 800, 16_000, 3_200, 0, 24_000]):
        total += growth
        assert tracker.pending_seconds(total) >= 0.0
        if step % 2 == 1:
            tracker.advance(total)
            assert tracker.pending_seconds(total) == 0.0
    assert new_span_seconds(100, 200, 16_000) == 0.0


def test_tracker_rejects_backwards_cursor():
    tracker = BufferTracker(16_000)
    tracker.advance(16_000)
    with pytest.raises(ValueError):
        tracker.advance(8_000)
    tracker.reset()
    assert tracker.consumed == 0


def test_audio_buffer_snapshot_uses_observed_length():
    buffer = AudioBuffer()
    buffer.append(np.ones(10, dtype=np.float32))
    observed = len(buffer)
    buffer.append(np.full(5, 2.0, dtype=np.float32))
    snap = buffer.snapshot(observed)
    assert snap.shape == (10,)
    assert float(snap.max()) == 1.0
    assert len(buffer) == 15
    buffer.clear()
    assert buffer.snapshot().size == 0


def test_energy_sampler_windows_and_carry_over():
    sampler = EnergySampler(16_000, 0.1)
    sampler.feed(np.zeros(2_400, dtype=np.float32))
    assert len(sampler) == 1
    sampler.feed(np.zeros(800, dtype=np.float32))
    assert len(sampler) == 2
    sampler.feed(np.full(1_600, 0.5, dtype=np.float32))
    trace = sampler.trailing(len(sampler))
    assert len(trace) == 3
    assert trace[0] == 0.0
    assert trace[-1] > 0.8
    assert all(0.0 <= value <= 1.0 for value in trace)


def test_relative_energy_clamps():
    assert relative_energy(-90.0, None) == 0.0
    assert relative_energy(0.0, -70.0) == 1.0
    assert relative_energy(-35.0, -70.0) == pytest.approx(0.5)


def test_sampler_trailing_windows_drive_the_gate():
    sampler = EnergySampler(16_000, 0.1)
    sampler.feed(silent_block(1.2))
    assert not is_voice(sampler.trailing(window_count(1.2)), 1.2, 0.3)

    sampler.feed(voiced_block(1.0))
    recent = sampler.trailing(window_count(1.0))
    assert len(recent) == 10
    assert recent[0] == 0.0
    assert is_voice(recent, 1.0, 0.3)
    assert sampler.trailing(0) == []
