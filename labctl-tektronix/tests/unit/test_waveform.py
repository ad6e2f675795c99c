"""Tests for waveform preamble conversion."""

from __future__ import annotations

import math

import pytest

from labctl_tektronix.waveform import PREAMBLE_QUERIES, Waveform, WaveformPreamble, to_waveform


def _preamble(**overrides: float) -> WaveformPreamble:
    values = {
        "x_increment": 0.5,
        "x_zero": -1.0,
        "y_mult": 0.25,
        "y_zero": 1.0,
        "y_offset": 128.0,
    }
    values.update(overrides)
    return WaveformPreamble(**values)


class TestToWaveform:
    """Tests for to_waveform."""

    def test_time_axis(self) -> None:
        waveform = to_waveform(bytes([0, 0, 0]), _preamble())
        assert waveform.times == (-1.0, -0.5, 0.0)

    def test_voltage_scaling(self) -> None:
        waveform = to_waveform(bytes([128, 132, 124]), _preamble())
        assert waveform.voltages == (1.0, 2.0, 0.0)

    def test_identical_codes_give_equal_voltages(self) -> None:
        waveform = to_waveform(bytes([136] * 4), _preamble())
        assert waveform.voltages == (3.0, 3.0, 3.0, 3.0)
        assert waveform.times == (-1.0, -0.5, 0.0, 0.5)

    def test_full_code_range(self) -> None:
        waveform = to_waveform(bytes([0, 255]), _preamble(y_zero=0.0))
        assert waveform.voltages == (-32.0, 31.75)

    def test_accepts_int_sequence(self) -> None:
        waveform = to_waveform([128], _preamble())
        assert waveform.voltages == (1.0,)

    def test_empty_samples(self) -> None:
        waveform = to_waveform(b"", _preamble())
        assert len(waveform) == 0
        assert list(waveform.points()) == []

    def test_nan_preamble_passes_through(self) -> None:
        waveform = to_waveform(bytes([1]), _preamble(y_mult=math.nan))
        assert math.isnan(waveform.voltages[0])

    def test_points_pairs(self) -> None:
        waveform = to_waveform(bytes([128, 132]), _preamble())
        assert list(waveform.points()) == [(-1.0, 1.0), (-0.5, 2.0)]


class TestWaveform:
    """Tests for the Waveform container."""

    def test_length_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError, match="differ in length"):
            Waveform(times=(0.0, 1.0), voltages=(0.0,))

    def test_len(self) -> None:
        assert len(Waveform(times=(0.0, 1.0), voltages=(2.0, 3.0))) == 2


class TestPreambleQueries:
    """Tests for the preamble query table."""

    def test_covers_every_field(self) -> None:
        assert set(PREAMBLE_QUERIES) == set(WaveformPreamble.__dataclass_fields__)

    def test_queries_are_wfmpre(self) -> None:
        assert all(q.startswith("WFMPRE:") and q.endswith("?") for q in PREAMBLE_QUERIES.values())
