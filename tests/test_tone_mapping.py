import numpy as np
import pytest

from ft8codec.constants import DATA_SYMBOL_POSITIONS, FT8_COSTAS_PATTERN, FT8_GRAY_MAP
from ft8codec.tones import codeword_from_tones, has_costas, tones_from_codeword


def _codeword_with(symbol: int, triad) -> np.ndarray:
    bits = np.zeros(174, dtype=np.uint8)
    bits[3 * symbol:3 * symbol + 3] = triad
    return bits


def test_sync_blocks_at_frame_edges_and_middle():
    frame = tones_from_codeword(np.ones(174, dtype=np.uint8))
    for start in (0, 36, 72):
        assert tuple(frame[start:start + 7]) == FT8_COSTAS_PATTERN
    assert list(DATA_SYMBOL_POSITIONS) == list(range(7, 36)) + list(range(43, 72))


@pytest.mark.parametrize("idx", range(8))
def test_first_triad_is_gray_coded_msb_first(idx):
    triad = [(idx >> 2) & 1, (idx >> 1) & 1, idx & 1]
    frame = tones_from_codeword(_codeword_with(0, triad))
    assert frame[7] == FT8_GRAY_MAP[idx]
    # Every other data symbol carries tone 0
    rest = np.delete(frame[list(DATA_SYMBOL_POSITIONS)], 0)
    assert not rest.any()


def test_data_blocks_split_after_29_symbols():
    bits = _codeword_with(28, [1, 1, 1])
    bits[3 * 29:3 * 29 + 3] = [1, 0, 0]
    frame = tones_from_codeword(bits)
    assert frame[35] == 7
    # The 30th data symbol follows the middle sync block
    assert frame[43] == FT8_GRAY_MAP[4]
    assert tuple(frame[36:43]) == FT8_COSTAS_PATTERN


def test_tones_roundtrip_to_codeword():
    rng = np.random.default_rng(777)
    for _ in range(50):
        bits = rng.integers(0, 2, size=174, dtype=np.uint8)
        frame = tones_from_codeword(bits)
        assert frame.shape == (79,)
        assert has_costas(frame)
        assert np.array_equal(codeword_from_tones(frame), bits)


def test_corrupted_sync_is_detected():
    frame = tones_from_codeword(np.zeros(174, dtype=np.uint8))
    frame[72] = (frame[72] + 1) % 8
    assert not has_costas(frame)


def test_tones_reject_bad_input():
    with pytest.raises(ValueError):
        tones_from_codeword(np.zeros(173, dtype=np.uint8))
    with pytest.raises(ValueError):
        tones_from_codeword(np.full(174, 2, dtype=np.uint8))
    with pytest.raises(ValueError):
        codeword_from_tones(np.full(79, 8))
    with pytest.raises(ValueError):
        codeword_from_tones(np.zeros(78, dtype=int))
