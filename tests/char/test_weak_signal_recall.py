import numpy as np
import pytest

from ft8codec.api import decode
from ft8codec.char import apply_awgn, make_clean_signal


@pytest.mark.parametrize("snr_db", [-14])
def test_off_grid_frequency_decode_rate(snr_db):
	sr = 12000.0
	rng = np.random.default_rng(0)
	# Offsets in Hz away from the 3.125 Hz analysis grid
	offsets = np.array([0.0, 0.8, 1.5, 2.3, 3.9, 5.1], dtype=float)
	ok = 0
	for df in offsets:
		x, _ = make_clean_signal("K1ABC W9XYZ FN20", sr, 1500.0 + float(df))
		y = apply_awgn(x, snr_db, rng, sr)
		ok += int("K1ABC W9XYZ FN20" in [d.text for d in decode(y, sr)])
	rate = ok / float(offsets.size)
	print("off-grid decode rate:", rate)
	assert rate >= 0.66
