from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
from numpy.lib.stride_tricks import as_strided
from scipy.signal import get_window

from .constants import SYMBOL_PERIOD_S


@dataclass(frozen=True)
class Spectrogram:
    # Power in dB per [time_step, freq_bin]; read-only
    mag_db: NDArray[np.float32]
    sample_rate_hz: float
    symbol_samples: int
    time_osr: int
    freq_osr: int

    @property
    def hop(self) -> int:
        """Samples between successive time steps."""
        return self.symbol_samples // self.time_osr

    @property
    def nfft(self) -> int:
        return self.symbol_samples * self.freq_osr

    @property
    def num_steps(self) -> int:
        return int(self.mag_db.shape[0])

    @property
    def num_bins(self) -> int:
        return int(self.mag_db.shape[1])

    @property
    def bin_hz(self) -> float:
        return self.sample_rate_hz / self.nfft

    @property
    def step_s(self) -> float:
        return self.hop / self.sample_rate_hz

    def time_of(self, step: int) -> float:
        """Seconds from the buffer start to the symbol beginning at ``step``."""
        return step * self.step_s

    def freq_of(self, bin_index: int) -> float:
        return bin_index * self.bin_hz


def compute_spectrogram(
    samples,
    sample_rate_hz: float,
    time_osr: int = 2,
    freq_osr: int = 2,
) -> Spectrogram:
    """
    Short-time power spectrum on a symbol-aligned grid.

    - Symbol length in samples: round(sample_rate_hz * SYMBOL_PERIOD_S)
    - Hop = symbol / time_osr; step s covers the symbol starting at sample s * hop
    - Hann window of freq_osr symbols centred on that symbol, so bins are
      6.25 Hz / freq_osr wide and tone k of a signal sits freq_osr * k bins up
    - Power in dB, 10 * log10(|X|^2 + 1e-12)
    """
    if time_osr < 1 or freq_osr < 1:
        raise ValueError("oversampling factors must be >= 1")
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be positive")
    x = np.ascontiguousarray(samples, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("samples must be mono (1-D)")
    symbol_samples = int(round(sample_rate_hz * SYMBOL_PERIOD_S))
    if symbol_samples % time_osr:
        raise ValueError(f"{symbol_samples} samples per symbol is not divisible by time_osr={time_osr}")
    if x.size < symbol_samples:
        raise ValueError(f"buffer of {x.size} samples is shorter than one symbol ({symbol_samples})")

    hop = symbol_samples // time_osr
    nfft = symbol_samples * freq_osr
    lead = (freq_osr - 1) * symbol_samples // 2
    num_steps = (x.size - symbol_samples) // hop + 1

    win = get_window("hann", nfft, fftbins=True).astype(np.float64)
    # Unit-amplitude sinusoid maps to 0 dB
    win *= 2.0 / np.sum(win)

    xp = np.pad(x, (lead, nfft))
    frames = as_strided(xp, shape=(num_steps, nfft), strides=(xp.strides[0] * hop, xp.strides[0]), writeable=False)
    spec = np.fft.rfft(frames * win[None, :], axis=1)
    power = spec.real ** 2 + spec.imag ** 2
    mag_db = (10.0 * np.log10(power + 1e-12)).astype(np.float32)
    mag_db.setflags(write=False)
    return Spectrogram(
        mag_db=mag_db,
        sample_rate_hz=float(sample_rate_hz),
        symbol_samples=symbol_samples,
        time_osr=int(time_osr),
        freq_osr=int(freq_osr),
    )

