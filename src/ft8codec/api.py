from __future__ import annotations

from typing import IO, List, Optional, Union
import os
import numpy as np
from numpy.typing import NDArray
import soundfile as sf

from .callsigns import CallsignHashes
from .crc import append_crc
from .decoder import DecodedMessage, DecoderConfig, decode_block
from .ldpc_encode import encode174
from .message import Message, parse_message
from .pack import pack
from .synth import synthesize_ft8_audio
from .tones import tones_from_codeword

MessageLike = Union[Message, str]


def _as_message(message: MessageLike) -> Message:
    return parse_message(message) if isinstance(message, str) else message


def message_codeword(message: MessageLike) -> NDArray[np.uint8]:
    """Pack, append CRC and LDPC-encode a message into its 174-bit codeword."""
    return encode174(append_crc(pack(_as_message(message))))


def message_tones(message: MessageLike) -> NDArray[np.int32]:
    """The 79 channel symbols (tone indices 0..7) for a message."""
    return tones_from_codeword(message_codeword(message))


def encode(
    message: MessageLike,
    sample_rate_hz: float = 12000.0,
    base_freq_hz: float = 1500.0,
) -> NDArray[np.float32]:
    """Encode a message (variant or text line) into 12.64 s of FT8 audio.

    ``base_freq_hz`` is the frequency of tone 0.
    """
    return synthesize_ft8_audio(message_tones(message), sample_rate_hz, base_freq_hz)


def decode(
    samples,
    sample_rate_hz: float,
    config: Optional[DecoderConfig] = None,
    hashes: Optional[CallsignHashes] = None,
) -> List[DecodedMessage]:
    """Decode all FT8 signals in a mono audio buffer.

    Pass the same ``hashes`` table across slots to resolve hashed callsigns.
    """
    return decode_block(np.asarray(samples, dtype=np.float64), float(sample_rate_hz), config, hashes)


def decode_wav(
    path_or_file: Union[str, "os.PathLike[str]", IO[bytes]],
    config: Optional[DecoderConfig] = None,
    hashes: Optional[CallsignHashes] = None,
) -> List[DecodedMessage]:
    """
    Decode all FT8 signals in a WAV file or file-like object.

    Accepts a filesystem path or a binary file-like object (e.g., io.BytesIO).
    Multi-channel files are decoded from their first channel.
    """
    samples, sample_rate_hz = sf.read(path_or_file, always_2d=False)
    x = samples[:, 0] if getattr(samples, "ndim", 1) > 1 else samples
    return decode(np.asarray(x, dtype=np.float64), float(sample_rate_hz), config, hashes)
