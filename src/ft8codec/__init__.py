from .api import decode, decode_wav, encode, message_codeword, message_tones
from .callsigns import CallsignHashes, hash_call
from .decoder import DecodedMessage, DecoderConfig, decode_block
from .errors import ConfigurationError, FecNotConvergedError, Ft8Error, MalformedPayloadError
from .ldpc import BeliefPropagationConfig
from .message import (
    DXpeditionMessage,
    FreeTextMessage,
    Message,
    NonstandardMessage,
    RttyRoundupMessage,
    StandardMessage,
    TelemetryMessage,
    parse_message,
)
from .pack import pack
from .sync import SearchConfig
from .unpack import unpack

__all__ = [
    "decode",
    "decode_wav",
    "encode",
    "message_codeword",
    "message_tones",
    "decode_block",
    "DecodedMessage",
    "DecoderConfig",
    "SearchConfig",
    "BeliefPropagationConfig",
    "Message",
    "StandardMessage",
    "NonstandardMessage",
    "DXpeditionMessage",
    "RttyRoundupMessage",
    "FreeTextMessage",
    "TelemetryMessage",
    "parse_message",
    "CallsignHashes",
    "hash_call",
    "pack",
    "unpack",
    "Ft8Error",
    "ConfigurationError",
    "MalformedPayloadError",
    "FecNotConvergedError",
]
