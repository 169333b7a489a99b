from __future__ import annotations

from typing import Callable, Dict, Tuple
import re
import numpy as np
from numpy.typing import NDArray

from .bits import int_to_bits
from .callsigns import CHARS_HASH, HASH_CALL_CHARS, hash_call, is_hashed, unbracket
from .constants import (
    CHARS_ALPHANUM,
    CHARS_ALPHANUM_SPACE,
    CHARS_FREE_TEXT,
    CHARS_LETTERS_SPACE,
    CHARS_NUMERIC,
    FREE_TEXT_CHARS,
    MAX22,
    MAXGRID4,
    NTOKENS,
    PAYLOAD_BITS,
    RU_SERIAL_MAX,
    RU_STATE_BASE,
    RU_STATES,
)
from .message import (
    NONSTANDARD_EXTRAS,
    RR73,
    DXpeditionMessage,
    FreeTextMessage,
    Message,
    NonstandardMessage,
    RttyRoundupMessage,
    StandardMessage,
    TelemetryMessage,
    is_free_text,
)

_REPORT_RE = re.compile(r"^(R?)([+-])([0-9]{2})$")
REPORT_MIN = -30
REPORT_MAX = 99
DXPEDITION_REPORT_MIN = -30
DXPEDITION_REPORT_MAX = 32

# Special acknowledgements carried in the 15-bit grid field above the grid range
EXTRA_BLANK = MAXGRID4 + 1
EXTRA_RRR = MAXGRID4 + 2
EXTRA_RR73 = MAXGRID4 + 3
EXTRA_73 = MAXGRID4 + 4
REPORT_BIAS = 35
GRID_R_FLAG = 0x8000


def _nchar(ch: str, table: str) -> int:
    idx = table.find(ch)
    return idx if idx >= 0 and ch else -1


def pack_basecall(callsign: str) -> int:
    """Pack a standard callsign into its 28-bit base value (before the token offsets).

    Returns -1 when the callsign does not fit the standard layout.
    """
    callsign = callsign.upper()
    # Work-around for Swaziland prefix: 3DA0XYZ -> 3D0XYZ
    if len(callsign) > 3 and callsign.startswith("3DA0"):
        callsign = "3D0" + callsign[4:]
    # Work-around for Guinea prefixes: 3XA0XYZ -> QA0XYZ
    elif len(callsign) > 3 and callsign.startswith("3X") and callsign[2].isalpha():
        callsign = "Q" + callsign[2:]

    length = len(callsign)
    if length < 3 or length > 6:
        return -1
    if callsign[1].isdigit() and length <= 5:
        # A0XYZ -> " A0XYZ"
        c6 = (" " + callsign).ljust(6)
    elif callsign[2].isdigit():
        # AB0XYZ
        c6 = callsign.ljust(6)
    else:
        return -1

    i0 = _nchar(c6[0], CHARS_ALPHANUM_SPACE)
    i1 = _nchar(c6[1], CHARS_ALPHANUM)
    i2 = _nchar(c6[2], CHARS_NUMERIC)
    i3 = _nchar(c6[3], CHARS_LETTERS_SPACE)
    i4 = _nchar(c6[4], CHARS_LETTERS_SPACE)
    i5 = _nchar(c6[5], CHARS_LETTERS_SPACE)
    if min(i0, i1, i2, i3, i4, i5) < 0:
        return -1
    # Suffix letters must be contiguous: "K1A BC" is not a callsign
    if c6[3:].rstrip().find(" ") >= 0:
        return -1
    n = i0
    n = n * 36 + i1
    n = n * 10 + i2
    n = n * 27 + i3
    n = n * 27 + i4
    n = n * 27 + i5
    return n


def pack28(token: str) -> Tuple[int, int]:
    """Return (n28, ip) for a callsign or token (DE, QRZ, CQ, CQ nnn, CQ ABCD).

    ip is the 1-bit suffix flag, set for /R or /P callsigns.
    """
    token = token.upper()
    if token == "DE":
        return 0, 0
    if token == "QRZ":
        return 1, 0
    if token == "CQ":
        return 2, 0
    if token.startswith("CQ "):
        mod = token[3:]
        if len(mod) == 3 and mod.isdigit():
            return 3 + int(mod), 0
        if 1 <= len(mod) <= 4 and all("A" <= c <= "Z" for c in mod):
            m = 0
            for c in mod:
                m = 27 * m + _nchar(c, CHARS_LETTERS_SPACE)
            return 1003 + m, 0
        raise ValueError(f"unsupported CQ modifier: {token!r}")

    if is_hashed(token):
        return NTOKENS + hash_call(unbracket(token), 22), 0

    ip = 0
    if token.endswith("/R") or token.endswith("/P"):
        ip = 1
        token = token[:-2]
    n28 = pack_basecall(token)
    if n28 < 0:
        raise ValueError(f"not a standard callsign: {token!r}")
    return NTOKENS + MAX22 + n28, ip


def packgrid(extra: str) -> int:
    """Return the 16-bit grid field (R flag in the top bit, 15-bit value below)."""
    extra = extra.upper()
    if extra == "":
        return EXTRA_BLANK
    if extra == "RRR":
        return EXTRA_RRR
    if extra == RR73:
        return EXTRA_RR73
    if extra == "73":
        return EXTRA_73
    flag = 0
    grid4 = extra
    if extra.startswith("R "):
        flag = GRID_R_FLAG
        grid4 = extra[2:]
    if grid4 == RR73:
        raise ValueError("RR73 is an acknowledgement, not a grid square")
    if len(grid4) == 4 and ("A" <= grid4[0] <= "R") and ("A" <= grid4[1] <= "R") and grid4[2].isdigit() and grid4[3].isdigit():
        n = (ord(grid4[0]) - ord("A"))
        n = n * 18 + (ord(grid4[1]) - ord("A"))
        n = n * 10 + (ord(grid4[2]) - ord("0"))
        n = n * 10 + (ord(grid4[3]) - ord("0"))
        return flag | n
    m = _REPORT_RE.match(extra)
    if m:
        dd = int(m.group(3)) * (-1 if m.group(2) == "-" else 1)
        if not REPORT_MIN <= dd <= REPORT_MAX:
            raise ValueError(f"signal report out of range: {extra!r}")
        flag = GRID_R_FLAG if m.group(1) else 0
        return flag | (MAXGRID4 + REPORT_BIAS + dd)
    raise ValueError(f"unsupported grid/report field: {extra!r}")


def pack_standard(msg: StandardMessage) -> NDArray[np.uint8]:
    """Pack a standard message (i3=1, or i3=2 for /P calls) into 77 bits."""
    n28a, ipa = pack28(msg.call_to)
    n28b, ipb = pack28(msg.call_de)
    suffixes = {c[-2:] for c in (msg.call_to, msg.call_de) if c.endswith(("/R", "/P"))}
    if len(suffixes) > 1:
        raise ValueError("cannot mix /R and /P suffixes in one message")
    i3 = 2 if "/P" in suffixes else 1
    igrid4 = packgrid(msg.extra)

    n29a = (n28a << 1) | (ipa & 1)
    n29b = (n28b << 1) | (ipb & 1)
    value = (n29a << 48) | (n29b << 19) | (igrid4 << 3) | i3
    return int_to_bits(value, PAYLOAD_BITS)


def pack_free_text(msg: FreeTextMessage) -> NDArray[np.uint8]:
    """Pack up to 13 characters as a base-42 number (i3=0, n3=0)."""
    if not is_free_text(msg.text):
        raise ValueError(f"free text must be 1-{FREE_TEXT_CHARS} characters from {CHARS_FREE_TEXT!r}: {msg.text!r}")
    b71 = 0
    for c in msg.text.ljust(FREE_TEXT_CHARS):
        b71 = b71 * 42 + CHARS_FREE_TEXT.index(c)
    return int_to_bits(b71 << 6, PAYLOAD_BITS)


def pack_telemetry(msg: TelemetryMessage) -> NDArray[np.uint8]:
    """Pack 71 telemetry bits (i3=0, n3=5)."""
    return int_to_bits((msg.data << 6) | (5 << 3), PAYLOAD_BITS)


def pack58(callsign: str) -> int:
    """Pack a callsign of up to 11 characters (letters, digits, ``/``) in base 38."""
    call = callsign.strip().upper()
    if not call or len(call) > HASH_CALL_CHARS or any(c not in CHARS_HASH for c in call):
        raise ValueError(f"not a callsign of up to {HASH_CALL_CHARS} characters: {callsign!r}")
    # Accumulating without padding right-aligns the call in its 11 places
    n58 = 0
    for c in call:
        n58 = n58 * 38 + CHARS_HASH.index(c)
    return n58


def pack_nonstandard(msg: NonstandardMessage) -> NDArray[np.uint8]:
    """Pack a nonstandard-call message (i3=4).

    Layout: h12 | n58 | flip | rpt2 | cq | i3, where ``flip`` is set when the
    call sent in full comes first.
    """
    if msg.extra not in NONSTANDARD_EXTRAS:
        raise ValueError(f"nonstandard messages carry only {NONSTANDARD_EXTRAS[1:]}: {msg.extra!r}")
    if msg.call_to == "CQ":
        if msg.extra:
            raise ValueError("CQ cannot carry an acknowledgement")
        h12, full, flip, cq = 0, msg.call_de, 0, 1
    elif is_hashed(msg.call_to) and not is_hashed(msg.call_de):
        h12, full, flip, cq = hash_call(unbracket(msg.call_to), 12), msg.call_de, 0, 0
    elif is_hashed(msg.call_de) and not is_hashed(msg.call_to):
        h12, full, flip, cq = hash_call(unbracket(msg.call_de), 12), msg.call_to, 1, 0
    else:
        raise ValueError("exactly one callsign must be a hash reference")
    n58 = pack58(full)
    rpt = NONSTANDARD_EXTRAS.index(msg.extra)
    value = (h12 << 65) | (n58 << 7) | (flip << 6) | (rpt << 4) | (cq << 3) | 4
    return int_to_bits(value, PAYLOAD_BITS)


def _pack28_plain(call: str) -> int:
    n28, ip = pack28(call)
    if ip:
        raise ValueError(f"/R and /P suffixes are not allowed here: {call!r}")
    return n28


def pack_dxpedition(msg: DXpeditionMessage) -> NDArray[np.uint8]:
    """Pack a DXpedition-mode message (i3=0, n3=1): c28 | c28 | h10 | r5."""
    if not DXPEDITION_REPORT_MIN <= msg.report <= DXPEDITION_REPORT_MAX or msg.report % 2:
        raise ValueError(f"DXpedition report must be even, {DXPEDITION_REPORT_MIN}..{DXPEDITION_REPORT_MAX}: {msg.report}")
    if not is_hashed(msg.call_dx):
        raise ValueError(f"the DX call is sent as a hash reference: {msg.call_dx!r}")
    c1 = _pack28_plain(msg.call_rr73)
    c2 = _pack28_plain(msg.call_next)
    h10 = hash_call(unbracket(msg.call_dx), 10)
    r5 = (msg.report - DXPEDITION_REPORT_MIN) // 2
    value = (c1 << 49) | (c2 << 21) | (h10 << 11) | (r5 << 6) | (1 << 3)
    return int_to_bits(value, PAYLOAD_BITS)


def pack_rtty_roundup(msg: RttyRoundupMessage) -> NDArray[np.uint8]:
    """Pack an RTTY Roundup exchange (i3=3): tu | c28 | c28 | r | rst3 | s13."""
    if not (529 <= msg.rst <= 599 and msg.rst % 10 == 9):
        raise ValueError(f"RST must be 529..599 with S9 tone: {msg.rst}")
    if msg.exchange in RU_STATES:
        s13 = RU_STATE_BASE + RU_STATES.index(msg.exchange)
    elif len(msg.exchange) == 4 and msg.exchange.isdigit() and 1 <= int(msg.exchange) <= RU_SERIAL_MAX:
        s13 = int(msg.exchange)
    else:
        raise ValueError(f"exchange must be a state/province or a serial 0001..{RU_SERIAL_MAX}: {msg.exchange!r}")
    c1 = _pack28_plain(msg.call_to)
    c2 = _pack28_plain(msg.call_de)
    rst3 = (msg.rst - 529) // 10
    value = (
        (int(msg.thank_you) << 76) | (c1 << 48) | (c2 << 20)
        | (int(msg.acknowledge) << 19) | (rst3 << 16) | (s13 << 3) | 3
    )
    return int_to_bits(value, PAYLOAD_BITS)


_PACKERS: Dict[type, Callable[..., NDArray[np.uint8]]] = {
    StandardMessage: pack_standard,
    NonstandardMessage: pack_nonstandard,
    DXpeditionMessage: pack_dxpedition,
    RttyRoundupMessage: pack_rtty_roundup,
    FreeTextMessage: pack_free_text,
    TelemetryMessage: pack_telemetry,
}


def pack(msg: Message) -> NDArray[np.uint8]:
    """Pack any supported message into its 77-bit payload."""
    try:
        packer = _PACKERS[type(msg)]
    except KeyError:
        raise TypeError(f"unsupported message type: {type(msg).__name__}") from None
    return packer(msg)
