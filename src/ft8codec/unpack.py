from __future__ import annotations

from typing import Optional
import numpy as np
from numpy.typing import NDArray

from .bits import as_bit_array, bits_to_int
from .callsigns import CHARS_HASH, HASH_CALL_CHARS, CallsignHashes, bracket
from .constants import (
    CHARS_ALPHANUM,
    CHARS_ALPHANUM_SPACE,
    CHARS_FREE_TEXT,
    CHARS_LETTERS_SPACE,
    FREE_TEXT_CHARS,
    MAX22,
    MAXGRID4,
    NTOKENS,
    PAYLOAD_BITS,
    RU_SERIAL_MAX,
    RU_STATE_BASE,
    RU_STATES,
)
from .errors import MalformedPayloadError
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
)
from .pack import (
    DXPEDITION_REPORT_MAX,
    DXPEDITION_REPORT_MIN,
    EXTRA_73,
    EXTRA_BLANK,
    EXTRA_RR73,
    EXTRA_RRR,
    GRID_R_FLAG,
    REPORT_BIAS,
    REPORT_MAX,
)

_NBASECALLS = 37 * 36 * 10 * 27 * 27 * 27


def _unpack_basecall(n: int) -> str:
    if n >= _NBASECALLS:
        raise MalformedPayloadError(f"callsign value out of range: {n}")
    c = [" "] * 6
    c[5] = CHARS_LETTERS_SPACE[n % 27]; n //= 27
    c[4] = CHARS_LETTERS_SPACE[n % 27]; n //= 27
    c[3] = CHARS_LETTERS_SPACE[n % 27]; n //= 27
    c[2] = chr(ord("0") + (n % 10)); n //= 10
    c[1] = CHARS_ALPHANUM[n % 36]; n //= 36
    c[0] = CHARS_ALPHANUM_SPACE[n % 37]
    call = "".join(c).strip()
    if " " in call:
        raise MalformedPayloadError(f"callsign with embedded space: {call!r}")
    # Undo the Swaziland and Guinea prefix work-arounds
    if len(call) > 3 and call.startswith("3D0"):
        call = "3DA0" + call[3:]
    elif len(call) > 2 and call[0] == "Q" and call[1].isalpha():
        call = "3X" + call[1:]
    return call


def _unpack28(n28: int, ip: int, i3: int, hashes: Optional[CallsignHashes] = None) -> str:
    """Decode a 28-bit token into a callsign or special token (CQ/DE/QRZ).

    22-bit hashed calls are looked up in ``hashes`` and render as ``<...>`` when unknown.
    """
    if n28 < NTOKENS:
        if ip:
            raise MalformedPayloadError("suffix flag set on a token")
        if n28 == 0:
            return "DE"
        if n28 == 1:
            return "QRZ"
        if n28 == 2:
            return "CQ"
        if n28 <= 1002:
            return f"CQ {n28 - 3:03d}"
        n = n28 - 1003
        if n >= 27 ** 4:
            raise MalformedPayloadError(f"token value out of range: {n28}")
        chars = []
        for _ in range(4):
            chars.append(CHARS_LETTERS_SPACE[n % 27])
            n //= 27
        mod = "".join(reversed(chars)).lstrip()
        if not mod or " " in mod:
            raise MalformedPayloadError(f"bad CQ modifier in token {n28}")
        return f"CQ {mod}"
    n28 -= NTOKENS
    if n28 < MAX22:
        if ip:
            raise MalformedPayloadError("suffix flag set on a hashed call")
        return _lookup(hashes, n28, 22)
    call = _unpack_basecall(n28 - MAX22)
    if ip:
        call += "/R" if i3 == 1 else "/P"
    return call


def _unpack_extra(igrid4: int) -> str:
    ir = igrid4 & GRID_R_FLAG
    g = igrid4 & ~GRID_R_FLAG
    if g < MAXGRID4:
        d0 = g % 10; g //= 10
        d1 = g % 10; g //= 10
        l1 = chr(ord("A") + (g % 18)); g //= 18
        l0 = chr(ord("A") + g)
        grid = f"{l0}{l1}{d1}{d0}"
        if grid == RR73:
            raise MalformedPayloadError("grid field holds RR73, which only packs as an acknowledgement")
        return f"R {grid}" if ir else grid
    if g in (EXTRA_BLANK, EXTRA_RRR, EXTRA_RR73, EXTRA_73):
        if ir:
            raise MalformedPayloadError("R flag set on an acknowledgement")
        return {EXTRA_BLANK: "", EXTRA_RRR: "RRR", EXTRA_RR73: RR73, EXTRA_73: "73"}[g]
    dd = g - MAXGRID4 - REPORT_BIAS
    if g < EXTRA_73 or dd > REPORT_MAX:
        raise MalformedPayloadError(f"grid/report value out of range: {g}")
    return ("R" if ir else "") + f"{dd:+03d}"


def unpack_standard(value: int, i3: int, hashes: Optional[CallsignHashes] = None) -> StandardMessage:
    """Unpack a 77-bit standard message (i3 in {1,2}) held as an integer."""
    n29a = (value >> 48) & ((1 << 29) - 1)
    n29b = (value >> 19) & ((1 << 29) - 1)
    igrid4 = (value >> 3) & 0xFFFF
    call_to = _unpack28(n29a >> 1, n29a & 1, i3, hashes)
    call_de = _unpack28(n29b >> 1, n29b & 1, i3, hashes)
    return StandardMessage(call_to, call_de, _unpack_extra(igrid4))


def _lookup(hashes: Optional[CallsignHashes], value: int, bits: int) -> str:
    return bracket(hashes.lookup(value, bits) if hashes is not None else None)


def unpack_nonstandard(value: int, hashes: Optional[CallsignHashes] = None) -> NonstandardMessage:
    h12 = (value >> 65) & 0xFFF
    n58 = (value >> 7) & ((1 << 58) - 1)
    flip = (value >> 6) & 1
    rpt = (value >> 4) & 0x3
    cq = (value >> 3) & 1
    chars = []
    for _ in range(HASH_CALL_CHARS):
        chars.append(CHARS_HASH[n58 % 38])
        n58 //= 38
    if n58:
        raise MalformedPayloadError("nonstandard callsign value out of range")
    call = "".join(reversed(chars)).strip()
    if not call or " " in call:
        raise MalformedPayloadError(f"bad nonstandard callsign: {call!r}")
    if cq:
        if rpt or flip or h12:
            raise MalformedPayloadError("CQ with an acknowledgement or hashed call")
        return NonstandardMessage("CQ", call)
    other = _lookup(hashes, h12, 12)
    extra = NONSTANDARD_EXTRAS[rpt]
    if flip:
        return NonstandardMessage(call, other, extra)
    return NonstandardMessage(other, call, extra)


def unpack_dxpedition(value: int, hashes: Optional[CallsignHashes] = None) -> DXpeditionMessage:
    c1 = (value >> 49) & ((1 << 28) - 1)
    c2 = (value >> 21) & ((1 << 28) - 1)
    h10 = (value >> 11) & 0x3FF
    r5 = (value >> 6) & 0x1F
    report = DXPEDITION_REPORT_MIN + 2 * r5
    if report > DXPEDITION_REPORT_MAX:
        raise MalformedPayloadError(f"DXpedition report out of range: {report}")
    return DXpeditionMessage(
        _unpack28(c1, 0, 0, hashes),
        _unpack28(c2, 0, 0, hashes),
        _lookup(hashes, h10, 10),
        report,
    )


def unpack_rtty_roundup(value: int, hashes: Optional[CallsignHashes] = None) -> RttyRoundupMessage:
    tu = (value >> 76) & 1
    c1 = (value >> 48) & ((1 << 28) - 1)
    c2 = (value >> 20) & ((1 << 28) - 1)
    r = (value >> 19) & 1
    rst3 = (value >> 16) & 0x7
    s13 = (value >> 3) & 0x1FFF
    if 1 <= s13 <= RU_SERIAL_MAX:
        exchange = f"{s13:04d}"
    elif RU_STATE_BASE <= s13 < RU_STATE_BASE + len(RU_STATES):
        exchange = RU_STATES[s13 - RU_STATE_BASE]
    else:
        raise MalformedPayloadError(f"RTTY Roundup exchange out of range: {s13}")
    return RttyRoundupMessage(
        _unpack28(c1, 0, 3, hashes),
        _unpack28(c2, 0, 3, hashes),
        rst=529 + 10 * rst3,
        exchange=exchange,
        acknowledge=bool(r),
        thank_you=bool(tu),
    )


def unpack_free_text(b71: int) -> FreeTextMessage:
    if b71 >= 42 ** FREE_TEXT_CHARS:
        raise MalformedPayloadError("free text value outside the character set")
    chars = []
    for _ in range(FREE_TEXT_CHARS):
        chars.append(CHARS_FREE_TEXT[b71 % 42])
        b71 //= 42
    text = "".join(reversed(chars)).strip()
    if not text:
        raise MalformedPayloadError("empty free text")
    return FreeTextMessage(text)


def unpack(bits_77: NDArray[np.uint8], hashes: Optional[CallsignHashes] = None) -> Message:
    """Unpack a 77-bit payload into a message variant.

    Hashed callsigns are looked up in ``hashes`` and render as ``<...>`` when
    missing. Raises MalformedPayloadError for unsupported types (EU VHF, Field
    Day) or out-of-alphabet fields.
    """
    payload = as_bit_array(bits_77, PAYLOAD_BITS, "payload")
    value = bits_to_int(payload)
    if value == 0:
        raise MalformedPayloadError("all-zero payload")
    i3 = value & 0x7
    if i3 in (1, 2):
        return unpack_standard(value, i3, hashes)
    if i3 == 3:
        return unpack_rtty_roundup(value, hashes)
    if i3 == 4:
        return unpack_nonstandard(value, hashes)
    if i3 == 0:
        n3 = (value >> 3) & 0x7
        data = value >> 6
        if n3 == 0:
            return unpack_free_text(data)
        if n3 == 1:
            return unpack_dxpedition(value, hashes)
        if n3 == 5:
            return TelemetryMessage(data)
        raise MalformedPayloadError(f"unsupported message type i3=0 n3={n3}")
    raise MalformedPayloadError(f"unsupported message type i3={i3}")
