from __future__ import annotations

"""
FT8 message variants.

The protocol carries a closed set of message types, modelled here as frozen
dataclasses joined in the ``Message`` union. Packing and unpacking dispatch on
the concrete type (see ``pack.py`` and ``unpack.py``).

Callsigns sent as a hash are written in angle brackets: ``<K1ABC>`` when the
call is known, ``<...>`` when it is not.
"""

import re
from dataclasses import dataclass
from typing import Tuple, Union

from .callsigns import is_hashed
from .constants import CHARS_FREE_TEXT, FREE_TEXT_CHARS

TELEMETRY_BITS = 71
_HEX_RE = re.compile(r"^[0-9A-F]{1,18}$")
_CQ_MODIFIER_RE = re.compile(r"^(?:[0-9]{3}|[A-Z]{1,4})$")
_GRID4_RE = re.compile(r"^[A-R]{2}[0-9]{2}$")
_DXPEDITION_RE = re.compile(r"^(\S+) RR73; (\S+) (<\S+>) ([+-][0-9]{2})$")
_RTTY_RE = re.compile(r"^(TU; )?(\S+) (\S+) (R )?(5[2-9]9) ([A-Z]{2,3}|[0-9]{4})$")
# Acknowledgement that would otherwise read as a grid square
RR73 = "RR73"
# Acknowledgements a nonstandard-call message can carry, by their 2-bit code
NONSTANDARD_EXTRAS = ("", "RRR", RR73, "73")
_TOKENS = ("DE", "QRZ", "CQ")


def _norm(text: str) -> str:
    return " ".join(text.upper().split())


def _plain_calls(*calls: str) -> Tuple[str, ...]:
    """Callsigns sent in full, skipping CQ/DE/QRZ tokens and hash references."""
    return tuple(
        c for c in calls
        if c and not is_hashed(c) and c.split(" ")[0] not in _TOKENS
    )


@dataclass(frozen=True)
class StandardMessage:
    """Two callsigns (or CQ/DE/QRZ tokens) plus a grid, report or acknowledgement."""

    call_to: str
    call_de: str
    extra: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "call_to", _norm(self.call_to))
        object.__setattr__(self, "call_de", self.call_de.strip().upper())
        object.__setattr__(self, "extra", _norm(self.extra))

    @property
    def text(self) -> str:
        return " ".join(p for p in (self.call_to, self.call_de, self.extra) if p)

    @property
    def grid(self) -> str | None:
        """Four-character locator carried in ``extra``, if any."""
        g = self.extra[2:] if self.extra.startswith("R ") else self.extra
        return g if _is_grid4(g) else None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return _plain_calls(self.call_to, self.call_de)


@dataclass(frozen=True)
class NonstandardMessage:
    """A callsign of up to 11 characters sent in full, the other station as a 12-bit hash.

    Exactly one of the two calls is a hash reference, unless ``call_to`` is
    ``CQ``. ``extra`` is one of ``NONSTANDARD_EXTRAS``.
    """

    call_to: str
    call_de: str
    extra: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "call_to", self.call_to.strip().upper())
        object.__setattr__(self, "call_de", self.call_de.strip().upper())
        object.__setattr__(self, "extra", _norm(self.extra))

    @property
    def text(self) -> str:
        return " ".join(p for p in (self.call_to, self.call_de, self.extra) if p)

    @property
    def grid(self) -> str | None:
        return None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return _plain_calls(self.call_to, self.call_de)


@dataclass(frozen=True)
class DXpeditionMessage:
    """``K1ABC RR73; W9XYZ <KH1/KH7Z> -12``: ends one QSO and sends a report to the next caller."""

    call_rr73: str
    call_next: str
    # The DX station, always a hash reference
    call_dx: str
    report: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "call_rr73", self.call_rr73.strip().upper())
        object.__setattr__(self, "call_next", self.call_next.strip().upper())
        object.__setattr__(self, "call_dx", self.call_dx.strip().upper())

    @property
    def text(self) -> str:
        return f"{self.call_rr73} RR73; {self.call_next} {self.call_dx} {self.report:+03d}"

    @property
    def grid(self) -> str | None:
        return None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return _plain_calls(self.call_rr73, self.call_next)


@dataclass(frozen=True)
class RttyRoundupMessage:
    """ARRL RTTY Roundup exchange: RST plus a state/province or a serial number."""

    call_to: str
    call_de: str
    rst: int = 599
    # State or province abbreviation, or a 4-digit serial number
    exchange: str = ""
    acknowledge: bool = False
    thank_you: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "call_to", self.call_to.strip().upper())
        object.__setattr__(self, "call_de", self.call_de.strip().upper())
        object.__setattr__(self, "exchange", self.exchange.strip().upper())

    @property
    def text(self) -> str:
        parts = [self.call_to, self.call_de]
        if self.acknowledge:
            parts.append("R")
        parts += [str(self.rst), self.exchange]
        return ("TU; " if self.thank_you else "") + " ".join(parts)

    @property
    def grid(self) -> str | None:
        return None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return _plain_calls(self.call_to, self.call_de)


@dataclass(frozen=True)
class FreeTextMessage:
    """Up to 13 characters of free text."""

    text: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", self.text.strip().upper())

    @property
    def grid(self) -> str | None:
        return None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class TelemetryMessage:
    """71 bits of arbitrary telemetry data, rendered as hex."""

    data: int

    def __post_init__(self) -> None:
        if self.data < 0 or self.data >> TELEMETRY_BITS:
            raise ValueError(f"telemetry data must fit in {TELEMETRY_BITS} bits")

    @property
    def text(self) -> str:
        return format(self.data, "X")

    @property
    def grid(self) -> str | None:
        return None

    @property
    def callsigns(self) -> Tuple[str, ...]:
        return ()

    @classmethod
    def from_hex(cls, hex_text: str) -> "TelemetryMessage":
        h = hex_text.strip().upper()
        if not _HEX_RE.match(h):
            raise ValueError(f"telemetry must be 1-18 hex digits: {hex_text!r}")
        return cls(int(h, 16))


Message = Union[
    StandardMessage,
    NonstandardMessage,
    DXpeditionMessage,
    RttyRoundupMessage,
    FreeTextMessage,
    TelemetryMessage,
]


def _is_grid4(text: str) -> bool:
    return bool(_GRID4_RE.match(text)) and text != RR73


def is_free_text(text: str) -> bool:
    t = text.strip().upper()
    return 0 < len(t) <= FREE_TEXT_CHARS and all(c in CHARS_FREE_TEXT for c in t)


def _split_standard(tokens: list[str]) -> tuple[str, str, str] | None:
    # "CQ DX K1ABC FN42" / "CQ 123 K1ABC" carry a two-word first field
    if len(tokens) >= 3 and tokens[0] == "CQ" and _CQ_MODIFIER_RE.match(tokens[1]):
        tokens = [f"CQ {tokens[1]}"] + tokens[2:]
    # "K1ABC W9XYZ R FN42" acknowledges with a grid
    if len(tokens) == 4 and tokens[2] == "R" and _is_grid4(tokens[3]):
        tokens = tokens[:2] + [f"R {tokens[3]}"]
    if len(tokens) == 2:
        return tokens[0], tokens[1], ""
    if len(tokens) == 3:
        return tokens[0], tokens[1], tokens[2]
    return None


def _nonstandard_from(tokens: list[str]) -> NonstandardMessage | None:
    """Read ``PJ4/K1ABC W9XYZ RR73`` style lines, hashing the standard call if neither is bracketed."""
    from .pack import pack28  # deferred: pack imports this module

    if len(tokens) not in (2, 3):
        return None
    call_to, call_de = tokens[0], tokens[1]
    extra = tokens[2] if len(tokens) == 3 else ""
    if extra not in NONSTANDARD_EXTRAS:
        return None
    if call_to == "CQ" or is_hashed(call_to) or is_hashed(call_de):
        return NonstandardMessage(call_to, call_de, extra)

    def standard(call: str) -> bool:
        try:
            pack28(call)
            return True
        except ValueError:
            return False

    if standard(call_to) and not standard(call_de):
        call_to = f"<{call_to}>"
    elif standard(call_de) and not standard(call_to):
        call_de = f"<{call_de}>"
    else:
        return None
    return NonstandardMessage(call_to, call_de, extra)


def parse_message(text: str) -> Message:
    """Parse a message line into a message variant.

    Variants are tried in order (standard, nonstandard call, DXpedition, RTTY
    Roundup); the first that packs wins, and anything else falls back to free
    text. Telemetry cannot be told apart from free text by its rendering, use
    ``TelemetryMessage.from_hex``.
    """
    from .pack import pack  # deferred: pack imports this module

    line = _norm(text)
    tokens = line.split(" ")
    candidates: list[Message] = []
    fields = _split_standard(tokens)
    if fields is not None:
        candidates.append(StandardMessage(*fields))
    nonstandard = _nonstandard_from(tokens)
    if nonstandard is not None:
        candidates.append(nonstandard)
    m = _DXPEDITION_RE.match(line)
    if m:
        candidates.append(DXpeditionMessage(m.group(1), m.group(2), m.group(3), int(m.group(4))))
    m = _RTTY_RE.match(line)
    if m:
        candidates.append(
            RttyRoundupMessage(
                m.group(2), m.group(3), int(m.group(5)), m.group(6),
                acknowledge=bool(m.group(4)), thank_you=bool(m.group(1)),
            )
        )
    for candidate in candidates:
        try:
            pack(candidate)
            return candidate
        except ValueError:
            pass
    if is_free_text(text):
        return FreeTextMessage(text)
    raise ValueError(f"cannot encode message: {text!r}")
