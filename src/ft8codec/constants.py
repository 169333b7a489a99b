from __future__ import annotations

"""
Core FT8 protocol constants and small lookup tables.

Values follow the public FT8/FT4 description (Franke, Somerville, Taylor) and
match the de-facto standard used by interoperable implementations.
"""

# Timing
SYMBOL_PERIOD_S = 0.160  # seconds per FT8 symbol (6.25 baud)
SLOT_TIME_S = 15.0       # seconds per T/R slot
SLOT_START_S = 0.5       # nominal transmission start inside a slot

# Frame layout
ND = 58                  # number of data symbols (carry 3 bits each)
NN = 79                  # total channel symbols (includes sync symbols)
LENGTH_SYNC = 7          # symbols per Costas sync block
NUM_SYNC = 3             # number of Costas sync blocks
SYNC_OFFSET = 36         # distance between starts of successive sync blocks

# Modulation
FSK_TONES = 8
BITS_PER_SYMBOL = 3
TONE_SPACING_HZ = 6.25
GFSK_BT = 2.0

# Payload sizes
PAYLOAD_BITS = 77
CRC_BITS = 14

# LDPC(174,91)
LDPC_N = 174
LDPC_K = 91
LDPC_M = 83

# CRC-14
CRC14_POLY = 0x2757

# Costas 7x7 sync tone pattern and Gray map (bits -> tone index)
FT8_COSTAS_PATTERN = (3, 1, 4, 0, 6, 5, 2)
FT8_GRAY_MAP = (0, 1, 3, 2, 5, 6, 4, 7)

# Absolute symbol positions of the sync and data symbols within the 79-symbol frame
SYNC_SYMBOL_POSITIONS = tuple(SYNC_OFFSET * m + k for m in range(NUM_SYNC) for k in range(LENGTH_SYNC))
DATA_SYMBOL_POSITIONS = tuple(k for k in range(NN) if k not in SYNC_SYMBOL_POSITIONS)

# Character alphabets used by the 77-bit message packing
CHARS_ALPHANUM_SPACE = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"  # 37
CHARS_ALPHANUM = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"        # 36
CHARS_NUMERIC = "0123456789"                                    # 10
CHARS_LETTERS_SPACE = " ABCDEFGHIJKLMNOPQRSTUVWXYZ"             # 27
CHARS_FREE_TEXT = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ+-./?"  # 42

# 28-bit callsign field layout
NTOKENS = 2063592        # special tokens (DE, QRZ, CQ, CQ nnn, CQ ABCD)
MAX22 = 4194304          # 2^22 hashed callsigns
MAXGRID4 = 32400         # 18 * 18 * 10 * 10 four-character grids
FREE_TEXT_CHARS = 13

# ARRL RTTY Roundup states and provinces, in exchange-code order from 8001
RU_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "NB", "NS", "QC", "ON", "MB", "SK", "AB", "BC", "NWT", "NF",
    "LB", "NU", "YT", "PEI", "DC",
)
RU_STATE_BASE = 8001
RU_SERIAL_MAX = 7999
