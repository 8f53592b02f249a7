"""zexe protocol constants.

Single source of truth for on-disk magic values and record layouts.
Keep this file stable. Bundler and runner must remain synchronized.
"""

# Container trailer: [Magic(4) | Snapshot(4) | Shader(4) | Pokes(4) | Config(4)] = 20 bytes
TRAILER_MAGIC = b"ZXND"
TRAILER_FMT = "<4sIIII"
TRAILER_LEN = 20
MAX_RESOURCE_SIZE = 0xFFFFFFFF

# Resource order inside the container, base image first.
RESOURCE_ORDER = ("snapshot", "shader", "pokes", "config")

# Memory geometry
PAGE_SIZE = 0x4000
RAM_48K_SIZE = 3 * PAGE_SIZE
PAGE_COUNT_128K = 8

# Canonical (SNA) layout
SNA_HEADER_FMT = "<BHHHHHHHHHBBHHBB"
SNA_HEADER_LEN = 27
SNA_EXT_HEADER_FMT = "<HBB"
SNA_EXT_HEADER_LEN = 4
SNA_48K_LEN = SNA_HEADER_LEN + RAM_48K_SIZE  # 49179
SNA_128K_LEN = SNA_48K_LEN + SNA_EXT_HEADER_LEN + 5 * PAGE_SIZE  # 131103
SNA_128K_DUP_LEN = SNA_128K_LEN + PAGE_SIZE  # 147487, active page is 5 or 2
SNA_SP_OFFSET = 23

# Z80 layout
Z80_HEADER_FMT = "<BBHHHHBBBHHHHBBHHBBB"
Z80_HEADER_LEN = 30
Z80_EXT_LEN_V2 = 23
Z80_EXT_LEN_V3 = (54, 55)
Z80_BLOCK_HEADER_FMT = "<HB"
Z80_BLOCK_HEADER_LEN = 3
Z80_RAW_BLOCK = 0xFFFF
Z80_FLAGS_COMPRESSED = 0x20

# RLE marker: ED ED <count> <value>
RLE_MARKER = 0xED

# SZX layout
SZX_SIGNATURE = b"ZXST"
SZX_HEADER_FMT = "<4sBBBB"
SZX_HEADER_LEN = 8
SZX_CHUNK_FMT = "<4sI"
SZX_CHUNK_HEADER_LEN = 8
SZX_TAG_REGS = b"Z80R"
SZX_TAG_RAM_PAGE = b"RAMP"
SZX_TAG_SPECREGS = b"SPCR"
SZX_REGS_LEN = 0x25
SZX_RAMP_HEADER_FMT = "<HB"
SZX_RAMP_HEADER_LEN = 3
SZX_RAMP_COMPRESSED = 0x0001

# Interrupt composite byte in the canonical header
SNA_IFF2_BIT = 0x04
SNA_IFF_BASE = 0x02
