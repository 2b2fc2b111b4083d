from __future__ import annotations

MESSAGE_BEGIN = "-----BEGIN XFER MESSAGE-----"
MESSAGE_END = "-----END XFER MESSAGE-----"
HEADER_BEGIN = "-----BEGIN XFER HEADER-----"
HEADER_END = "-----END XFER HEADER-----"

LEN_PREFIX = "LEN:"
HASH_PREFIX = "HASH:"

SEQUENCE_WIDTH = 10  # zero-padded decimal, capacity 10**10 - 1 chunks
MAX_SEQUENCE = 10**SEQUENCE_WIDTH - 1

SHA1_HEX_LEN = 40

DEFAULT_CHUNK_SIZE = 30
DEFAULT_FILE_NAME = "received_file"

# receiver refuses LEN above this; a million QR codes is already days of scanning
MAX_CHUNK_COUNT = 1_000_000
