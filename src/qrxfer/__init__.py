"""QR Transfer (qrxfer)

Moves a byte buffer between devices using nothing but a sequence of short
text payloads, one per QR code:
- a framer that turns a buffer into self-describing messages
- a stateless classifier for whatever the camera happens to decode
- a receiver state machine that tolerates reordering, duplicates and noise
- a reassembler that verifies the result against the sender's digest

Camera capture, QR rendering and decoding live outside this package; the
engine only ever sees `str` and `bytes`.
"""

from .framer import build_message_sequence
from .session import TransferSession

__all__ = ["TransferSession", "build_message_sequence"]
