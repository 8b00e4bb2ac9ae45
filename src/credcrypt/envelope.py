"""On-disk representation of an encrypted file.

An envelope is ASCII text made of three padded, standard-alphabet base64
fields separated by ``--``::

    base64(nonce)--base64(associated data)--base64(ciphertext and tag)

Empty associated data is an empty field. The base64 alphabet has no ``-``,
so splitting on the separator is unambiguous. A single trailing newline is
tolerated when decoding, encoding never writes one.

"""

import base64
import binascii
from typing import NamedTuple

from credcrypt import FormatError
from credcrypt.cipher import NONCE_SIZE, TAG_SIZE

SEPARATOR = b"--"
MAX_ENVELOPE_SIZE = 16 * 1024 * 1024


class Envelope(NamedTuple):
    nonce: bytes
    aad: bytes
    ciphertext: bytes


def encode(nonce: bytes, aad: bytes, ciphertext: bytes) -> bytes:
    data = SEPARATOR.join(
        base64.b64encode(field) for field in (nonce, aad or b"", ciphertext)
    )
    # Never produce anything `decode` would refuse to read back.
    if len(data) > MAX_ENVELOPE_SIZE:
        raise FormatError.from_context(
            f"larger than {MAX_ENVELOPE_SIZE} bytes"
        )
    return data


def _decode_field(name: str, field: bytes) -> bytes:
    try:
        value = base64.b64decode(field, validate=True)
    except (binascii.Error, ValueError):
        raise FormatError.from_context(f"{name} is not valid base64") from None
    # Only accept the one spelling `encode` produces.
    if base64.b64encode(value) != field:
        raise FormatError.from_context(f"{name} is not canonical base64")
    return value


def decode(data: bytes) -> Envelope:
    if data.endswith(b"\n"):
        data = data[:-1]
    if len(data) > MAX_ENVELOPE_SIZE:
        raise FormatError.from_context(
            f"larger than {MAX_ENVELOPE_SIZE} bytes"
        )
    try:
        data.decode("ascii")
    except UnicodeDecodeError:
        raise FormatError.from_context("not an ASCII envelope") from None
    fields = data.split(SEPARATOR)
    if len(fields) != 3:
        raise FormatError.from_context(
            f"expected 3 fields separated by `--`, found {len(fields)}"
        )
    nonce = _decode_field("nonce", fields[0])
    aad = _decode_field("associated data", fields[1])
    ciphertext = _decode_field("ciphertext", fields[2])
    if len(nonce) != NONCE_SIZE:
        raise FormatError.from_context(
            f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
        )
    if len(ciphertext) < TAG_SIZE:
        raise FormatError.from_context(
            f"ciphertext shorter than the {TAG_SIZE} byte tag"
        )
    return Envelope(nonce, aad, ciphertext)
