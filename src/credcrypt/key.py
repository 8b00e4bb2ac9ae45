"""Locate and validate the master key.

The master key is 32 bytes, written as 64 hexadecimal characters. It is
looked up in the ``MASTER_KEY`` environment variable first and in a
``master.key`` file in the current directory second.

"""

import binascii
import os
import pathlib
from typing import List, Mapping, Optional

from credcrypt import InvalidKeyLength, KeyNotFound
from credcrypt._output import output

KEY_SIZE = 32
KEY_ENVIRONMENT_VARIABLE = "MASTER_KEY"
KEY_FILE_NAME = "master.key"


class EnvironmentKeySource(object):
    def __init__(self, environ: Mapping[str, str], name: str):
        self.environ = environ
        self.name = name

    def __str__(self):
        return f"environment variable {self.name}"

    def read(self) -> Optional[str]:
        value = self.environ.get(self.name, "").strip()
        return value or None


class FileKeySource(object):
    def __init__(self, path):
        self.path = pathlib.Path(path)

    def __str__(self):
        return f"file {self.path}"

    def read(self) -> Optional[str]:
        try:
            value = self.path.read_text(encoding="ascii").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            # The key material must not end up in the message.
            raise InvalidKeyLength.from_context(
                str(self), f"unreadable ({e.__class__.__name__})"
            )
        return value or None


def parse_key(value: str, source: str = "input") -> bytes:
    """Decode a hex encoded key and check that it has the right size."""
    value = value.strip()
    try:
        key = binascii.unhexlify(value)
    except (binascii.Error, ValueError):
        raise InvalidKeyLength.from_context(
            source,
            f"expected {KEY_SIZE * 2} hexadecimal characters",
        ) from None
    if len(key) != KEY_SIZE:
        raise InvalidKeyLength.from_context(
            source, f"expected {KEY_SIZE} bytes, got {len(key)}"
        )
    return key


def generate_key() -> str:
    return binascii.hexlify(os.urandom(KEY_SIZE)).decode("ascii")


class KeyResolver(object):
    """Resolve the master key from an ordered list of sources.

    Each source provides `read()`, returning the raw key text or None if it
    has nothing to offer. The first source with a value wins, later sources
    are not consulted even if that value turns out to be invalid.

    """

    def __init__(self, sources: List):
        self.sources = sources

    @classmethod
    def default(
        cls,
        key_file=None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "KeyResolver":
        if environ is None:
            environ = os.environ
        if key_file is None:
            key_file = KEY_FILE_NAME
        return cls(
            [
                EnvironmentKeySource(environ, KEY_ENVIRONMENT_VARIABLE),
                FileKeySource(key_file),
            ]
        )

    def resolve(self) -> bytes:
        for source in self.sources:
            value = source.read()
            if value is None:
                output.annotate(f"No master key in {source}.", debug=True)
                continue
            output.annotate(f"Using master key from {source}.", debug=True)
            return parse_key(value, str(source))
        raise KeyNotFound.from_context([str(s) for s in self.sources])
