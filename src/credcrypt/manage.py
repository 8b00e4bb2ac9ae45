import os
import pathlib
import sys
from typing import Optional

from credcrypt import FileAccessError, cipher, envelope
from credcrypt._output import output
from credcrypt.edit import atomic_write
from credcrypt.key import KEY_FILE_NAME, KeyResolver, generate_key, parse_key

DEFAULT_SECRETS_FILE = "credentials.yml.enc"


def init(directory: str = ".", name: str = DEFAULT_SECRETS_FILE, **kw):
    """Create a new master key and an empty encrypted file next to it.

    Existing files are never overwritten.

    """
    directory = pathlib.Path(directory)
    key_path = directory / KEY_FILE_NAME
    secrets_path = directory / name
    for path in (key_path, secrets_path):
        if path.exists():
            raise FileAccessError.from_context(
                path, "create", "file exists already"
            )

    key = generate_key()
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd = os.open(
            str(key_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600
        )
        with os.fdopen(fd, "w") as f:
            f.write(key + "\n")
    except OSError as e:
        raise FileAccessError.from_context(key_path, "create", e)

    nonce, ciphertext = cipher.encrypt(b"", parse_key(key, str(key_path)))
    try:
        atomic_write(secrets_path, envelope.encode(nonce, b"", ciphertext))
    except OSError as e:
        raise FileAccessError.from_context(secrets_path, "write", e)

    output.annotate(f"Created master key `{key_path}`.")
    output.annotate(f"Created encrypted file `{secrets_path}`.")
    output.warn(
        f"Keep `{KEY_FILE_NAME}` out of version control "
        "(add it to your .gitignore)."
    )
    return 0


def show(path: str, key_file: Optional[str] = None, **kw):
    """Decrypt a file and write the content to stdout."""
    key = KeyResolver.default(key_file).resolve()
    try:
        data = pathlib.Path(path).read_bytes()
    except OSError as e:
        raise FileAccessError.from_context(path, "read", e)
    loaded = envelope.decode(data)
    cleartext = cipher.decrypt(
        loaded.ciphertext, loaded.nonce, key, loaded.aad
    )
    sys.stdout.buffer.write(cleartext)
    sys.stdout.flush()
    return 0
