"""Securely edit encrypted files.

The main focus here is to avoid leaving cleartext behind on disk and to never
replace the encrypted file with anything but a complete, new envelope.

"""

import contextlib
import os
import os.path
import pathlib
import shlex
import stat
import subprocess
import tempfile
from typing import Mapping, Optional

from credcrypt import EditorFailure, FileAccessError, cipher, envelope
from credcrypt._output import output
from credcrypt.key import KeyResolver

DEFAULT_EDITOR = "vi"

START = "start"
LOADED = "loaded"
NEW = "new"
EDITING = "editing"
REENCRYPTED = "reencrypted"
COMMITTED = "committed"
FAILED = "failed"


def resolve_editor_command(
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    if environ is None:
        environ = os.environ
    for name in ("VISUAL", "EDITOR"):
        command = environ.get(name, "").strip()
        if command:
            return command
    return DEFAULT_EDITOR


class CommandEditor(object):
    """Run an editor command line (like `$EDITOR`) through the shell."""

    def __init__(self, command: str):
        self.command = command

    def __str__(self):
        return self.command

    def launch(self, path: str) -> int:
        args = self.command + " " + shlex.quote(path)
        output.annotate(f"Running editor with command: {args}", debug=True)
        return subprocess.call(args, shell=True)


def shred(path):
    """Overwrite a file with zeros, then remove it.

    A file that is already gone (e.g. an editor replaced it and the
    replacement was removed) is fine.

    """
    try:
        size = os.path.getsize(path)
    except FileNotFoundError:
        return
    try:
        with open(path, "r+b") as f:
            f.write(b"\0" * size)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        output.warn(f"Could not overwrite `{path}` before removing it: {e}")
    try:
        os.unlink(path)
    except OSError as e:
        # Runs during cleanup, must not replace the error being handled.
        output.warn(f"Could not remove `{path}`, remove it manually: {e}")


@contextlib.contextmanager
def temporary_cleartext(cleartext: bytes, suffix: str = ""):
    """Run associated block with the cleartext in a private temporary file.

    The file is created with owner-only permissions and is shredded when the
    block is left, no matter how.

    """
    fd, name = tempfile.mkstemp(prefix="edit", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as clearfile:
            clearfile.write(cleartext)
        yield name
    finally:
        shred(name)


def atomic_write(path, data: bytes, mode: Optional[int] = None):
    """Replace `path` with `data` by writing a sibling file and renaming it.

    Readers (and a crash at any point) see either the old or the new
    content in full. The mode of an existing file is kept unless `mode` is
    given; new files default to owner-only permissions.

    """
    path = pathlib.Path(path)
    fd, tmp = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    replaced = False
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is None:
            try:
                mode = stat.S_IMODE(path.stat().st_mode)
            except FileNotFoundError:
                pass
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, str(path))
        replaced = True
    finally:
        if not replaced:
            os.unlink(tmp)


class EditSession(object):
    """Decrypt a file, let the user edit it and encrypt it again.

    `key_resolver` provides the master key, `editor` is anything with a
    `launch(path) -> exit status` method. The session walks through the
    states start -> loaded|new -> editing -> reencrypted -> committed and
    ends up in `failed` if anything goes wrong on the way. The target file
    is only ever touched by the final rename.

    """

    def __init__(
        self,
        path,
        key_resolver: KeyResolver,
        editor,
        aad: bytes = b"",
    ):
        self.path = pathlib.Path(path)
        self.key_resolver = key_resolver
        self.editor = editor
        self.aad = aad
        self.state = START
        self.key: Optional[bytes] = None
        self.cleartext: Optional[bytes] = None
        self.original_cleartext: Optional[bytes] = None
        self.encrypted: Optional[bytes] = None

    @property
    def suffix(self) -> str:
        # credentials.yml.enc -> .yml
        filename, ext = os.path.splitext(self.path.name)
        if ext == ".enc":
            _, ext = os.path.splitext(filename)
        return ext

    def main(self):
        try:
            self.load()
            try:
                with temporary_cleartext(
                    self.cleartext, self.suffix
                ) as clearfile:
                    self.edit(clearfile)
                    self.encrypt()
                    self.commit()
            except OSError as e:
                raise FileAccessError.from_context(
                    tempfile.gettempdir(), "use temporary file in", e
                )
        except BaseException:
            self.state = FAILED
            raise
        finally:
            self.key = None

    def load(self):
        self.key = self.key_resolver.resolve()
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            output.annotate(f"`{self.path}` does not exist, creating it.")
            self.cleartext = b""
            self.state = NEW
            return
        except OSError as e:
            raise FileAccessError.from_context(self.path, "read", e)
        loaded = envelope.decode(data)
        self.cleartext = cipher.decrypt(
            loaded.ciphertext, loaded.nonce, self.key, loaded.aad
        )
        self.original_cleartext = self.cleartext
        self.aad = loaded.aad
        self.state = LOADED

    def edit(self, clearfile: str):
        self.state = EDITING
        exitcode = self.editor.launch(clearfile)
        if exitcode != 0:
            raise EditorFailure.from_context(str(self.editor), exitcode)
        try:
            with open(clearfile, "rb") as f:
                self.cleartext = f.read()
        except OSError as e:
            raise FileAccessError.from_context(clearfile, "read", e)

    def encrypt(self):
        if self.cleartext == self.original_cleartext:
            output.annotate("No changes, encrypting with a new nonce anyway.")
        nonce, ciphertext = cipher.encrypt(self.cleartext, self.key, self.aad)
        self.encrypted = envelope.encode(nonce, self.aad, ciphertext)
        self.state = REENCRYPTED

    def commit(self):
        try:
            atomic_write(self.path, self.encrypted)
        except OSError as e:
            raise FileAccessError.from_context(self.path, "write", e)
        self.state = COMMITTED
        output.annotate(f"Encrypted `{self.path}`.")


def main(editor: str, path: str, key_file: Optional[str] = None, **kw):
    """Edit an encrypted file in an external editor."""
    session = EditSession(
        path, KeyResolver.default(key_file), CommandEditor(editor)
    )
    session.main()
    return 0
