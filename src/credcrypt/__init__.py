import os.path

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        output.error(str(self))


class KeyNotFound(ReportingException):
    """None of the configured key sources provided a key."""

    sources: str

    @classmethod
    def from_context(cls, sources):
        self = cls()
        self.sources = ", ".join(sources)
        return self

    def __str__(self):
        return f"Could not find master key. Tried: {self.sources}"

    def report(self):
        output.error("Could not find master key")
        output.tabular("tried", self.sources, red=True)
        output.annotate(
            "Set MASTER_KEY or place the key in a `master.key` file."
        )


class InvalidKeyLength(ReportingException):
    """The key material does not decode to exactly 32 bytes."""

    source: str
    reason: str

    @classmethod
    def from_context(cls, source, reason):
        self = cls()
        self.source = source
        self.reason = reason
        return self

    def __str__(self):
        return f"Invalid master key from {self.source}: {self.reason}"


class InvalidParameters(ReportingException):
    """Key or nonce of the wrong size reached the cipher boundary."""

    parameter: str
    expected: int
    actual: int

    @classmethod
    def from_context(cls, parameter, expected, actual):
        self = cls()
        self.parameter = parameter
        self.expected = expected
        self.actual = actual
        return self

    def __str__(self):
        return (
            f"Invalid {self.parameter} size: expected {self.expected} "
            f"bytes, got {self.actual}"
        )


class DecryptionFailed(ReportingException):
    """The authentication tag did not verify.

    Deliberately carries no detail about why: wrong key, tampered nonce,
    tampered ciphertext and mismatching associated data all look the same.

    """

    def __str__(self):
        return (
            "Decryption failed: wrong key or corrupted/tampered "
            "encrypted content"
        )


class FormatError(ReportingException):
    """An encrypted file could not be parsed as an envelope."""

    reason: str

    @classmethod
    def from_context(cls, reason):
        self = cls()
        self.reason = reason
        return self

    def __str__(self):
        return f"Malformed encrypted file: {self.reason}"


class FileAccessError(ReportingException):
    """Reading, writing or renaming a file failed."""

    filename: str
    action: str
    error: str

    @classmethod
    def from_context(cls, filename, action, error):
        self = cls()
        self.filename = str(filename)
        self.action = action
        self.error = str(error)
        return self

    def __str__(self):
        return f"Could not {self.action} `{self.filename}`: {self.error}"

    def report(self):
        output.error(f"Could not {self.action} file")
        output.tabular("file", self.filename, red=True)
        output.tabular("message", self.error)


class EditorFailure(ReportingException):
    """The external editor exited with a non-zero status."""

    command: str
    exitcode: str

    @classmethod
    def from_context(cls, command, exitcode):
        self = cls()
        self.command = command
        self.exitcode = str(exitcode)
        return self

    def __str__(self):
        return (
            f"Editor exited with status {self.exitcode}: {self.command}\n"
            "The encrypted file was left unchanged."
        )

    def report(self):
        output.error("Editor failed, the encrypted file was left unchanged")
        output.tabular("command", self.command, red=True)
        output.tabular("exit code", self.exitcode)
