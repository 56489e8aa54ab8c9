from __future__ import annotations

from pathlib import Path


class BackupScopeError(Exception):
    """Base class for every error raised by backupscope."""


class PathResolutionError(BackupScopeError):
    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot resolve path {self.path}: {reason}")


class PatternSyntaxError(BackupScopeError, ValueError):
    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid glob pattern {pattern!r}: {reason}")


class TraversalEntryError(BackupScopeError):
    """A single entry could not be read while walking a folder.

    Never raised by the traversal itself; instances are handed to the
    ``on_error`` callback and logged so the walk can continue.
    """

    def __init__(self, path: str | Path, cause: BaseException) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Error while walking {self.path}: {cause}")


class InsertError(BackupScopeError):
    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot insert {self.path}: {reason}")


class ResticError(BackupScopeError):
    """Base class for failures of the external restic executable."""


class ResticRepoNotFound(ResticError):
    def __init__(self, locator: str = "") -> None:
        self.locator = locator
        message = "Restic repository not found at given path"
        super().__init__(f"{message}: {locator}" if locator else message)


class ResticRepoInvalidPassword(ResticError):
    def __init__(self) -> None:
        super().__init__("Restic repository is not decrypted with this password")


class InvalidId(ResticError, ValueError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"The input id does not contain all hex characters: {value!r}")


class NoOutputFromRestic(ResticError):
    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Restic produced no output for `{command}`")


class ResticCommandError(ResticError):
    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no error output"
        super().__init__(f"`{command}` failed with exit code {returncode}: {detail}")
