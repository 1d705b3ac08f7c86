"""
Argweave filesystem probe: the operating-system boundary of the path validators.

Path validators never touch the filesystem themselves; they ask a probe.
Tests (or hosts with unusual storage) can inject any object exposing the same
five predicates.
"""
import os
import pathlib


class FilesystemProbe:
    """
    Answer simple questions about a path through os/pathlib.

    - exists(path), is_file(path), is_dir(path): plain existence checks.
    - readable(path): read permission on an existing path.
    - writable(path): write permission on an existing path, or on the nearest
      existing parent directory when the path does not exist yet.
    """

    def exists(self, path):
        return pathlib.Path(path).exists()

    def is_file(self, path):
        return pathlib.Path(path).is_file()

    def is_dir(self, path):
        return pathlib.Path(path).is_dir()

    def readable(self, path):
        return os.access(path, os.R_OK)

    def writable(self, path):
        path = pathlib.Path(path).absolute()
        while not path.exists():
            if path.parent == path:
                return False
            path = path.parent
        return os.access(path, os.W_OK)

    def __repr__(self):
        return "filesystem-probe()"


probe = FilesystemProbe()


__all__ = (
    "FilesystemProbe",
    "probe",
)
