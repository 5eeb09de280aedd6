"""
Single instance guard

Makes sure only one bingwallpaper process runs the scheduler at a time.

    POSIX:   an exclusive, non-blocking flock() on a lock file in the temp directory. The
             kernel drops the lock when the process dies, so a crash never leaves a stale
             lock behind. The lock file itself is left in place between runs.
    Windows: a named kernel mutex. CreateMutexW reports ERROR_ALREADY_EXISTS when another
             process created it first.

The backend is picked once, when this module is imported.
"""

import os
import sys
import atexit
import logging
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_NAME = "bing-wallpaper-python"


class InstanceLockError(Exception):
    """Raise when the instance marker cannot be created at all (not merely already held)."""

    pass


class _FileLockBackend:
    def __init__(self, lock_path: Path = None):
        self.lock_path = Path(lock_path or Path(tempfile.gettempdir()) / f"{LOCK_NAME}.lock")
        self._fd = None

    def acquire(self) -> bool:
        import fcntl

        try:
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as error:
            raise InstanceLockError(f"Unable to create lock file {self.lock_path}: {error}")

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            return False

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        return True

    def release(self):
        import fcntl

        if self._fd is None:
            return

        fcntl.flock(self._fd, fcntl.LOCK_UN)
        os.close(self._fd)
        self._fd = None


class _NamedMutexBackend:
    ERROR_ALREADY_EXISTS = 183

    def __init__(self, name: str = None):
        self.name = name or f"Local\\{LOCK_NAME}"
        self._handle = None

    @staticmethod
    def _kernel32():
        import ctypes

        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)

        # HANDLE is pointer sized: the default int return type would truncate it on 64-bit
        kernel32.CreateMutexW.argtypes = (ctypes.c_void_p, ctypes.c_int, ctypes.c_wchar_p)
        kernel32.CreateMutexW.restype = ctypes.c_void_p
        kernel32.CloseHandle.argtypes = (ctypes.c_void_p,)
        kernel32.CloseHandle.restype = ctypes.c_int

        return kernel32

    def acquire(self) -> bool:
        import ctypes

        kernel32 = self._kernel32()
        handle = kernel32.CreateMutexW(None, False, self.name)
        if not handle:
            raise InstanceLockError(
                f"Unable to create mutex {self.name}: error {ctypes.get_last_error()}"
            )

        if ctypes.get_last_error() == self.ERROR_ALREADY_EXISTS:
            kernel32.CloseHandle(handle)
            return False

        self._handle = handle
        return True

    def release(self):
        if self._handle is None:
            return

        self._kernel32().CloseHandle(self._handle)
        self._handle = None


if sys.platform == "win32":
    _Backend = _NamedMutexBackend
else:
    _Backend = _FileLockBackend


class SingleInstanceGuard:
    """
    Process-wide exclusive marker. acquire() returns False when another process holds it.
    Once acquired the marker is released on normal interpreter exit, or explicitly with
    release() / by leaving a with-block.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else _Backend()
        self.acquired = False

    def acquire(self) -> bool:
        if self.acquired:
            return True

        self.acquired = self.backend.acquire()
        if self.acquired:
            atexit.register(self.release)
        else:
            logger.debug("Instance marker is held by another process")

        return self.acquired

    def release(self):
        if not self.acquired:
            return

        self.backend.release()
        self.acquired = False
        atexit.unregister(self.release)

    def __enter__(self):
        if not self.acquire():
            raise InstanceLockError("Another instance is already running.")
        return self

    def __exit__(self, *exc_info):
        self.release()
