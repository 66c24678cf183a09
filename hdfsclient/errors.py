"""Remote exceptions from HDFS and their mapping to Python errors."""

from __future__ import annotations

import errno
import os

FILE_NOT_FOUND_EXCEPTION = "java.io.FileNotFoundException"
PERMISSION_DENIED_EXCEPTION = "org.apache.hadoop.security.AccessControlException"
PATH_IS_NOT_EMPTY_DIR_EXCEPTION = "org.apache.hadoop.fs.PathIsNotEmptyDirectoryException"
FILE_ALREADY_EXISTS_EXCEPTION = "org.apache.hadoop.fs.FileAlreadyExistsException"
ALREADY_BEING_CREATED_EXCEPTION = (
    "org.apache.hadoop.hdfs.protocol.AlreadyBeingCreatedException"
)
ILLEGAL_ARGUMENT_EXCEPTION = "org.apache.hadoop.HadoopIllegalArgumentException"
NULL_POINTER_EXCEPTION = "java.lang.NullPointerException"


class RemoteError(Exception):
    """A remote java exception raised by a namenode or datanode."""

    def __init__(self, method: str, desc: str, exception: str, message: str) -> None:
        super().__init__(message or exception)
        self.method = method
        self.desc = desc
        self.exception = exception
        self.message = message


class ReplicatingError(OSError):
    """All data is written, but the namenode has not yet closed the file."""

    def __init__(self, *args) -> None:
        super().__init__(*(args or ("replication in progress",)))


def _not_exist() -> OSError:
    return FileNotFoundError(errno.ENOENT, "file does not exist")


def _exist() -> OSError:
    return FileExistsError(errno.EEXIST, "file already exists")


_EXCEPTION_MAP = {
    FILE_NOT_FOUND_EXCEPTION: _not_exist,
    PERMISSION_DENIED_EXCEPTION: lambda: PermissionError(errno.EACCES, "permission denied"),
    PATH_IS_NOT_EMPTY_DIR_EXCEPTION: lambda: OSError(
        errno.ENOTEMPTY, os.strerror(errno.ENOTEMPTY)
    ),
    FILE_ALREADY_EXISTS_EXCEPTION: _exist,
    ILLEGAL_ARGUMENT_EXCEPTION: lambda: OSError(errno.EINVAL, "invalid argument"),
    NULL_POINTER_EXCEPTION: _not_exist,
}


def interpret_exception(err: BaseException) -> BaseException:
    """Map a known remote exception to the matching OSError; else return *err*."""
    if isinstance(err, RemoteError):
        factory = _EXCEPTION_MAP.get(err.exception)
        if factory is not None:
            return factory()
    return err


def interpret_create_exception(err: BaseException) -> BaseException:
    """Like interpret_exception, also treating a file being created as existing."""
    if isinstance(err, RemoteError) and err.exception == ALREADY_BEING_CREATED_EXCEPTION:
        return _exist()
    return interpret_exception(err)


def path_error(op: str, path: str, err: BaseException) -> OSError:
    """Build an OSError for operation *op* on *path*, caused by *err*.

    The result keeps the class and errno of *err* when it is an OSError, and
    carries ``op``, ``filename`` and the original ``err`` as attributes.
    """
    if isinstance(err, OSError):
        cls = type(err)
        code = err.errno
        reason = err.strerror or str(err)
    else:
        cls = OSError
        code = None
        reason = str(err)

    if code is not None:
        exc = cls(code, reason, path)
    else:
        exc = cls(f"{op} {path}: {reason}")
        exc.filename = path

    exc.op = op
    exc.err = err
    return exc


def is_err_replicating(err: BaseException) -> bool:
    """Return True if *err* is a path error for replication still in progress."""
    return isinstance(err, ReplicatingError) and err.filename is not None