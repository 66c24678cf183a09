"""Reading files and listing directories stored in HDFS."""

from __future__ import annotations

import errno
import hashlib
import os
import posixpath
import stat as stat_module
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .errors import RemoteError, interpret_exception, path_error

_MIN_CHECKSUM_PADDING = 32
_READ_ALL_CHUNK = 64 * 1024

_FILE_TYPES = {1: "IS_DIR", 2: "IS_FILE", 3: "IS_SYMLINK"}


def _timestamp(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class FileInfo:
    """Status of a file or directory, as reported by the namenode."""

    name: str
    size: int
    mode: int
    mod_time: datetime
    access_time: datetime
    owner: str
    group: str
    is_dir: bool
    status: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_status(cls, status: Mapping[str, Any], name: str = "") -> "FileInfo":
        """Build a FileInfo from a file status mapping.

        The name is the base name of the status path, or of *name* when the
        status carries no path.
        """
        path = status.get("path") or b""
        if isinstance(path, (bytes, bytearray)):
            path = bytes(path).decode("utf-8", errors="replace")
        full_name = path or name

        file_type = status.get("file_type", "IS_FILE")
        file_type = _FILE_TYPES.get(file_type, file_type)

        perm = int((status.get("permission") or {}).get("perm", 0))
        if file_type == "IS_DIR":
            mode = perm | stat_module.S_IFDIR
        elif file_type == "IS_SYMLINK":
            mode = perm | stat_module.S_IFLNK
        else:
            mode = perm | stat_module.S_IFREG

        return cls(
            name=posixpath.basename(full_name.rstrip("/")) or full_name,
            size=int(status.get("length", 0)),
            mode=mode,
            mod_time=_timestamp(int(status.get("modification_time", 0))),
            access_time=_timestamp(int(status.get("access_time", 0))),
            owner=status.get("owner", ""),
            group=status.get("group", ""),
            is_dir=file_type == "IS_DIR",
            status=status,
        )


def pad_checksum_length(total_length: int) -> int:
    """Return the zero-padded length HDFS hashes block checksums into.

    It is the smallest power of two that holds *total_length*, and at least 32.
    """
    padded = _MIN_CHECKSUM_PADDING
    while padded < total_length:
        padded *= 2
    return padded


def _block_range(block: Mapping[str, Any]) -> tuple[int, int]:
    start = int(block.get("offset", 0))
    length = int((block.get("b") or {}).get("num_bytes", 0))
    return start, start + length


class FileReader:
    """An open, read-only HDFS file or directory.

    Reads are served by a block reader connected to a datanode; seeks are
    virtual and only reconnect when the current block reader cannot skip.
    """

    def __init__(self, client: Any, name: str, info: FileInfo) -> None:
        self._client = client
        self._name = name
        self._info = info
        self._blocks: Optional[list] = None
        self._block_reader: Any = None
        self._deadline: Optional[datetime] = None
        self._offset = 0
        self._readdir_last = ""
        self._closed = False

    @property
    def name(self) -> str:
        """Base name of the file."""
        return self._info.name

    @property
    def closed(self) -> bool:
        return self._closed

    def stat(self) -> FileInfo:
        """Return the FileInfo describing the file."""
        return self._info

    def tell(self) -> int:
        """Return the current read offset."""
        return self._offset

    def set_deadline(self, deadline: Optional[datetime]) -> None:
        """Set the deadline for later reads and checksums; None disables it."""
        self._deadline = deadline
        if self._block_reader is not None:
            self._block_reader.set_deadline(deadline)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed file")

    def _dial_for(self, block: Mapping[str, Any]) -> Any:
        return self._client._wrap_datanode_dial(
            self._client.options.datanode_dial_func, block.get("block_token")
        )

    def checksum(self) -> bytes:
        """Return HDFS's MD5-of-MD5-of-CRC checksum for the file."""
        if self._info.is_dir:
            raise path_error(
                "checksum", self._name, IsADirectoryError(errno.EISDIR, "is a directory")
            )

        if self._blocks is None:
            self._get_blocks()

        digest = hashlib.md5()
        total_length = 0
        for block in self._blocks:
            reader = self._client.datanode.checksum_reader(
                block=block,
                use_datanode_hostname=self._client.options.use_datanode_hostname,
                dial_func=self._dial_for(block),
            )
            reader.set_deadline(self._deadline)
            block_checksum = reader.read_checksum()
            digest.update(block_checksum)
            total_length += len(block_checksum)

        # Hadoop hashes a zero-padded buffer; match 'hadoop fs -checksum'.
        digest.update(bytes(pad_checksum_length(total_length) - total_length))
        return digest.digest()

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the read offset and return the new position."""
        self._check_open()

        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._offset + offset
        elif whence == os.SEEK_END:
            target = self._info.size + offset
        else:
            raise ValueError(f"invalid whence: {whence}")

        if target < 0 or target > self._info.size:
            raise ValueError(f"invalid resulting offset: {target}")

        if self._block_reader is not None:
            # Discarding a few bytes is cheaper than reconnecting.
            try:
                self._block_reader.skip(target - self._offset)
            except Exception:
                self._block_reader.close()
                self._block_reader = None

        self._offset = target
        return self._offset

    def read(self, size: int = -1) -> bytes:
        """Read up to *size* bytes; read to the end if *size* is negative.

        Returns b"" at the end of the file.
        """
        self._check_open()

        if self._info.is_dir:
            raise path_error(
                "read", self._name, IsADirectoryError(errno.EISDIR, "is a directory")
            )

        if size is None or size < 0:
            chunks = []
            while chunk := self.read(_READ_ALL_CHUNK):
                chunks.append(chunk)
            return b"".join(chunks)

        if self._offset >= self._info.size or size == 0:
            return b""

        if self._blocks is None:
            self._get_blocks()

        while True:
            if self._block_reader is None:
                self._open_block_reader()

            try:
                data = self._block_reader.read(size)
            except Exception:
                self._block_reader.close()
                self._block_reader = None
                raise

            self._offset += len(data)
            if data:
                return data

            reader, self._block_reader = self._block_reader, None
            reader.close()

    def read_at(self, size: int, offset: int) -> bytes:
        """Read *size* bytes starting at *offset*; fewer only at end of file."""
        self._check_open()

        if offset < 0:
            raise path_error("readat", self._name, ValueError("negative offset"))

        self.seek(offset, os.SEEK_SET)

        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def readdir(self, n: int = 0) -> list[FileInfo]:
        """List directory entries in directory order.

        With n > 0, return at most n entries, continuing from the previous
        call, and raise EOFError once the directory is exhausted. With
        n <= 0, return every entry from the start.
        """
        self._check_open()

        if not self._info.is_dir:
            raise path_error(
                "readdir",
                self._name,
                NotADirectoryError(errno.ENOTDIR, "the file is not a directory"),
            )

        if n <= 0:
            self._readdir_last = ""

        result: list[FileInfo] = []
        while True:
            try:
                batch, remaining = self._list_batch()
            except (RemoteError, OSError) as exc:
                raise path_error("readdir", self._name, interpret_exception(exc)) from exc

            if batch:
                self._readdir_last = batch[-1].name

            result.extend(batch)
            if remaining == 0 or (n > 0 and len(result) >= n):
                break

        if n > 0:
            if not result:
                raise EOFError("end of directory")
            if len(result) > n:
                result = result[:n]
                self._readdir_last = result[-1].name

        return result

    def readdirnames(self, n: int = 0) -> list[str]:
        """Like readdir, but return only the entry names."""
        self._check_open()
        return [info.name for info in self.readdir(n)]

    def close(self) -> None:
        """Close the file and any open datanode connection."""
        self._closed = True
        if self._block_reader is not None:
            reader, self._block_reader = self._block_reader, None
            reader.close()

    def __enter__(self) -> "FileReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _list_batch(self) -> tuple[list[FileInfo], int]:
        request = {
            "src": self._name,
            "start_after": self._readdir_last.encode("utf-8"),
            "need_location": False,
        }
        response = self._client.namenode.execute("getListing", request)
        dir_list = response.get("dir_list")
        if dir_list is None:
            raise FileNotFoundError(errno.ENOENT, "file does not exist")

        batch = [
            FileInfo.from_status(status) for status in dir_list.get("partial_listing", [])
        ]
        return batch, int(dir_list.get("remaining_entries", 0))

    def _get_blocks(self) -> None:
        request = {"src": self._name, "offset": 0, "length": self._info.size}
        response = self._client.namenode.execute("getBlockLocations", request)
        locations = response.get("locations") or {}
        self._blocks = list(locations.get("blocks") or [])

    def _open_block_reader(self) -> None:
        for block in self._blocks:
            start, end = _block_range(block)
            if start <= self._offset < end:
                self._block_reader = self._client.datanode.block_reader(
                    client_name=self._client.namenode.client_name,
                    block=block,
                    offset=self._offset - start,
                    use_datanode_hostname=self._client.options.use_datanode_hostname,
                    dial_func=self._dial_for(block),
                )
                self._block_reader.set_deadline(self._deadline)
                return

        raise OSError(errno.EINVAL, "invalid offset")