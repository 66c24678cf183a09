"""Connections to an HDFS cluster."""

from __future__ import annotations

import errno
import shutil
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Mapping, Optional

from .errors import (
    RemoteError,
    interpret_create_exception,
    interpret_exception,
    path_error,
)
from .file_reader import FileInfo, FileReader
from .file_writer import FileWriter
from .options import ClientOptions

_DEFAULT_PERMISSION = 0o644


@dataclass(frozen=True)
class ContentSummary:
    """Information about a whole tree in HDFS, as reported by the namenode."""

    name: str
    size: int
    size_after_replication: int
    file_count: int
    directory_count: int
    name_quota: int
    space_quota: int

    @classmethod
    def from_summary(cls, name: str, summary: Mapping[str, Any]) -> "ContentSummary":
        """Build a ContentSummary from a content summary mapping."""
        return cls(
            name=name,
            size=int(summary.get("length", 0)),
            size_after_replication=int(summary.get("space_consumed", 0)),
            file_count=int(summary.get("file_count", 0)),
            directory_count=int(summary.get("directory_count", 0)),
            name_quota=int(summary.get("quota", 0)),
            space_quota=int(summary.get("space_quota", 0)),
        )


@dataclass(frozen=True)
class ServerDefaults:
    """Filesystem configuration stored on the namenode."""

    block_size: int
    bytes_per_checksum: int
    write_packet_size: int
    replication: int
    file_buffer_size: int
    encrypt_data_transfer: bool
    trash_interval: int
    key_provider_uri: str
    policy_id: int

    @classmethod
    def from_proto(cls, defaults: Mapping[str, Any]) -> "ServerDefaults":
        """Build ServerDefaults from a server defaults mapping."""
        return cls(
            block_size=int(defaults.get("block_size", 0)),
            bytes_per_checksum=int(defaults.get("bytes_per_checksum", 0)),
            write_packet_size=int(defaults.get("write_packet_size", 0)),
            replication=int(defaults.get("replication", 0)),
            file_buffer_size=int(defaults.get("file_buffer_size", 0)),
            encrypt_data_transfer=bool(defaults.get("encrypt_data_transfer", False)),
            trash_interval=int(defaults.get("trash_interval", 0)),
            key_provider_uri=str(defaults.get("key_provider_uri", "")),
            policy_id=int(defaults.get("policy_id", 0)),
        )


def _copy_and_close(source: Any, writer: FileWriter) -> None:
    try:
        shutil.copyfileobj(source, writer)
    except BaseException:
        try:
            writer.close()
        except Exception:
            pass
        raise
    writer.close()


class Client:
    """A connection to an HDFS cluster.

    ``namenode`` executes RPC calls (``execute(method, request)``) and carries
    ``user`` and ``client_name``; ``datanode`` builds block readers, block
    writers, checksum readers and SASL dialers.
    """

    def __init__(self, namenode: Any, options: ClientOptions, datanode: Any = None) -> None:
        self.namenode = namenode
        self.options = options
        self.datanode = datanode
        self._defaults: Optional[Mapping[str, Any]] = None
        self._encryption_key: Optional[Mapping[str, Any]] = None

    @property
    def user(self) -> str:
        """The user the client acts as."""
        return self.namenode.user

    @property
    def name(self) -> str:
        """The unique name the client uses towards namenodes and datanodes."""
        return self.namenode.client_name

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def read_file(self, filename: str) -> bytes:
        """Return the whole contents of *filename*."""
        with self.open(filename) as reader:
            return reader.read()

    def copy_to_local(self, src: str, dst: str) -> None:
        """Copy the HDFS file *src* to the local file *dst*, overwriting it."""
        with open(dst, "wb") as local:
            with self.open(src) as remote:
                shutil.copyfileobj(remote, local)

    def copy_to_remote(self, src: str, dst: str) -> None:
        """Copy the local file *src* to the new HDFS file *dst*."""
        local: BinaryIO
        with open(src, "rb") as local:
            remote = self.create(dst)
            _copy_and_close(local, remote)

    def copy(self, src: str, dst: str) -> None:
        """Copy the HDFS file *src* to the new HDFS file *dst*."""
        with self.open(src) as source:
            remote = self.create(dst)
            _copy_and_close(source, remote)

    def get_content_summary(self, name: str) -> ContentSummary:
        """Return the content summary for the tree rooted at *name*."""
        try:
            response = self.namenode.execute("getContentSummary", {"path": name})
        except (RemoteError, OSError) as exc:
            raise path_error("content summary", name, interpret_exception(exc)) from exc
        return ContentSummary.from_summary(name, response.get("summary") or {})

    def server_defaults(self) -> ServerDefaults:
        """Fetch the filesystem defaults stored on the namenode."""
        return ServerDefaults.from_proto(self._fetch_defaults())

    def open(self, name: str) -> FileReader:
        """Open *name* for reading."""
        try:
            info = self._get_file_info(name)
        except (RemoteError, OSError) as exc:
            raise path_error("open", name, interpret_exception(exc)) from exc
        return FileReader(self, name, info)

    def create(self, name: str) -> FileWriter:
        """Create a new file with the server's default replication and block size."""
        try:
            self._get_file_info(name)
        except (RemoteError, OSError) as exc:
            err = interpret_exception(exc)
            if not isinstance(err, FileNotFoundError):
                raise path_error("create", name, err) from exc
        else:
            raise path_error(
                "create", name, FileExistsError(errno.EEXIST, "file already exists")
            )

        defaults = self._fetch_defaults()
        return self.create_file(
            name,
            int(defaults.get("replication", 0)),
            int(defaults.get("block_size", 0)),
            _DEFAULT_PERMISSION,
        )

    def create_file(
        self, name: str, replication: int, block_size: int, perm: int
    ) -> FileWriter:
        """Create a new file with the given replication, block size and mode."""
        request = {
            "src": name,
            "masked": {"perm": int(perm)},
            "client_name": self.namenode.client_name,
            "create_flag": 1,
            "create_parent": False,
            "replication": int(replication),
            "block_size": int(block_size),
        }
        try:
            response = self.namenode.execute("create", request)
        except (RemoteError, OSError) as exc:
            raise path_error("create", name, interpret_create_exception(exc)) from exc

        status = response.get("fs") or {}
        return FileWriter(self, name, replication, block_size, status.get("file_id"))

    def append(self, name: str) -> FileWriter:
        """Open an existing file for appending."""
        try:
            self._get_file_info(name)
            response = self.namenode.execute(
                "append", {"src": name, "client_name": self.namenode.client_name}
            )
        except (RemoteError, OSError) as exc:
            raise path_error("append", name, interpret_exception(exc)) from exc

        status = response.get("stat") or {}
        replication = int(status.get("block_replication", 0))
        block_size = int(status.get("blocksize", 0))
        file_id = status.get("file_id")

        # No block means an empty file or a full last block.
        block = response.get("block")
        if block is None:
            return FileWriter(self, name, replication, block_size, file_id)

        dial_func = self._wrap_datanode_dial(
            self.options.datanode_dial_func, block.get("block_token")
        )
        block_writer = self.datanode.block_writer(
            client_name=self.namenode.client_name,
            block=block,
            block_size=block_size,
            offset=int((block.get("b") or {}).get("num_bytes", 0)),
            append=True,
            use_datanode_hostname=self.options.use_datanode_hostname,
            dial_func=dial_func,
        )
        block_writer.set_deadline(None)
        return FileWriter(self, name, replication, block_size, file_id, block_writer)

    def create_empty_file(self, name: str) -> None:
        """Create an empty file with mode 0644."""
        self.create(name).close()

    def close(self) -> None:
        """Close the connection to the namenode."""
        self.namenode.close()

    def _get_file_info(self, name: str) -> FileInfo:
        response = self.namenode.execute("getFileInfo", {"src": name})
        status = response.get("fs")
        if status is None:
            raise FileNotFoundError(errno.ENOENT, "file does not exist")
        return FileInfo.from_status(status, name)

    def _fetch_defaults(self) -> Mapping[str, Any]:
        if self._defaults is None:
            response = self.namenode.execute("getServerDefaults", {})
            self._defaults = response.get("server_defaults") or {}
        return self._defaults

    def _fetch_data_encryption_key(self) -> Any:
        if self._encryption_key is None:
            response = self.namenode.execute("getDataEncryptionKey", {})
            self._encryption_key = response.get("data_encryption_key")
        return self._encryption_key

    def _wrap_datanode_dial(self, dial_func: Any, token: Any) -> Any:
        protection = self.options.data_transfer_protection
        if protection:
            wrap = True
        else:
            wrap = bool(self._fetch_defaults().get("encrypt_data_transfer", False))

        if not wrap:
            return dial_func

        key = self._fetch_data_encryption_key()
        return self.datanode.sasl_dialer(
            dial_func=dial_func,
            key=key,
            token=token,
            enforce_qop=protection.value if protection else "",
            skip_sasl_on_privileged_ports=self.options.skip_sasl_for_privileged_datanode_ports,
        )


def new_client(
    options: ClientOptions, connect: Callable[..., Any], datanode: Any = None
) -> Client:
    """Connect to the namenode(s) named by *options* and return a Client.

    *connect* is called with the namenode connection settings as keyword
    arguments and returns the namenode connection.
    """
    kerberos = options.kerberos_client
    if kerberos is not None and kerberos.credentials is None:
        raise ValueError("kerberos enabled, but kerberos client is missing credentials")
    if kerberos is not None and not options.kerberos_service_principle_name:
        raise ValueError("kerberos enabled, but kerberos namenode SPN is not provided")

    namenode = connect(
        addresses=list(options.addresses),
        user=options.user,
        dial_func=options.namenode_dial_func,
        kerberos_client=kerberos,
        kerberos_service_principle_name=options.kerberos_service_principle_name,
    )
    return Client(namenode, options, datanode)