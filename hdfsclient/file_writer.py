"""Writing files to HDFS."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from .errors import RemoteError, ReplicatingError, interpret_exception, path_error


class FileWriter:
    """An open HDFS file that accepts writes.

    Data is handed to a block writer connected to the datanode pipeline;
    a new block is allocated from the namenode whenever the current one is
    full. Writes are buffered and acknowledged asynchronously, so close()
    must be called once all data has been written.

    A block writer exposes ``block`` (the located block), ``offset`` (the
    bytes written to the block so far), ``write(data)`` returning the number
    of bytes accepted (a short count means the block is full), ``flush()``,
    ``close()`` and ``set_deadline(deadline)``.
    """

    def __init__(
        self,
        client: Any,
        name: str,
        replication: int,
        block_size: int,
        file_id: Optional[int] = None,
        block_writer: Any = None,
    ) -> None:
        self._client = client
        self._name = name
        self.replication = replication
        self.block_size = block_size
        self._file_id = file_id
        self._block_writer = block_writer
        self._deadline: Optional[datetime] = None

    @property
    def name(self) -> str:
        """Path of the file being written."""
        return self._name

    def set_deadline(self, deadline: Optional[datetime]) -> None:
        """Set the deadline for later writes, flushes and close; None disables it.

        Because of buffering, writes that do not reach the network may still
        succeed after the deadline.
        """
        self._deadline = deadline
        if self._block_writer is not None:
            self._block_writer.set_deadline(deadline)

    def write(self, data: bytes) -> int:
        """Write *data* to the file and return the number of bytes written."""
        if self._block_writer is None:
            self._start_new_block()

        view = memoryview(data)
        while view:
            written = self._block_writer.write(view)
            view = view[written:]
            if view:
                # The current block is full.
                self._start_new_block()

        return len(data)

    def flush(self) -> None:
        """Send buffered data to the datanodes; close() is still required."""
        if self._block_writer is not None:
            self._block_writer.flush()

    def close(self) -> None:
        """Flush remaining data, wait for acknowledgement and complete the file.

        Raises ReplicatingError (see is_err_replicating) if the datanodes have
        acknowledged everything but the namenode has not yet closed the file;
        calling close again until it succeeds is safe.
        """
        last_block = None
        if self._block_writer is not None:
            last_block = self._block_writer.block.get("b")
            self._finalize_block()

        request = {
            "src": self._name,
            "client_name": self._client.namenode.client_name,
            "last": last_block,
            "file_id": self._file_id,
        }
        try:
            response = self._client.namenode.execute("complete", request)
        except (RemoteError, OSError) as exc:
            raise path_error("create", self._name, exc) from exc

        if not response.get("result", False):
            raise path_error("create", self._name, ReplicatingError())

    def __enter__(self) -> "FileWriter":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _start_new_block(self) -> None:
        previous = None
        if self._block_writer is not None:
            previous = self._block_writer.block.get("b")
            self._finalize_block()

        request = {
            "src": self._name,
            "client_name": self._client.namenode.client_name,
            "previous": previous,
            "file_id": self._file_id,
        }
        try:
            response = self._client.namenode.execute("addBlock", request)
        except (RemoteError, OSError) as exc:
            raise path_error("create", self._name, interpret_exception(exc)) from exc

        block: Mapping[str, Any] = response.get("block") or {}
        dial_func = self._client._wrap_datanode_dial(
            self._client.options.datanode_dial_func, block.get("block_token")
        )
        self._block_writer = self._client.datanode.block_writer(
            client_name=self._client.namenode.client_name,
            block=block,
            block_size=self.block_size,
            offset=0,
            append=False,
            use_datanode_hostname=self._client.options.use_datanode_hostname,
            dial_func=dial_func,
        )
        self._block_writer.set_deadline(self._deadline)

    def _finalize_block(self) -> None:
        self._block_writer.close()

        # The block record is updated in place, so a reference taken before
        # finalizing carries the final length too.
        last_block = self._block_writer.block.setdefault("b", {})
        last_block["num_bytes"] = int(self._block_writer.offset)
        request = {
            "block": last_block,
            "client_name": self._client.namenode.client_name,
        }
        self._client.namenode.execute("updateBlockForPipeline", request)
        self._block_writer = None