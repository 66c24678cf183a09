from datetime import datetime, timedelta, timezone

import pytest

from hdfsclient.errors import (
    FILE_NOT_FOUND_EXCEPTION,
    PERMISSION_DENIED_EXCEPTION,
    RemoteError,
    ReplicatingError,
    is_err_replicating,
)
from hdfsclient.file_writer import FileWriter
from hdfsclient.options import ClientOptions


class FakeBlockWriter:
    def __init__(self, block, block_size, offset, append, dial_func, store):
        self.block = block
        self.block_size = block_size
        self.offset = offset
        self.append = append
        self.dial_func = dial_func
        self.deadline = None
        self.flushes = 0
        self.closed = False
        self.store = store

    def set_deadline(self, deadline):
        self.deadline = deadline

    def write(self, data):
        if self.deadline is not None and self.deadline <= datetime.now(timezone.utc):
            raise TimeoutError("deadline exceeded")
        room = self.block_size - self.offset
        n = min(room, len(data))
        self.store.setdefault(self.block["b"]["block_id"], bytearray()).extend(
            bytes(data[:n])
        )
        self.offset += n
        return n

    def flush(self):
        if self.deadline is not None and self.deadline <= datetime.now(timezone.utc):
            raise TimeoutError("deadline exceeded")
        self.flushes += 1

    def close(self):
        self.closed = True


class FakeDatanode:
    def __init__(self):
        self.store = {}
        self.writers = []

    def block_writer(self, client_name, block, block_size, offset, append,
                     use_datanode_hostname, dial_func):
        writer = FakeBlockWriter(block, block_size, offset, append, dial_func, self.store)
        self.writers.append(writer)
        return writer


class FakeNamenode:
    client_name = "test-client"

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.complete_results = []
        self.next_block_id = 1

    def execute(self, method, request):
        self.calls.append((method, request))
        if method in self.errors:
            raise self.errors[method]
        if method == "addBlock":
            block = {
                "b": {"block_id": self.next_block_id, "num_bytes": 0},
                "block_token": "token",
            }
            self.next_block_id += 1
            return {"block": block}
        if method == "complete":
            result = self.complete_results.pop(0) if self.complete_results else True
            return {"result": result}
        return {}

    def methods(self):
        return [method for method, _ in self.calls]


class FakeClient:
    def __init__(self):
        self.namenode = FakeNamenode()
        self.datanode = FakeDatanode()
        self.options = ClientOptions(user="gohdfs1")
        self.dialed_tokens = []

    def _wrap_datanode_dial(self, dial_func, token):
        self.dialed_tokens.append(token)
        return ("dial", token)


@pytest.fixture
def client():
    return FakeClient()


def contents(client):
    return b"".join(bytes(client.datanode.store[k]) for k in sorted(client.datanode.store))


def test_write_and_close(client):
    writer = FileWriter(client, "/_test/create/1.txt", 3, 1048576, 42)
    assert writer.write(b"foo") == 3
    assert writer.write(b"bar") == 3
    writer.close()

    assert contents(client) == b"foobar"
    assert client.namenode.methods() == ["addBlock", "updateBlockForPipeline", "complete"]
    complete = client.namenode.calls[-1][1]
    assert complete["src"] == "/_test/create/1.txt"
    assert complete["file_id"] == 42
    assert complete["client_name"] == "test-client"
    assert complete["last"]["num_bytes"] == 6
    assert client.datanode.writers[0].closed


def test_write_spans_multiple_blocks(client):
    writer = FileWriter(client, "/_test/create/3.txt", 1, 4, 7)
    assert writer.write(b"abcdefghij") == 10
    writer.close()

    assert client.datanode.store == {1: b"abcd", 2: b"efgh", 3: b"ij"}
    add_blocks = [req for method, req in client.namenode.calls if method == "addBlock"]
    assert [req["previous"] for req in add_blocks][0] is None
    assert add_blocks[1]["previous"]["block_id"] == 1
    assert add_blocks[1]["previous"]["num_bytes"] == 4
    assert add_blocks[2]["previous"]["block_id"] == 2
    assert client.namenode.calls[-1][1]["last"] == {"block_id": 3, "num_bytes": 2}


def test_write_exactly_fills_block(client):
    writer = FileWriter(client, "/f", 1, 4, 1)
    writer.write(b"abcd")
    writer.write(b"ef")
    writer.close()
    assert client.datanode.store == {1: b"abcd", 2: b"ef"}


def test_close_without_writes_completes_empty_file(client):
    writer = FileWriter(client, "/_test/emptyfile", 3, 1048576, 5)
    writer.close()
    assert client.namenode.methods() == ["complete"]
    assert client.namenode.calls[0][1]["last"] is None


def test_close_reports_replicating_then_succeeds(client):
    client.namenode.complete_results = [False, True]
    writer = FileWriter(client, "/_test/create/2.txt", 3, 1048576, 1)
    writer.write(b"data")

    with pytest.raises(ReplicatingError) as info:
        writer.close()
    assert is_err_replicating(info.value)
    assert info.value.filename == "/_test/create/2.txt"
    assert info.value.op == "create"

    writer.close()
    assert client.namenode.methods().count("complete") == 2
    assert client.namenode.methods().count("updateBlockForPipeline") == 1


def test_complete_remote_error_is_path_error(client):
    client.namenode.errors["complete"] = RemoteError(
        "complete", "ERROR", "java.io.IOException", "boom"
    )
    writer = FileWriter(client, "/f", 1, 1024, 1)
    with pytest.raises(OSError) as info:
        writer.close()
    assert info.value.op == "create"
    assert info.value.filename == "/f"
    assert not is_err_replicating(info.value)


def test_add_block_missing_parent_is_not_found(client):
    client.namenode.errors["addBlock"] = RemoteError(
        "addBlock", "ERROR", FILE_NOT_FOUND_EXCEPTION, "missing"
    )
    writer = FileWriter(client, "/_test/nonexistent/emptyfile", 1, 1024, 1)
    with pytest.raises(FileNotFoundError) as info:
        writer.write(b"foo")
    assert info.value.filename == "/_test/nonexistent/emptyfile"
    assert info.value.op == "create"


def test_add_block_permission_denied(client):
    client.namenode.errors["addBlock"] = RemoteError(
        "addBlock", "ERROR", PERMISSION_DENIED_EXCEPTION, "denied"
    )
    writer = FileWriter(client, "/_test/accessdenied/emptyfile", 1, 1024, 1)
    with pytest.raises(PermissionError):
        writer.write(b"x")


def test_flush_delegates_to_block_writer(client):
    writer = FileWriter(client, "/f", 1, 1024, 1)
    writer.flush()
    assert client.datanode.writers == []

    writer.write(b"foo")
    writer.flush()
    writer.flush()
    assert client.datanode.writers[0].flushes == 2


def test_deadline_is_applied_to_block_writers(client):
    deadline = datetime.now(timezone.utc) + timedelta(hours=1)
    writer = FileWriter(client, "/f", 1, 2, 1)
    writer.set_deadline(deadline)
    writer.write(b"abc")
    assert [w.deadline for w in client.datanode.writers] == [deadline, deadline]

    later = deadline + timedelta(hours=1)
    writer.set_deadline(later)
    assert client.datanode.writers[-1].deadline == later


def test_write_after_deadline_fails(client):
    writer = FileWriter(client, "/_test/create/8.txt", 1, 1024, 1)
    writer.set_deadline(datetime.now(timezone.utc) - timedelta(seconds=1))
    with pytest.raises(TimeoutError):
        writer.write(b"foo")


def test_append_uses_existing_block_writer(client):
    block = {"b": {"block_id": 9, "num_bytes": 7}, "block_token": "token"}
    existing = FakeBlockWriter(block, 1024, 7, True, None, client.datanode.store)
    writer = FileWriter(client, "/_test/append/1.txt", 3, 1024, 11, existing)

    assert writer.write(b"foo") == 3
    assert writer.write(b"baz") == 3
    writer.close()

    assert "addBlock" not in client.namenode.methods()
    assert bytes(client.datanode.store[9]) == b"foobaz"
    assert client.namenode.calls[-1][1]["last"] == {"block_id": 9, "num_bytes": 13}


def test_block_token_is_used_for_dial(client):
    writer = FileWriter(client, "/f", 1, 1024, 1)
    writer.write(b"x")
    assert client.dialed_tokens == ["token"]
    assert client.datanode.writers[0].dial_func == ("dial", "token")


def test_context_manager_closes(client):
    with FileWriter(client, "/_test/create/ctx.txt", 1, 1024, 3) as writer:
        writer.write(b"hello")
    assert client.namenode.methods()[-1] == "complete"
    assert contents(client) == b"hello"


def test_large_write_round_trip(client):
    data = bytes(range(256)) * 50
    writer = FileWriter(client, "/big", 1, 1000, 1)
    assert writer.write(data) == len(data)
    writer.close()
    assert contents(client) == data
    assert len(client.datanode.store) == 13
    assert all(len(v) <= 1000 for v in client.datanode.store.values())