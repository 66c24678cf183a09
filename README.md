# hdfsclient

Client-side logic for HDFS, with an interface close to Python's own file
objects: open remote files, read, seek, list directories, create files and
append to them. The library handles the client's side of the work: it loads
Hadoop configuration, builds requests, maps remote exceptions, allocates
blocks and computes checksums. The actual network transport is supplied by
the caller.

## Installation

```
pip install hdfsclient
```

To run the test suite:

```
pip install "hdfsclient[test]"
pytest
```

## What the package does not do

The package has no wire protocol of its own. It does not speak the Hadoop
RPC or data transfer protocols, does not encode or decode protobuf messages,
does not perform SASL handshakes, and does not authenticate with Kerberos.
It has no command-line tool either. To connect to a real cluster, you
provide two objects:

- a **namenode connection** with `execute(method, request)`, which takes a
  request mapping and returns a response mapping, plus the attributes `user`
  and `client_name` and a `close()` method. When the namenode reports a
  failure, `execute` should raise `RemoteError`;
- a **datanode factory** with `block_reader(...)`, `block_writer(...)`,
  `checksum_reader(...)` and `sasl_dialer(...)`. These methods return
  objects that move block data.

## Hadoop configuration

`hdfsclient.hadoopconf` reads `core-site.xml`, `hdfs-site.xml` and
`mapred-site.xml`. The `HADOOP_CONF_DIR` directory is tried first, and then
`$HADOOP_HOME/conf`.

```python
from hdfsclient.hadoopconf import load, load_from_environment

conf = load_from_environment()      # None if no configuration was found
if conf is not None:
    print(conf.namenodes())         # sorted, deduplicated, e.g. ["nn1:8020"]

conf = load("/etc/hadoop/conf")     # ValueError if a file cannot be parsed
```

`HadoopConf` is a `dict`. `namenodes()` collects addresses from
`fs.defaultFS` (or `fs.default.name`) and from the
`dfs.namenode.rpc-address.*` keys. Logical cluster names listed by the
`dfs.ha.namenodes.*` keys are dropped from the result.

## Client options

`hdfsclient.options.client_options_from_conf` turns a configuration into a
`ClientOptions` dataclass. It sets:

- the namenode addresses;
- `use_datanode_hostname`;
- the Kerberos service principal name, with the realm removed;
- `data_transfer_protection`, a `DataTransferProtection` value. The highest
  level listed wins, and `dfs.encrypt.data.transfer=true` forces `PRIVACY`.

When `hadoop.security.authentication` is `kerberos`, `kerberos_client` is set
to a `KerberosClient` without credentials. Replace it or clear it before you
connect.

```python
from hdfsclient.options import client_options_from_conf

options = client_options_from_conf(conf)
options.user = "alice"
```

## Clients, readers and writers

`hdfsclient.client.new_client(options, connect, datanode)` checks the
Kerberos settings and raises `ValueError` if credentials or the SPN are
missing. It then calls `connect(...)` with the namenode settings as keyword
arguments and returns a `Client`.

`Client` is a context manager and offers the following:

- `open(name)` returns a `FileReader`, which offers `read`, `read_at`, `seek`,
  `tell`, `stat`, `readdir`, `readdirnames`, `checksum`, `set_deadline` and
  `close`. Reading a directory raises an error, and `readdir(n)` with `n > 0`
  raises `EOFError` once the directory is exhausted.
- `create(name)` uses the server's default replication and block size with
  mode 0644. `create_file(name, replication, block_size, perm)` takes these
  values explicitly. `append(name)` opens an existing file for appending.
  All three return a `FileWriter`, which offers `write`, `flush`,
  `set_deadline` and `close`.
- `read_file`, `copy_to_local`, `copy_to_remote` and `copy` handle whole files.
- `get_content_summary(name)` returns a `ContentSummary`, and
  `server_defaults()` returns a `ServerDefaults`.

Readers and writers are context managers:

```python
with client.open("/data/foo.txt") as reader:
    data = reader.read(4)

with client.create("/data/out.txt") as writer:
    writer.write(b"hello")
```

## Errors

`hdfsclient.errors.interpret_exception` maps known remote Java exceptions to
Python exceptions:

| Remote exception | Python exception |
| --- | --- |
| `FileNotFoundException` | `FileNotFoundError` |
| `AccessControlException` | `PermissionError` |
| `FileAlreadyExistsException` | `FileExistsError` |
| `PathIsNotEmptyDirectoryException` | `OSError` with `ENOTEMPTY` |
| `HadoopIllegalArgumentException` | `OSError` with `EINVAL` |

When the client raises one of these errors, it uses `path_error`, so the
exception carries the operation in `op`, the path in `filename` and the
original exception in `err`.

`FileWriter.close()` can raise `ReplicatingError`. This means all the data
is written but the namenode has not yet completed the file.
`is_err_replicating(err)` detects this case. Calling `close` again is safe.