"""Reading Hadoop's XML configuration files."""

from __future__ import annotations

import os
import xml.etree.ElementTree as ElementTree
from pathlib import Path
from urllib.parse import urlsplit

CONF_FILES = ("core-site.xml", "hdfs-site.xml", "mapred-site.xml")

_RPC_ADDRESS_PREFIX = "dfs.namenode.rpc-address."
_HA_NAMENODES_PREFIX = "dfs.ha.namenodes."


class HadoopConf(dict):
    """All key/value pairs found in a set of Hadoop configuration files."""

    def namenodes(self) -> list[str]:
        """Return the sorted, deduplicated namenode addresses in the config.

        Addresses come from fs.defaultFS (or fs.default.name) and from keys
        starting with dfs.namenode.rpc-address. Logical cluster names named
        by dfs.ha.namenodes.<cluster> keys are left out.
        """
        hosts: set[str] = set()
        cluster_names: list[str] = []

        for key, value in self.items():
            if "fs.default" in key:
                hosts.add(_url_host(value))
            elif key.startswith(_RPC_ADDRESS_PREFIX):
                hosts.add(value)
            elif key.startswith(_HA_NAMENODES_PREFIX):
                cluster_names.append(key[len(_HA_NAMENODES_PREFIX):])

        hosts.difference_update(cluster_names)
        return sorted(hosts)


def _url_host(value: str) -> str:
    try:
        netloc = urlsplit(value).netloc
    except ValueError:
        return ""
    return netloc.rpartition("@")[2]


def _parse_properties(data: bytes) -> list[tuple[str, str]]:
    root = ElementTree.fromstring(data)
    return [
        (prop.findtext("name", default=""), prop.findtext("value", default=""))
        for prop in root.findall("property")
    ]


def load(path: str | os.PathLike) -> HadoopConf | None:
    """Load core-site.xml, hdfs-site.xml and mapred-site.xml from *path*.

    Returns None if none of the files exist. Raises OSError if a file exists
    but cannot be read, and ValueError if one cannot be parsed.
    """
    conf: HadoopConf | None = None
    directory = Path(path)

    for filename in CONF_FILES:
        try:
            data = (directory / filename).read_bytes()
        except FileNotFoundError:
            continue

        try:
            properties = _parse_properties(data)
        except ElementTree.ParseError as exc:
            raise ValueError(f"{path}: {exc}") from exc

        if conf is None:
            conf = HadoopConf()
        conf.update(properties)

    return conf


def load_from_environment() -> HadoopConf | None:
    """Locate and load the Hadoop configuration named by the environment.

    HADOOP_CONF_DIR is tried first, then $HADOOP_HOME/conf. Returns None if
    no configuration is found in either place.
    """
    conf_dir = os.environ.get("HADOOP_CONF_DIR", "")
    if conf_dir:
        conf = load(conf_dir)
        if conf is not None:
            return conf

    hadoop_home = os.environ.get("HADOOP_HOME", "")
    if hadoop_home:
        conf = load(os.path.join(hadoop_home, "conf"))
        if conf is not None:
            return conf

    return None