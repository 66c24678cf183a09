from pathlib import Path

import pytest

from hdfsclient.hadoopconf import HadoopConf, load, load_from_environment


def _write_conf(directory: Path, filename: str, props: dict) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    body = "".join(
        f"<property><name>{name}</name><value>{value}</value></property>"
        for name, value in props.items()
    )
    (directory / filename).write_text(
        f'<?xml version="1.0"?><configuration>{body}</configuration>'
    )


@pytest.fixture
def hadoop_home(tmp_path):
    home = tmp_path / "home"
    _write_conf(
        home / "conf",
        "hdfs-site.xml",
        {
            "dfs.namenode.rpc-address.cluster.nn1": "namenode1:8020",
            "dfs.namenode.rpc-address.cluster.nn2": "namenode2:8020",
        },
    )
    conf_dir = tmp_path / "conf2"
    _write_conf(conf_dir, "core-site.xml", {"fs.defaultFS": "hdfs://namenode3:8020"})
    return home, conf_dir


def test_conf_fallback(hadoop_home, monkeypatch):
    home, conf_dir = hadoop_home
    monkeypatch.setenv("HADOOP_HOME", str(home))
    monkeypatch.setenv("HADOOP_CONF_DIR", str(conf_dir))

    conf = load_from_environment()
    assert conf.namenodes() == ["namenode3:8020"]

    monkeypatch.delenv("HADOOP_CONF_DIR")

    conf = load_from_environment()
    assert conf.namenodes() == ["namenode1:8020", "namenode2:8020"]


def test_conf_dir_without_files_falls_back_to_home(hadoop_home, tmp_path, monkeypatch):
    home, _ = hadoop_home
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("HADOOP_HOME", str(home))
    monkeypatch.setenv("HADOOP_CONF_DIR", str(empty))

    conf = load_from_environment()
    assert conf.namenodes() == ["namenode1:8020", "namenode2:8020"]


def test_load_from_environment_nothing_set(monkeypatch):
    monkeypatch.delenv("HADOOP_HOME", raising=False)
    monkeypatch.delenv("HADOOP_CONF_DIR", raising=False)
    assert load_from_environment() is None


def test_load_missing_directory_returns_none(tmp_path):
    assert load(tmp_path / "nowhere") is None


def test_load_later_files_override_earlier(tmp_path):
    _write_conf(tmp_path, "core-site.xml", {"a": "core", "b": "only-core"})
    _write_conf(tmp_path, "hdfs-site.xml", {"a": "hdfs"})
    _write_conf(tmp_path, "mapred-site.xml", {"c": "mapred"})

    conf = load(tmp_path)
    assert conf == {"a": "hdfs", "b": "only-core", "c": "mapred"}


def test_load_malformed_xml_raises(tmp_path):
    (tmp_path / "core-site.xml").write_text("<configuration><property>")
    with pytest.raises(ValueError) as excinfo:
        load(tmp_path)
    assert str(tmp_path) in str(excinfo.value)


def test_namenodes_drops_logical_cluster_names():
    conf = HadoopConf(
        {
            "fs.defaultFS": "hdfs://mycluster",
            "dfs.ha.namenodes.mycluster": "nn1,nn2",
            "dfs.namenode.rpc-address.mycluster.nn1": "namenode2:8020",
            "dfs.namenode.rpc-address.mycluster.nn2": "namenode1:8020",
        }
    )
    assert conf.namenodes() == ["namenode1:8020", "namenode2:8020"]


def test_namenodes_deduplicates_and_reads_deprecated_key():
    conf = HadoopConf(
        {
            "fs.default.name": "hdfs://namenode1:8020",
            "dfs.namenode.rpc-address": "ignored",
            "dfs.namenode.rpc-address.x": "namenode1:8020",
        }
    )
    assert conf.namenodes() == ["namenode1:8020"]


def test_namenodes_empty_conf():
    assert HadoopConf().namenodes() == []