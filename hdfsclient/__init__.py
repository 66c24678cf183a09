"""HDFS client logic: Hadoop configuration, options, file readers and writers over caller-supplied transports."""

__version__ = "0.1.0"