[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hdfsclient"
version = "0.1.0"
description = "HDFS client logic: Hadoop configuration loading, file reading and writing over pluggable namenode and datanode transports"
requires-python = ">=3.10"
dependencies = []
keywords = ["hdfs", "hadoop", "filesystem", "namenode", "datanode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hdfsclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
