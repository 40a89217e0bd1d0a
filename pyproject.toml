[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xdtorrent"
version = "0.4.6"
description = "BitTorrent building blocks for anonymous networks: bencoding, torrent metainfo, filesystem drivers, HTTP tracker announces, I2P SAM sessions and a JSON RPC client."
requires-python = ">=3.10"
dependencies = [
    "paramiko",
]
keywords = ["bittorrent", "torrent", "i2p", "sam", "bencode", "tracker", "rpc", "sftp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["xdtorrent"]

[tool.hatch.build.targets.sdist]
include = ["xdtorrent", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
