"""Backend handles - open a file, URL or drive and report its metadata."""

from .base import SourceBase
from .block_device import BlockDeviceSource, describe_device
from .compressed import CompressedSource, ZipSource, unwrap_container
from .file import FileSource
from .http import HttpSource
from .partitions import read_partition_table

__all__ = [
    "BlockDeviceSource",
    "CompressedSource",
    "FileSource",
    "HttpSource",
    "SourceBase",
    "ZipSource",
    "describe_device",
    "read_partition_table",
    "unwrap_container",
]
