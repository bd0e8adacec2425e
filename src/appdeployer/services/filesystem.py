"""Filesystem helpers for AppDeployer."""

import logging
import os
import shutil
from datetime import datetime
from typing import Optional

from rich.console import Console

from appdeployer.constants import LOG_FILE_PREFIX


class FileSystemService:
    """Encapsulates local file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def ensure_dir(self, path: str) -> str:
        os.makedirs(path, exist_ok=True)
        return path

    def missing_tools(self, tools, which=shutil.which):
        return [tool for tool in tools if which(tool) is None]


def log_file_path(log_dir: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """One timestamped log file per invocation, e.g. ``deploy_20260101_120000.log``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return os.path.join(log_dir or os.getcwd(), f"{LOG_FILE_PREFIX}{stamp}.log")
