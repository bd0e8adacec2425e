"""Input validation and HTTP probing helpers for AppDeployer."""

import os
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests

from appdeployer.constants import HTTP_PROBE_TIMEOUT_SECONDS

_OCTET_PATTERN = re.compile(r"[0-9]{1,3}")


def is_valid_url(value: str) -> bool:
    if not value:
        return False
    return value.startswith("http://") or value.startswith("https://")


def is_valid_ipv4(value: str) -> bool:
    if not value:
        return False

    parts = value.split(".")
    if len(parts) != 4:
        return False

    for part in parts:
        if not _OCTET_PATTERN.fullmatch(part):
            return False
        if int(part) > 255:
            return False
    return True


def is_valid_port(value) -> bool:
    text = str(value) if value is not None else ""
    if not text or not text.isdigit() or not text.isascii():
        return False
    return 1 <= int(text) <= 65535


def expand_key_path(value: str) -> str:
    return os.path.expanduser(value.strip()) if value else value


def is_valid_ssh_key(path: str) -> bool:
    if not path:
        return False
    candidate = Path(path)
    return candidate.is_file() and os.access(candidate, os.R_OK)


def derive_repo_name(repo_url: str) -> str:
    """Last path segment of the repository URL without a trailing `.git`."""
    path = urlparse(repo_url).path.rstrip("/")
    name = path.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


class ValidationService:
    """Validates user input and probes HTTP endpoints from the invoking machine."""

    def __init__(self, requests_module=requests, probe_timeout: float = HTTP_PROBE_TIMEOUT_SECONDS):
        self.requests = requests_module
        self.probe_timeout = probe_timeout

    is_valid_url = staticmethod(is_valid_url)
    is_valid_ipv4 = staticmethod(is_valid_ipv4)
    is_valid_port = staticmethod(is_valid_port)
    is_valid_ssh_key = staticmethod(is_valid_ssh_key)

    def probe_http(self, url: str, logger=None) -> bool:
        last_error: Optional[Exception] = None
        for method in ("HEAD", "GET"):
            try:
                with self.requests.request(
                    method,
                    url,
                    allow_redirects=True,
                    timeout=self.probe_timeout,
                    stream=(method == "GET"),
                ) as response:
                    response.raise_for_status()
                return True
            except self.requests.RequestException as exc:
                last_error = exc

        if logger is not None:
            logger.debug("HTTP probe of %s failed: %s", url, last_error)
        return False
