"""Shared constants for AppDeployer."""

import logging
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERIC = 1
    DIRECTORY_CHANGE = 2
    FETCH = 3
    CHECKOUT = 4
    PULL = 5
    CLONE = 6
    MISSING_BUILD_RECIPE = 7
    SSH_CONNECTIVITY = 8
    ENGINE_INSTALL = 9
    COMPOSE_INSTALL = 10
    PROXY_INSTALL = 11
    SERVICE_START = 12
    FILE_TRANSFER = 13
    COMPOSE_DEPLOY = 14
    BUILD_RUN = 15
    CONTAINER_NOT_RUNNING = 16
    PROXY_CONFIG_WRITE = 17
    PROXY_SYNTAX_CHECK = 18
    PROXY_RELOAD = 19
    MISSING_LOCAL_TOOL = 20


DEFAULT_BRANCH = "main"
REQUIRED_LOCAL_TOOLS = ("git", "ssh", "rsync")

RSYNC_EXCLUDES = (".git", "*.log", "node_modules")

DOCKERFILE_NAME = "Dockerfile"
COMPOSE_FILE_NAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

NGINX_SITES_AVAILABLE = "/etc/nginx/sites-available"
NGINX_SITES_ENABLED = "/etc/nginx/sites-enabled"

SSH_CONNECT_TIMEOUT_SECONDS = 10
SETTLE_DELAY_SECONDS = 5.0
APP_PROBE_DELAY_SECONDS = 3.0
HTTP_PROBE_TIMEOUT_SECONDS = 10.0
IMAGE_RETENTION_COUNT = 1
DIAGNOSTIC_LOG_LINES = 50

KEY_FILE_MODE = 0o600
LOG_FILE_PREFIX = "deploy_"
DEFAULT_CONFIG_FILE = ".appdeployer.yml"

# Tags success lines; sits between INFO and WARNING.
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")
