"""Shared domain models for AppDeployer."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from appdeployer.constants import DEFAULT_BRANCH, NGINX_SITES_AVAILABLE, NGINX_SITES_ENABLED
from appdeployer.errors import DeployerError
from appdeployer.services.validation import (
    derive_repo_name,
    expand_key_path,
    is_valid_ipv4,
    is_valid_port,
    is_valid_ssh_key,
    is_valid_url,
)


class DockerConfigKind(Enum):
    """Build recipe found at the repository root."""

    DOCKERFILE = "dockerfile"
    COMPOSE = "compose"


@dataclass(frozen=True)
class RemoteTarget:
    """SSH identity used for every remote command and file transfer."""

    user: str
    host: str
    key_path: str

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}"


@dataclass
class DeploymentContext:
    """State threaded through every pipeline stage of a single run."""

    repo_url: str
    access_token: str = field(repr=False)
    branch: str
    ssh_user: str
    server_host: str
    ssh_key_path: str
    app_port: int
    workspace_dir: str
    repo_name: str = ""
    docker_config_kind: Optional[DockerConfigKind] = None

    @classmethod
    def build(
        cls,
        repo_url: str,
        access_token: str,
        branch: Optional[str],
        ssh_user: str,
        server_host: str,
        ssh_key_path: str,
        app_port,
        workspace_dir: Optional[str] = None,
    ) -> "DeploymentContext":
        if not is_valid_url(repo_url):
            raise DeployerError(f"Invalid repository URL: {repo_url}")
        if not access_token:
            raise DeployerError("Access token cannot be empty.")
        if not ssh_user:
            raise DeployerError("SSH username cannot be empty.")
        if not is_valid_ipv4(server_host):
            raise DeployerError(f"Invalid IP address: {server_host}")
        key_path = expand_key_path(ssh_key_path)
        if not is_valid_ssh_key(key_path):
            raise DeployerError(f"SSH key not found or not readable: {key_path}")
        if not is_valid_port(app_port):
            raise DeployerError(f"Invalid port number (must be 1-65535): {app_port}")

        repo_name = derive_repo_name(repo_url)
        if not repo_name:
            raise DeployerError(f"Could not derive a repository name from {repo_url}")

        return cls(
            repo_url=repo_url,
            access_token=access_token,
            branch=(branch or "").strip() or DEFAULT_BRANCH,
            ssh_user=ssh_user,
            server_host=server_host,
            ssh_key_path=key_path,
            app_port=int(app_port),
            workspace_dir=os.path.abspath(workspace_dir or os.getcwd()),
            repo_name=repo_name,
        )

    def with_docker_config(self, kind: DockerConfigKind) -> "DeploymentContext":
        if self.docker_config_kind is not None and self.docker_config_kind is not kind:
            raise DeployerError(
                f"Docker configuration already resolved to {self.docker_config_kind.value}."
            )
        self.docker_config_kind = kind
        return self

    @property
    def local_repo_dir(self) -> str:
        return os.path.join(self.workspace_dir, self.repo_name)

    @property
    def remote_home(self) -> str:
        return "/root" if self.ssh_user == "root" else f"/home/{self.ssh_user}"

    @property
    def remote_app_dir(self) -> str:
        return f"{self.remote_home}/{self.repo_name}"

    @property
    def container_name(self) -> str:
        return f"{self.repo_name}_app"

    @property
    def image_repository(self) -> str:
        # Docker repository names must be lowercase.
        return self.repo_name.lower()

    @property
    def image_tag(self) -> str:
        return f"{self.image_repository}:latest"

    @property
    def site_available_path(self) -> str:
        return f"{NGINX_SITES_AVAILABLE}/{self.repo_name}"

    @property
    def site_enabled_path(self) -> str:
        return f"{NGINX_SITES_ENABLED}/{self.repo_name}"

    @property
    def remote(self) -> RemoteTarget:
        return RemoteTarget(user=self.ssh_user, host=self.server_host, key_path=self.ssh_key_path)
