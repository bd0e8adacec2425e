"""Remote host provisioning service for AppDeployer."""

from dataclasses import dataclass
from typing import List

from appdeployer.constants import SSH_CONNECT_TIMEOUT_SECONDS, SUCCESS
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext


@dataclass(frozen=True)
class RemoteDependency:
    """A remote tool installed once and skipped on later runs."""

    name: str
    presence_check: str
    install_script: str
    error_key: str


DOCKER_INSTALL = """set -e
curl -fsSL https://get.docker.com -o /tmp/get-docker.sh
sudo sh /tmp/get-docker.sh
rm -f /tmp/get-docker.sh
sudo usermod -aG docker {user}"""

COMPOSE_INSTALL = """set -e
sudo curl -fsSL "https://github.com/docker/compose/releases/latest/download/docker-compose-$(uname -s)-$(uname -m)" -o /usr/local/bin/docker-compose
sudo chmod +x /usr/local/bin/docker-compose"""

NGINX_INSTALL = "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y nginx"

START_SERVICES = """set -e
sudo systemctl enable docker
sudo systemctl start docker
sudo systemctl enable nginx
sudo systemctl start nginx"""

VERSION_REPORT = "docker --version; (docker compose version || docker-compose --version); nginx -v 2>&1"


class EnvironmentService:
    """Installs the container engine, compose tool and reverse proxy when missing."""

    def __init__(self, logger, console, command_runner):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner

    def check_connectivity(self, ctx: DeploymentContext):
        self.logger.info("Testing SSH connection to %s...", ctx.remote.address)
        result = self.command_runner.run_remote(
            "echo 'SSH connection successful'",
            ctx.remote,
            connect_timeout=SSH_CONNECT_TIMEOUT_SECONDS,
        )
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("ssh_unreachable", address=ctx.remote.address)
        self.logger.log(SUCCESS, "SSH connection established")

    def dependencies(self, ctx: DeploymentContext) -> List[RemoteDependency]:
        return [
            RemoteDependency(
                name="Docker",
                presence_check="command -v docker >/dev/null 2>&1",
                install_script=DOCKER_INSTALL.format(user=ctx.ssh_user),
                error_key="engine_install_failed",
            ),
            RemoteDependency(
                name="Docker Compose",
                presence_check=(
                    "docker compose version >/dev/null 2>&1 || command -v docker-compose >/dev/null 2>&1"
                ),
                install_script=COMPOSE_INSTALL,
                error_key="compose_install_failed",
            ),
            RemoteDependency(
                name="Nginx",
                presence_check="command -v nginx >/dev/null 2>&1",
                install_script=NGINX_INSTALL,
                error_key="proxy_install_failed",
            ),
        ]

    def ensure_installed(self, ctx: DeploymentContext, dependency: RemoteDependency) -> bool:
        """Install ``dependency`` unless its presence check passes; True when installed now."""
        probe = self.command_runner.run_remote(dependency.presence_check, ctx.remote)
        if probe.returncode == 0:
            self.logger.info("%s already installed", dependency.name)
            return False

        self.console.print(f"[blue]Installing {dependency.name}...[/blue]")
        self.logger.info("Installing %s...", dependency.name)
        result = self.command_runner.run_remote(dependency.install_script, ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error(dependency.error_key)

        self.logger.log(SUCCESS, "%s installed successfully", dependency.name)
        return True

    def prepare_remote(self, ctx: DeploymentContext):
        self.console.print("[blue]Preparing remote environment...[/blue]")

        result = self.command_runner.run_remote("sudo apt-get update -y", ctx.remote)
        if result.returncode != 0:
            self.logger.warning("apt-get update failed: %s", result.stderr.strip())

        installed = [dep.name for dep in self.dependencies(ctx) if self.ensure_installed(ctx, dep)]

        self.logger.info("Starting services...")
        result = self.command_runner.run_remote(START_SERVICES, ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("service_start_failed")

        versions = self.command_runner.run_remote(VERSION_REPORT, ctx.remote)
        if versions.returncode == 0 and versions.stdout.strip():
            for line in versions.stdout.strip().splitlines():
                self.logger.info("  %s", line.strip())

        if installed:
            self.logger.info("Installed on this run: %s", ", ".join(installed))
        self.logger.log(SUCCESS, "Remote environment prepared successfully")
