"""Docker runtime services for AppDeployer."""

import shlex
import time
from typing import List

from appdeployer.constants import (
    DIAGNOSTIC_LOG_LINES,
    IMAGE_RETENTION_COUNT,
    SETTLE_DELAY_SECONDS,
    SUCCESS,
)
from appdeployer.errors import DeployerError
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext, DockerConfigKind


class DockerRuntimeService:
    """Manages container and compose stack lifecycle on the remote host."""

    def __init__(self, logger, console, command_runner, settle_delay: float = SETTLE_DELAY_SECONDS):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.settle_delay = settle_delay

    def _in_app_dir(self, ctx: DeploymentContext, command: str) -> str:
        return f"cd {shlex.quote(ctx.remote_app_dir)} && {command}"

    def compose_command(self, ctx: DeploymentContext) -> str:
        result = self.command_runner.run_remote("docker compose version", ctx.remote)
        if result.returncode == 0:
            return "docker compose"
        return "docker-compose"

    def list_container_names(self, ctx: DeploymentContext, all_containers: bool = False) -> List[str]:
        flag = "-a " if all_containers else ""
        result = self.command_runner.run_remote(f"docker ps {flag}--format '{{{{.Names}}}}'", ctx.remote)
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def remove_existing_container(self, ctx: DeploymentContext):
        name = ctx.container_name
        if name not in self.list_container_names(ctx, all_containers=True):
            return

        self.logger.info("Stopping existing container %s...", name)
        for action in ("stop", "rm"):
            result = self.command_runner.run_remote(f"docker {action} {shlex.quote(name)}", ctx.remote)
            if result.returncode != 0:
                self.logger.warning("docker %s %s failed: %s", action, name, result.stderr.strip())

    def prune_old_images(self, ctx: DeploymentContext, retention: int = IMAGE_RETENTION_COUNT):
        """Remove images of this repository beyond the current one plus ``retention`` backups."""
        result = self.command_runner.run_remote(
            f"docker images {shlex.quote(ctx.image_repository)} --format '{{{{.ID}}}}'",
            ctx.remote,
        )
        if result.returncode != 0:
            self.logger.warning("Could not list images for %s", ctx.image_repository)
            return

        image_ids = []
        for line in result.stdout.splitlines():
            image_id = line.strip()
            if image_id and image_id not in image_ids:
                image_ids.append(image_id)

        for image_id in image_ids[retention + 1 :]:
            removed = self.command_runner.run_remote(f"docker rmi {shlex.quote(image_id)}", ctx.remote)
            if removed.returncode != 0:
                self.logger.warning("Could not remove old image %s: %s", image_id, removed.stderr.strip())
            else:
                self.logger.info("Removed old image %s", image_id)

    def deploy_compose(self, ctx: DeploymentContext):
        self.console.print("[blue]Deploying with docker compose...[/blue]")
        compose = self.compose_command(ctx)

        down = self.command_runner.run_remote(self._in_app_dir(ctx, f"{compose} down"), ctx.remote)
        if down.returncode != 0:
            self.logger.warning("%s down failed: %s", compose, down.stderr.strip())

        for step in ("build", "up -d"):
            result = self.command_runner.run_remote(self._in_app_dir(ctx, f"{compose} {step}"), ctx.remote)
            if result.returncode != 0:
                self.logger.error(result.stderr.strip())
                raise catalog_error("compose_deploy_failed", path=ctx.remote_app_dir)

    def deploy_dockerfile(self, ctx: DeploymentContext):
        self.console.print("[blue]Deploying with Dockerfile...[/blue]")
        port = f"{ctx.app_port}:{ctx.app_port}"

        commands = [
            f"docker build -t {shlex.quote(ctx.image_tag)} .",
            (
                f"docker run -d --name {shlex.quote(ctx.container_name)} -p {port} "
                f"--restart unless-stopped {shlex.quote(ctx.image_tag)}"
            ),
        ]
        for command in commands:
            result = self.command_runner.run_remote(self._in_app_dir(ctx, command), ctx.remote)
            if result.returncode != 0:
                self.logger.error(result.stderr.strip())
                raise catalog_error("build_run_failed")

    def deploy(self, ctx: DeploymentContext):
        if ctx.docker_config_kind is None:
            raise DeployerError("Docker configuration has not been detected for this deployment.")

        self.console.print("[blue]Deploying application...[/blue]")
        self.remove_existing_container(ctx)
        self.prune_old_images(ctx)

        if ctx.docker_config_kind is DockerConfigKind.COMPOSE:
            self.deploy_compose(ctx)
        else:
            self.deploy_dockerfile(ctx)

        self.logger.info("Waiting %.0fs for the application to start...", self.settle_delay)
        time.sleep(self.settle_delay)
        self.logger.log(SUCCESS, "Application deployed successfully")

    def is_container_running(self, ctx: DeploymentContext) -> bool:
        names = self.list_container_names(ctx)
        return ctx.container_name in names or any(ctx.repo_name in name for name in names)

    def collect_diagnostics(self, ctx: DeploymentContext):
        listing = self.command_runner.run_remote("docker ps -a", ctx.remote)
        if listing.stdout.strip():
            self.logger.error("Containers on host:\n%s", listing.stdout.rstrip())

        logs = self.command_runner.run_remote(
            f"docker logs --tail {DIAGNOSTIC_LOG_LINES} {shlex.quote(ctx.container_name)} 2>&1",
            ctx.remote,
        )
        if logs.stdout.strip():
            self.logger.error("Last %s log lines of %s:\n%s", DIAGNOSTIC_LOG_LINES, ctx.container_name, logs.stdout.rstrip())

    def teardown_containers(self, ctx: DeploymentContext):
        name = shlex.quote(ctx.container_name)
        compose = self.compose_command(ctx)
        commands = [
            f"docker stop {name}",
            f"docker rm {name}",
            self._in_app_dir(ctx, f"{compose} down"),
        ]
        for command in commands:
            result = self.command_runner.run_remote(command, ctx.remote)
            if result.returncode != 0:
                self.logger.warning("Cleanup step failed (ignored): %s", command)

    def remove_image(self, ctx: DeploymentContext):
        result = self.command_runner.run_remote(f"docker rmi {shlex.quote(ctx.image_tag)}", ctx.remote)
        if result.returncode != 0:
            self.logger.warning("Could not remove image %s (ignored)", ctx.image_tag)
