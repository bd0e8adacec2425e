"""Post-deploy health checks for AppDeployer."""

import time
from dataclasses import dataclass
from typing import Optional

from appdeployer.constants import APP_PROBE_DELAY_SECONDS, SUCCESS
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext


@dataclass
class HealthReport:
    container_running: bool = False
    app_responding: Optional[bool] = None
    proxy_local: Optional[bool] = None
    proxy_external: Optional[bool] = None


class HealthCheckService:
    """Probes the deployed container and the proxy path.

    Only a stopped container is fatal. Unanswered HTTP probes are warnings:
    the application may still be starting, and port 80 may be firewalled.
    """

    def __init__(
        self,
        logger,
        console,
        command_runner,
        docker_runtime_service,
        validation_service,
        probe_delay: float = APP_PROBE_DELAY_SECONDS,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.docker_runtime_service = docker_runtime_service
        self.validation_service = validation_service
        self.probe_delay = probe_delay

    def _remote_http_ok(self, ctx: DeploymentContext, url: str) -> bool:
        script = (
            f"curl -f -s {url} >/dev/null 2>&1 || "
            f"wget -q -O /dev/null {url} >/dev/null 2>&1"
        )
        return self.command_runner.run_remote(script, ctx.remote).returncode == 0

    def validate(self, ctx: DeploymentContext, report: Optional[HealthReport] = None) -> HealthReport:
        report = report or HealthReport()
        self.console.print("[blue]Validating deployment...[/blue]")

        if not self.docker_runtime_service.is_container_running(ctx):
            self.logger.error("Container is not running")
            self.docker_runtime_service.collect_diagnostics(ctx)
            raise catalog_error("container_not_running", container=ctx.container_name)

        report.container_running = True
        self.logger.log(SUCCESS, "Container is running")

        self.logger.info("Testing application endpoint...")
        time.sleep(self.probe_delay)
        report.app_responding = self._remote_http_ok(ctx, f"http://localhost:{ctx.app_port}")
        if report.app_responding:
            self.logger.log(SUCCESS, "Application is responding on port %s", ctx.app_port)
        else:
            self.logger.warning("Application not responding yet (this may be normal during startup)")
        return report

    def validate_proxy(self, ctx: DeploymentContext, report: Optional[HealthReport] = None) -> HealthReport:
        report = report or HealthReport()
        self.console.print("[blue]Validating Nginx proxy...[/blue]")

        report.proxy_local = self._remote_http_ok(ctx, "http://localhost")
        if report.proxy_local:
            self.logger.log(SUCCESS, "Nginx is proxying correctly (tested from server)")
        else:
            self.logger.warning("Nginx proxy test from server failed")

        self.logger.info("Testing external access...")
        report.proxy_external = self.validation_service.probe_http(f"http://{ctx.server_host}", self.logger)
        if report.proxy_external:
            self.logger.log(SUCCESS, "Application is accessible from external network")
        else:
            self.logger.warning("External access test failed (firewall may be blocking port 80)")
        return report
