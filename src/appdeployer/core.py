import logging
import signal
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests
from rich.console import Console

from .constants import REQUIRED_LOCAL_TOOLS, SETTLE_DELAY_SECONDS, SUCCESS, ExitCode
from .errors import DeployerError
from .errors_catalog import catalog_error
from .models import DeploymentContext
from .redact import register_secret
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.health import HealthCheckService, HealthReport
from .services.proxy import ProxyService
from .services.remote_environment import EnvironmentService
from .services.repository import RepositoryService
from .services.transfer import TransferService
from .services.validation import ValidationService

console = Console()
logger = logging.getLogger("appdeployer")


class AppDeployer:
    def __init__(
        self,
        workspace_dir: Optional[str] = None,
        log_file: Optional[str] = None,
        settle_delay_seconds: float = SETTLE_DELAY_SECONDS,
        mirror_deletions: bool = True,
        command_runner: Optional[CommandRunner] = None,
    ):
        self.workspace_dir = workspace_dir
        self.log_file = log_file
        self.current_step_name: Optional[str] = None

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.validation_service = ValidationService(requests_module=requests)
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.repository_service = RepositoryService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.environment_service = EnvironmentService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.transfer_service = TransferService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            mirror_deletions=mirror_deletions,
        )
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            settle_delay=settle_delay_seconds,
        )
        self.proxy_service = ProxyService(logger=logger, console=console, command_runner=self.command_runner)
        self.health_service = HealthCheckService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            docker_runtime_service=self.docker_runtime_service,
            validation_service=self.validation_service,
        )

    def check_required_tools(self):
        missing = self.filesystem_service.missing_tools(REQUIRED_LOCAL_TOOLS)
        if missing:
            raise catalog_error("missing_local_tool", tool=missing[0])

    def build_context(self, values: Dict[str, Any]) -> DeploymentContext:
        register_secret(values.get("access_token") or "")
        workspace = self.filesystem_service.ensure_dir(self.workspace_dir) if self.workspace_dir else None
        return DeploymentContext.build(
            repo_url=values["repo_url"],
            access_token=values["access_token"],
            branch=values.get("branch"),
            ssh_user=values["ssh_user"],
            server_host=values["server_host"],
            ssh_key_path=values["ssh_key_path"],
            app_port=values["app_port"],
            workspace_dir=workspace,
        )

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Step started: %s", name)
        started = time.monotonic()
        result = callback(*args, **kwargs)
        logger.debug("Step finished: %s (%.1fs)", name, time.monotonic() - started)
        self.current_step_name = None
        return result

    def deploy(self, ctx: DeploymentContext) -> HealthReport:
        """Run every stage in order; the first DeployerError aborts the pipeline."""
        report = HealthReport()

        self._run_step("check_connectivity", self.environment_service.check_connectivity, ctx)
        self._run_step("sync_repository", self.repository_service.sync_repository, ctx)
        self._run_step("detect_docker_config", self.repository_service.detect_docker_config, ctx)
        self._run_step("prepare_remote", self.environment_service.prepare_remote, ctx)
        self._run_step("sync_files", self.transfer_service.sync_files, ctx)
        self._run_step("deploy", self.docker_runtime_service.deploy, ctx)
        self._run_step("validate_deployment", self.health_service.validate, ctx, report)
        self._run_step("configure_proxy", self.proxy_service.configure_proxy, ctx)
        self._run_step("validate_proxy", self.health_service.validate_proxy, ctx, report)

        self._print_summary(ctx)
        return report

    def teardown(self, ctx: DeploymentContext):
        """Remove every deployed resource; each sub-step tolerates already-absent resources."""
        logger.info("Cleaning up deployment...")
        self._run_step("teardown_containers", self.docker_runtime_service.teardown_containers, ctx)
        self._run_step("remove_image", self.docker_runtime_service.remove_image, ctx)
        self._run_step("remove_proxy_site", self.proxy_service.remove_site, ctx)

        result = self.command_runner.run(["rm", "-rf", ctx.remote_app_dir], remote=ctx.remote)
        if result.returncode != 0:
            logger.warning("Could not remove %s (ignored)", ctx.remote_app_dir)

        logger.log(SUCCESS, "Deployment cleaned up successfully")

    def run_cleanup(self, ctx: DeploymentContext, confirm: Callable[[str], str]) -> int:
        logger.warning("Running in CLEANUP mode")
        answer = confirm("Are you sure you want to remove all deployed resources? (yes/no)")
        if (answer or "").strip() != "yes":
            logger.info("Cleanup cancelled")
            return ExitCode.SUCCESS

        self.teardown(ctx)
        logger.log(SUCCESS, "Cleanup completed successfully")
        return ExitCode.SUCCESS

    def _print_summary(self, ctx: DeploymentContext):
        console.print()
        console.rule("[bold green]DEPLOYMENT COMPLETED SUCCESSFULLY[/bold green]")
        logger.log(SUCCESS, "DEPLOYMENT COMPLETED SUCCESSFULLY")
        logger.info("Application URL: http://%s", ctx.server_host)
        logger.info("Direct port access: http://%s:%s", ctx.server_host, ctx.app_port)
        if self.log_file:
            logger.info("Log file: %s", self.log_file)
        console.rule()

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return {}

        def _abort(signum, _frame):
            raise KeyboardInterrupt(signal.Signals(signum).name)

        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _abort)
        return previous

    def _restore_signal_handlers(self, previous):
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def run(
        self,
        collect_inputs: Callable[[], Dict[str, Any]],
        cleanup: bool = False,
        confirm: Optional[Callable[[str], str]] = None,
    ) -> int:
        exit_code = ExitCode.GENERIC
        previous_handlers = self._install_signal_handlers()

        try:
            logger.info("Deployment started")
            if self.log_file:
                logger.info("Log file: %s", self.log_file)

            self.check_required_tools()
            ctx = self.build_context(collect_inputs())

            if cleanup:
                self._run_step("check_connectivity", self.environment_service.check_connectivity, ctx)
                exit_code = self.run_cleanup(ctx, confirm or input)
                return int(exit_code)

            self.deploy(ctx)
            exit_code = ExitCode.SUCCESS
            return int(exit_code)

        except KeyboardInterrupt:
            console.print("[bold red]Deployment interrupted. Remote changes already applied are kept.[/bold red]")
            logger.error(
                "Interrupted during step '%s'; no rollback is attempted.",
                self.current_step_name or "startup",
            )
            exit_code = ExitCode.GENERIC
            return int(exit_code)
        except DeployerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            exit_code = exc.exit_code
            return int(exit_code)
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            exit_code = ExitCode.GENERIC
            return int(exit_code)
        finally:
            self._restore_signal_handlers(previous_handlers)
            logger.debug("Exiting with status %s", int(exit_code))
