"""File transfer service for AppDeployer."""

import shlex

from appdeployer.constants import RSYNC_EXCLUDES, SUCCESS
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext


class TransferService:
    """Mirrors the local working copy into the remote application directory."""

    def __init__(self, logger, console, command_runner, mirror_deletions: bool = True):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.mirror_deletions = mirror_deletions

    def sync_files(self, ctx: DeploymentContext):
        self.console.print("[blue]Transferring application files to remote server...[/blue]")
        destination = f"{ctx.remote.address}:{ctx.remote_app_dir}"

        result = self.command_runner.run_remote(f"mkdir -p {shlex.quote(ctx.remote_app_dir)}", ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("transfer_failed", destination=destination)

        result = self.command_runner.sync(
            ctx.local_repo_dir,
            ctx.remote,
            ctx.remote_app_dir,
            excludes=RSYNC_EXCLUDES,
            delete=self.mirror_deletions,
        )
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("transfer_failed", destination=destination)

        self.logger.log(SUCCESS, "Files transferred successfully")
