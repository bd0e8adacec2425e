import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE, SETTLE_DELAY_SECONDS, ExitCode
from .core import AppDeployer, DeployerError
from .prompts import InputCollector
from .redact import SecretRedactingFilter
from .services.config_loader import ConfigLoader
from .services.filesystem import log_file_path


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


console_handler = RichHandler(rich_tracebacks=True, show_path=False)
logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[console_handler],
)


def _configure_logger(log_file: str, verbose: bool) -> logging.Logger:
    logger = logging.getLogger("appdeployer")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(f, SecretRedactingFilter) for f in logger.filters):
        logger.addFilter(SecretRedactingFilter())

    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(file_handler)
    return logger


class DeployCommand(click.Command):
    """Reports usage errors with the generic exit status."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = int(ExitCode.GENERIC)
            raise


@click.command(cls=DeployCommand)
@click.option("--cleanup", is_flag=True, default=False, help="Remove all deployed resources from the remote server.")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML file with prompt defaults. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--log-dir",
    required=False,
    type=click.Path(file_okay=False),
    help="Directory for the per-run log file (default: current directory).",
)
@click.option("--verbose", is_flag=True, default=None, help="Show executed commands on the console.")
def main(cleanup, config, log_dir, verbose):
    """Deploy a Dockerized application from a git repository to a remote Linux server.

    Clones or updates the repository, installs Docker, Docker Compose and Nginx
    on the server, transfers the files, builds and starts the containers and
    configures Nginx as a reverse proxy. Every run writes a timestamped log file.
    """
    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_dir = _resolve_option(log_dir, config_values, "log_dir")
    settle_delay_seconds = float(
        _resolve_option(None, config_values, "settle_delay_seconds", default=SETTLE_DELAY_SECONDS)
    )
    mirror_deletions = bool(_resolve_option(None, config_values, "mirror_deletions", default=True))
    workspace_dir = _resolve_option(None, config_values, "workspace_dir")

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    log_file = log_file_path(log_dir)
    logger = _configure_logger(log_file, verbose)

    deployer = AppDeployer(
        workspace_dir=workspace_dir,
        log_file=log_file,
        settle_delay_seconds=settle_delay_seconds,
        mirror_deletions=mirror_deletions,
    )
    collector = InputCollector(logger=logger, defaults=config_values)

    def confirm(text):
        return click.prompt(text, default="no", show_default=False)

    raise SystemExit(deployer.run(collector.collect, cleanup=cleanup, confirm=confirm))


if __name__ == "__main__":
    main()
