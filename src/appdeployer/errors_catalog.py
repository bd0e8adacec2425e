"""Actionable error catalog for AppDeployer."""

from typing import Dict

from appdeployer.constants import ExitCode
from appdeployer.errors import DeployerError

_ERROR_MESSAGES: Dict[str, Dict[str, object]] = {
    "missing_local_tool": {
        "what": "Required command not found: {tool}.",
        "next": "Install `{tool}` on this machine and make sure it is on PATH.",
        "code": ExitCode.MISSING_LOCAL_TOOL,
    },
    "repo_dir_unusable": {
        "what": "Failed to enter repository directory {path}.",
        "next": "Remove or rename the path so a fresh clone can be created.",
        "code": ExitCode.DIRECTORY_CHANGE,
    },
    "fetch_failed": {
        "what": "Failed to fetch from origin.",
        "next": "Check network access and that the access token can read the repository.",
        "code": ExitCode.FETCH,
    },
    "checkout_failed": {
        "what": "Failed to checkout branch {branch}.",
        "next": "Verify that the branch exists on the remote repository.",
        "code": ExitCode.CHECKOUT,
    },
    "pull_failed": {
        "what": "Failed to pull latest changes for branch {branch}.",
        "next": "Resolve local modifications in the working copy or delete it and retry.",
        "code": ExitCode.PULL,
    },
    "clone_failed": {
        "what": "Failed to clone repository.",
        "next": "Check the repository URL and that the access token has read access.",
        "code": ExitCode.CLONE,
    },
    "missing_build_recipe": {
        "what": "Neither Dockerfile nor docker-compose.yml found in repository.",
        "next": "Add a Dockerfile or a compose file at the repository root.",
        "code": ExitCode.MISSING_BUILD_RECIPE,
    },
    "ssh_unreachable": {
        "what": "Failed to establish SSH connection to {address}.",
        "next": "Check the host address, the SSH user and that the key is authorized on the server.",
        "code": ExitCode.SSH_CONNECTIVITY,
    },
    "engine_install_failed": {
        "what": "Failed to install Docker.",
        "next": "Inspect the log file and install Docker on the server manually.",
        "code": ExitCode.ENGINE_INSTALL,
    },
    "compose_install_failed": {
        "what": "Failed to install Docker Compose.",
        "next": "Install the Docker Compose plugin or binary on the server manually.",
        "code": ExitCode.COMPOSE_INSTALL,
    },
    "proxy_install_failed": {
        "what": "Failed to install Nginx.",
        "next": "Check the package manager on the server and install nginx manually.",
        "code": ExitCode.PROXY_INSTALL,
    },
    "service_start_failed": {
        "what": "Failed to start services.",
        "next": "Run `systemctl status docker nginx` on the server to see why.",
        "code": ExitCode.SERVICE_START,
    },
    "transfer_failed": {
        "what": "Failed to transfer files to {destination}.",
        "next": "Check disk space and permissions of the remote directory.",
        "code": ExitCode.FILE_TRANSFER,
    },
    "compose_deploy_failed": {
        "what": "Failed to deploy with docker compose.",
        "next": "Run `docker compose build` in {path} on the server to inspect the failure.",
        "code": ExitCode.COMPOSE_DEPLOY,
    },
    "build_run_failed": {
        "what": "Failed to deploy with Docker.",
        "next": "Inspect the image build output in the log file and fix the Dockerfile.",
        "code": ExitCode.BUILD_RUN,
    },
    "container_not_running": {
        "what": "Container {container} failed to start.",
        "next": "Review the container logs captured above and fix the application start-up.",
        "code": ExitCode.CONTAINER_NOT_RUNNING,
    },
    "proxy_write_failed": {
        "what": "Failed to create Nginx configuration at {path}.",
        "next": "Check that the SSH user can run `sudo` without a password.",
        "code": ExitCode.PROXY_CONFIG_WRITE,
    },
    "proxy_syntax_failed": {
        "what": "Nginx configuration test failed.",
        "next": "Run `sudo nginx -t` on the server and fix the reported site definition.",
        "code": ExitCode.PROXY_SYNTAX_CHECK,
    },
    "proxy_reload_failed": {
        "what": "Failed to reload Nginx.",
        "next": "Run `sudo systemctl status nginx` on the server to see why.",
        "code": ExitCode.PROXY_RELOAD,
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = str(template["what"]).format(**kwargs)
    next_step = str(template["next"]).format(**kwargs)
    return f"{what} Suggested action: {next_step}"


def catalog_exit_code(code: str) -> ExitCode:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")
    return ExitCode(_ERROR_MESSAGES[code]["code"])


def catalog_error(code: str, **kwargs: str) -> DeployerError:
    """Build a DeployerError carrying the catalog message and its exit code."""
    return DeployerError(actionable_error(code, **kwargs), exit_code=catalog_exit_code(code))
