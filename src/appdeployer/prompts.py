"""Interactive collection of deployment inputs."""

from typing import Any, Callable, Dict, Optional

import click

from appdeployer.constants import DEFAULT_BRANCH, SUCCESS
from appdeployer.services.validation import (
    expand_key_path,
    is_valid_ipv4,
    is_valid_port,
    is_valid_ssh_key,
    is_valid_url,
)


class InputCollector:
    """Prompts for each value until it passes its validator.

    Values from the configuration file become prompt defaults. The access
    token never has a default and is read with echo disabled.
    """

    def __init__(self, logger, defaults: Optional[Dict[str, Any]] = None, prompt: Callable = click.prompt):
        self.logger = logger
        self.defaults = defaults or {}
        self.prompt = prompt

    def _ask(self, label: str, key: Optional[str], validator: Callable[[str], bool], error: str, **kwargs) -> str:
        default = self.defaults.get(key) if key else None
        while True:
            if default is not None:
                kwargs["default"] = str(default)
            value = str(self.prompt(label, **kwargs)).strip()
            if validator(value):
                return value
            self.logger.error(error.format(value=value))

    def collect(self) -> Dict[str, Any]:
        self.logger.info("Starting user input collection...")

        repo_url = self._ask(
            "Enter Git Repository URL",
            "repo_url",
            is_valid_url,
            "Invalid URL format. Please enter a valid HTTP/HTTPS URL.",
        )
        access_token = self._ask(
            "Enter Personal Access Token (PAT)",
            None,
            bool,
            "PAT cannot be empty.",
            hide_input=True,
        )
        branch = self._ask(
            "Enter branch name",
            None,
            lambda value: True,
            "",
            default=str(self.defaults.get("branch") or DEFAULT_BRANCH),
        ) or DEFAULT_BRANCH
        ssh_user = self._ask("Enter SSH username", "ssh_user", bool, "SSH username cannot be empty.")
        server_host = self._ask(
            "Enter server IP address",
            "server_host",
            is_valid_ipv4,
            "Invalid IP address format: {value}",
        )
        ssh_key_path = expand_key_path(
            self._ask(
                "Enter SSH key path (e.g., ~/.ssh/id_rsa)",
                "ssh_key_path",
                lambda value: is_valid_ssh_key(expand_key_path(value)),
                "SSH key not found or not readable: {value}",
            )
        )
        app_port = int(
            self._ask(
                "Enter application internal port",
                "app_port",
                is_valid_port,
                "Invalid port number (must be 1-65535).",
            )
        )

        self.logger.log(SUCCESS, "User input collected successfully")
        self.logger.info("Repository: %s", repo_url)
        self.logger.info("Branch: %s", branch)
        self.logger.info("Server: %s@%s", ssh_user, server_host)
        self.logger.info("Application Port: %s", app_port)

        return {
            "repo_url": repo_url,
            "access_token": access_token,
            "branch": branch,
            "ssh_user": ssh_user,
            "server_host": server_host,
            "ssh_key_path": ssh_key_path,
            "app_port": app_port,
        }
