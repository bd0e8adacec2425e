"""Configuration loader for AppDeployer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from appdeployer.errors import DeployerError
from appdeployer.services.validation import is_valid_ipv4, is_valid_port, is_valid_url


class ConfigLoader:
    """Loads YAML configuration files for CLI and prompt defaults."""

    SUPPORTED_KEYS = {
        "repo_url",
        "branch",
        "ssh_user",
        "server_host",
        "ssh_key_path",
        "app_port",
        "log_dir",
        "workspace_dir",
        "settle_delay_seconds",
        "mirror_deletions",
        "verbose",
    }
    SECRET_KEYS = {"access_token", "token", "pat"}
    BOOLEAN_KEYS = {"mirror_deletions", "verbose"}
    STRING_KEYS = {"branch", "ssh_user", "ssh_key_path", "log_dir", "workspace_dir"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise DeployerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DeployerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise DeployerError("Config file must contain a YAML mapping at the root.")

        secrets = sorted(set(parsed.keys()) & self.SECRET_KEYS)
        if secrets:
            raise DeployerError(
                f"Config file must not contain credentials ({', '.join(secrets)}). "
                "The access token is only read from the interactive prompt."
            )

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise DeployerError(f"Unknown configuration keys: {unknown_list}")

        self._check_values(parsed)
        return parsed

    def _check_values(self, values: Dict[str, Any]):
        """Applies the prompt validators to configured defaults."""
        invalid = []
        for key in sorted(values.keys() & self.BOOLEAN_KEYS):
            if not isinstance(values[key], bool):
                invalid.append(f"{key} must be true or false")
        for key in sorted(values.keys() & self.STRING_KEYS):
            if not isinstance(values[key], str) or not values[key].strip():
                invalid.append(f"{key} must be a non-empty string")

        if "repo_url" in values and not is_valid_url(str(values["repo_url"])):
            invalid.append("repo_url must start with http:// or https://")
        if "server_host" in values and not is_valid_ipv4(str(values["server_host"])):
            invalid.append("server_host must be an IPv4 address")
        if "app_port" in values and not is_valid_port(values["app_port"]):
            invalid.append("app_port must be an integer between 1 and 65535")
        if "settle_delay_seconds" in values:
            delay = values["settle_delay_seconds"]
            if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
                invalid.append("settle_delay_seconds must be a non-negative number")

        if invalid:
            details = "; ".join(invalid)
            raise DeployerError(f"Invalid configuration values: {details}")
