"""Subprocess execution service for AppDeployer."""

import os
import shlex
import stat
import subprocess
import sys
from typing import Dict, Iterable, List, Optional, Sequence

from appdeployer.constants import KEY_FILE_MODE
from appdeployer.models import RemoteTarget
from appdeployer.redact import redact_secrets

MISSING_COMMAND_RETURNCODE = 127
TIMEOUT_RETURNCODE = 124


def ssh_base_args(remote: RemoteTarget, connect_timeout: Optional[int] = None) -> List[str]:
    args = [
        "ssh",
        "-i",
        remote.key_path,
        "-o",
        "StrictHostKeyChecking=no",
        "-o",
        "BatchMode=yes",
    ]
    if connect_timeout:
        args += ["-o", f"ConnectTimeout={int(connect_timeout)}"]
    args.append(remote.address)
    return args


class CommandRunner:
    """Runs local and remote commands and reports their status without raising."""

    def __init__(self, logger, default_timeout: Optional[float] = None, subprocess_module=subprocess):
        self.logger = logger
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    def ensure_key_permissions(self, key_path: str):
        if sys.platform == "win32":
            return

        try:
            current = stat.S_IMODE(os.stat(key_path).st_mode)
        except OSError as exc:
            self.logger.warning("Could not inspect permissions of %s: %s", key_path, exc)
            return

        if current == KEY_FILE_MODE:
            return

        try:
            os.chmod(key_path, KEY_FILE_MODE)
            self.logger.debug("Tightened permissions of %s from %o to %o", key_path, current, KEY_FILE_MODE)
        except OSError as exc:
            self.logger.warning(
                "SSH key %s has mode %o and could not be restricted to owner-only: %s",
                key_path,
                current,
                exc,
            )

    def run(
        self,
        cmd: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        remote: Optional[RemoteTarget] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[int] = None,
        secrets: Iterable[str] = (),
    ) -> subprocess.CompletedProcess:
        """Run ``cmd`` locally, or on ``remote`` over SSH, and capture its output.

        A non-zero exit status is returned to the caller, never raised. A missing
        executable is reported with status 127 and a timeout with status 124.
        """
        secrets = tuple(secrets)
        if remote is not None:
            self.ensure_key_permissions(remote.key_path)
            argv = ssh_base_args(remote, connect_timeout) + [shlex.join(list(cmd))]
        else:
            argv = list(cmd)

        return self._execute(argv, env=env, timeout=timeout, secrets=secrets)

    def run_remote(
        self,
        script: str,
        remote: RemoteTarget,
        timeout: Optional[float] = None,
        connect_timeout: Optional[int] = None,
        secrets: Iterable[str] = (),
    ) -> subprocess.CompletedProcess:
        """Run a shell snippet on ``remote``; the remote login shell interprets it."""
        self.ensure_key_permissions(remote.key_path)
        argv = ssh_base_args(remote, connect_timeout) + [script]
        return self._execute(argv, env=None, timeout=timeout, secrets=tuple(secrets))

    def sync(
        self,
        source_dir: str,
        remote: RemoteTarget,
        remote_dir: str,
        excludes: Iterable[str] = (),
        delete: bool = False,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        self.ensure_key_permissions(remote.key_path)
        transport = shlex.join(["ssh", "-i", remote.key_path, "-o", "StrictHostKeyChecking=no"])
        argv = ["rsync", "-az", "-e", transport]
        if delete:
            argv.append("--delete")
        for pattern in excludes:
            argv += ["--exclude", pattern]
        argv += [
            source_dir.rstrip("/") + "/",
            f"{remote.address}:{remote_dir.rstrip('/')}/",
        ]
        return self._execute(argv, env=None, timeout=timeout, secrets=())

    def _execute(
        self,
        argv: List[str],
        env: Optional[Dict[str, str]],
        timeout: Optional[float],
        secrets: Sequence[str],
    ) -> subprocess.CompletedProcess:
        cmd_str = redact_secrets(" ".join(argv), secrets)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        try:
            result = self.subprocess.run(
                argv,
                text=True,
                capture_output=True,
                env=run_env,
                timeout=effective_timeout,
            )
        except FileNotFoundError:
            self.logger.debug("Exit status %s (command not found): %s", MISSING_COMMAND_RETURNCODE, cmd_str)
            return subprocess.CompletedProcess(
                argv,
                MISSING_COMMAND_RETURNCODE,
                stdout="",
                stderr=f"Required command not found: {argv[0]}",
            )
        except subprocess.TimeoutExpired:
            self.logger.debug("Exit status %s (timed out after %ss): %s", TIMEOUT_RETURNCODE, effective_timeout, cmd_str)
            return subprocess.CompletedProcess(
                argv,
                TIMEOUT_RETURNCODE,
                stdout="",
                stderr=f"Command timed out after {effective_timeout}s",
            )

        stdout = redact_secrets(result.stdout or "", secrets)
        stderr = redact_secrets(result.stderr or "", secrets)
        if stdout.strip():
            self.logger.debug("Command output: %s", stdout.strip())
        if stderr.strip():
            self.logger.debug("Command stderr: %s", stderr.strip())
        self.logger.debug("Exit status %s: %s", result.returncode, cmd_str)

        return subprocess.CompletedProcess(argv, result.returncode, stdout=stdout, stderr=stderr)
