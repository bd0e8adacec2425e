"""Repository clone/update service for AppDeployer."""

import os
from urllib.parse import quote, urlparse, urlunparse

from appdeployer.constants import COMPOSE_FILE_NAMES, DOCKERFILE_NAME, SUCCESS
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext, DockerConfigKind

GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class RepositoryService:
    """Keeps the local working copy in sync with the requested branch."""

    # Hosts whose credential slot differs from plain token-as-username.
    TOKEN_USERNAME_BY_HOST = {
        "github.com": None,
        "gitlab.com": "oauth2",
        "bitbucket.org": "x-token-auth",
    }

    def __init__(self, logger, console, command_runner):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner

    def build_authenticated_url(self, repo_url: str, token: str) -> str:
        parsed = urlparse(repo_url)
        host = (parsed.hostname or "").lower()
        netloc = parsed.netloc.rsplit("@", 1)[-1]

        if host in self.TOKEN_USERNAME_BY_HOST:
            username = self.TOKEN_USERNAME_BY_HOST[host]
        else:
            self.logger.info(
                "Host %s is not a known git provider; embedding the token as the URL username.",
                host or "<unknown>",
            )
            username = None

        secret = quote(token, safe="")
        credentials = f"{username}:{secret}" if username else secret
        return urlunparse(parsed._replace(netloc=f"{credentials}@{netloc}"))

    def sync_repository(self, ctx: DeploymentContext):
        auth_url = self.build_authenticated_url(ctx.repo_url, ctx.access_token)
        secrets = (ctx.access_token, quote(ctx.access_token, safe=""), auth_url)
        repo_dir = ctx.local_repo_dir

        if os.path.exists(repo_dir):
            if not os.path.isdir(repo_dir):
                raise catalog_error("repo_dir_unusable", path=repo_dir)
            # git -C on a plain directory would operate on an enclosing repository.
            if not os.path.exists(os.path.join(repo_dir, ".git")):
                self.logger.error("%s exists but is not a git working copy", repo_dir)
                raise catalog_error("repo_dir_unusable", path=repo_dir)
            self._update(ctx, repo_dir, auth_url, secrets)
        else:
            self._clone(ctx, repo_dir, auth_url, secrets)

    def _git(self, repo_dir, *args, secrets=()):
        return self.command_runner.run(["git", "-C", repo_dir, *args], env=GIT_ENV, secrets=secrets)

    def _update(self, ctx: DeploymentContext, repo_dir: str, auth_url: str, secrets):
        self.console.print("[blue]Repository directory exists. Pulling latest changes...[/blue]")
        self.logger.info("Updating existing working copy at %s", repo_dir)

        if not os.access(repo_dir, os.R_OK | os.X_OK):
            raise catalog_error("repo_dir_unusable", path=repo_dir)

        result = self._git(
            repo_dir,
            "fetch",
            auth_url,
            "+refs/heads/*:refs/remotes/origin/*",
            secrets=secrets,
        )
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("fetch_failed")

        self._checkout(repo_dir, ctx.branch)

        result = self._git(repo_dir, "pull", "--ff-only", auth_url, ctx.branch, secrets=secrets)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("pull_failed", branch=ctx.branch)

        self.logger.log(SUCCESS, "Repository updated successfully")

    def _clone(self, ctx: DeploymentContext, repo_dir: str, auth_url: str, secrets):
        self.console.print("[blue]Cloning repository...[/blue]")
        self.logger.info("Cloning %s into %s", ctx.repo_url, repo_dir)

        result = self.command_runner.run(["git", "clone", auth_url, repo_dir], env=GIT_ENV, secrets=secrets)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("clone_failed")

        # The clone records the authenticated URL as origin; keep the token off disk.
        result = self._git(repo_dir, "remote", "set-url", "origin", ctx.repo_url)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("clone_failed")

        if not os.path.isdir(repo_dir):
            raise catalog_error("repo_dir_unusable", path=repo_dir)

        self._checkout(repo_dir, ctx.branch)
        self.logger.log(SUCCESS, "Repository cloned successfully")

    def _checkout(self, repo_dir: str, branch: str):
        result = self._git(repo_dir, "checkout", branch)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("checkout_failed", branch=branch)

    def detect_docker_config(self, ctx: DeploymentContext) -> DockerConfigKind:
        """Compose files win over a Dockerfile; neither is fatal."""
        self.logger.info("Verifying Docker configuration files...")
        root = ctx.local_repo_dir

        for name in COMPOSE_FILE_NAMES:
            if os.path.isfile(os.path.join(root, name)):
                self.logger.log(SUCCESS, "%s found", name)
                ctx.with_docker_config(DockerConfigKind.COMPOSE)
                return DockerConfigKind.COMPOSE

        if os.path.isfile(os.path.join(root, DOCKERFILE_NAME)):
            self.logger.log(SUCCESS, "%s found", DOCKERFILE_NAME)
            ctx.with_docker_config(DockerConfigKind.DOCKERFILE)
            return DockerConfigKind.DOCKERFILE

        raise catalog_error("missing_build_recipe")
