"""Nginx reverse proxy configuration service for AppDeployer."""

import shlex
from textwrap import dedent

from appdeployer.constants import NGINX_SITES_ENABLED, SUCCESS
from appdeployer.errors_catalog import catalog_error
from appdeployer.models import DeploymentContext

SITE_TEMPLATE = dedent(
    """
    server {{
        listen 80;
        server_name {server_name};

        location / {{
            proxy_pass http://localhost:{port};
            proxy_http_version 1.1;
            proxy_set_header Upgrade $http_upgrade;
            proxy_set_header Connection 'upgrade';
            proxy_set_header Host $host;
            proxy_cache_bypass $http_upgrade;
            proxy_set_header X-Real-IP $remote_addr;
            proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
            proxy_set_header X-Forwarded-Proto $scheme;
        }}
    }}
    """
).strip()


class ProxyService:
    """Writes, enables, verifies and reloads the site definition for the app."""

    def __init__(self, logger, console, command_runner):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner

    def render_site_config(self, ctx: DeploymentContext) -> str:
        return SITE_TEMPLATE.format(server_name=ctx.server_host, port=ctx.app_port) + "\n"

    def write_site_config(self, ctx: DeploymentContext):
        path = ctx.site_available_path
        script = (
            f"sudo tee {shlex.quote(path)} > /dev/null <<'APPDEPLOYER_EOF'\n"
            f"{self.render_site_config(ctx)}"
            "APPDEPLOYER_EOF"
        )
        result = self.command_runner.run_remote(script, ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            raise catalog_error("proxy_write_failed", path=path)

    def enable_site(self, ctx: DeploymentContext):
        commands = [
            f"sudo ln -sf {shlex.quote(ctx.site_available_path)} {shlex.quote(ctx.site_enabled_path)}",
            f"sudo rm -f {NGINX_SITES_ENABLED}/default",
        ]
        for command in commands:
            result = self.command_runner.run_remote(command, ctx.remote)
            if result.returncode != 0:
                self.logger.warning("Could not update enabled sites: %s", result.stderr.strip())

    def check_config(self, ctx: DeploymentContext) -> bool:
        result = self.command_runner.run_remote("sudo nginx -t", ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            return False
        return True

    def reload(self, ctx: DeploymentContext) -> bool:
        result = self.command_runner.run_remote("sudo systemctl reload nginx", ctx.remote)
        if result.returncode != 0:
            self.logger.error(result.stderr.strip())
            return False
        return True

    def configure_proxy(self, ctx: DeploymentContext):
        self.console.print("[blue]Configuring Nginx reverse proxy...[/blue]")
        self.write_site_config(ctx)
        self.enable_site(ctx)

        self.logger.info("Testing Nginx configuration...")
        if not self.check_config(ctx):
            raise catalog_error("proxy_syntax_failed")

        if not self.reload(ctx):
            raise catalog_error("proxy_reload_failed")

        self.logger.log(SUCCESS, "Nginx configured successfully")

    def remove_site(self, ctx: DeploymentContext):
        for path in (ctx.site_enabled_path, ctx.site_available_path):
            result = self.command_runner.run_remote(f"sudo rm -f {shlex.quote(path)}", ctx.remote)
            if result.returncode != 0:
                self.logger.warning("Could not remove %s (ignored)", path)

        if not self.reload(ctx):
            self.logger.warning("Nginx reload after site removal failed (ignored)")
