"""
AppDeployer - Automated deployment of Dockerized applications to a remote host
"""

__version__ = "1.0.0"

from .core import AppDeployer, DeployerError

__all__ = ["AppDeployer", "DeployerError"]
