"""Domain errors for AppDeployer."""


class DeployerError(RuntimeError):
    """Raised when the deployment cannot continue safely."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = int(exit_code)
