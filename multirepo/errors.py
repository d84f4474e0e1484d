"""Exception types shared across multirepo."""


class MultirepoError(Exception):
    """Base class for errors that end a run with a single reported line."""


class ConfigError(MultirepoError):
    """Invalid or unreadable configuration."""


class CredentialError(MultirepoError):
    """No usable API token could be found."""


class DiscoveryError(MultirepoError):
    """Organization metadata could not be fetched."""


class TransferError(MultirepoError):
    """A clone or pull failed in a way that is not known to be ignorable."""

    def __init__(
        self,
        repo: str,
        operation: str,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.repo = repo
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr
        detail = f"failed to {operation} {repo}: {message}"
        if stderr.strip():
            detail += f", with message: {stderr.strip()}"
        super().__init__(detail)
