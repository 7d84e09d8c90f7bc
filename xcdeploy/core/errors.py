"""Domain-specific errors for xcdeploy."""


class XcdeployError(Exception):
    """Base error for xcdeploy."""


class ConfigValidationError(XcdeployError):
    """Raised when the config file does not conform to schema or semantics."""


class ConfigLoadError(XcdeployError):
    """Raised when reading the config file fails."""


class RunConfigError(XcdeployError):
    """Raised when deployment options are inconsistent or incomplete."""


class CommandError(XcdeployError):
    """Base error for external command execution."""


class SecurityViolationError(CommandError):
    """Raised when a command matches the denylist."""


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""


class ProcessError(CommandError):
    """Raised when a command exits non-zero."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"Command failed with exit code {returncode}: {command}"
        details = stderr.strip() or stdout.strip()
        if details:
            message = f"{message}\n{details}"
        super().__init__(message)


class DeviceNotFoundError(XcdeployError):
    """Raised when no device matches a name or identifier."""


class MissingIdentifierError(XcdeployError):
    """Raised when a resolved device lacks the identifier an operation needs."""


class IncompleteDeviceIdentityError(MissingIdentifierError):
    """Raised when a device is known to only one discovery source."""


class BundleIdentifierNotFoundError(XcdeployError):
    """Raised when build settings do not contain PRODUCT_BUNDLE_IDENTIFIER."""
