"""Error taxonomy for fleet provisioning."""


class FlotillaError(RuntimeError):
    """Base class for flotilla failures."""


class ConfigMissing(FlotillaError):
    """Raised when no configuration file can be found."""


class ConfigMalformed(FlotillaError):
    """Raised when configuration is unreadable or fails validation."""


class ToolingAbsent(FlotillaError):
    """Raised when a required host executable is not installed."""


class SwitchCreationFailed(FlotillaError):
    """Raised when the host virtual switch cannot be created."""


class PurgeFailed(FlotillaError):
    """Raised when deleting an existing instance fails for a reason other than absence."""


class LaunchFailed(FlotillaError):
    """Raised when the VM manager fails to launch an instance."""


class CleanupFailed(FlotillaError):
    """Raised when a rendered cloud-init file cannot be removed."""


class ReportFailed(FlotillaError):
    """Raised when the VM manager's instance listing cannot be obtained."""
