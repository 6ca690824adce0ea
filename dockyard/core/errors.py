"""Exceptions that stop Dockyard before any operation runs.

Failures of individual actions are reported as values (see
``dockyard.core.outcome``); only startup conditions raise.
"""


class DockyardError(Exception):
    """Base class for Dockyard errors."""
    pass


class ConfigError(DockyardError):
    """Raised when the configuration file or environment is invalid."""
    pass


class CatalogError(DockyardError):
    """Raised when the component catalog cannot be loaded or rendered."""
    pass


class PreflightError(DockyardError):
    """Raised when the host cannot run the installer (privilege, platform)."""
    pass


class LockError(DockyardError):
    """Raised when unable to acquire the installer lock."""
    pass
