from __future__ import annotations


class ProvisionError(RuntimeError):
    """A stage hit a fatal condition; the pipeline stops here."""


class PrivilegeError(ProvisionError):
    pass


class RuntimeVerificationError(ProvisionError):
    pass


class DeploymentError(ProvisionError):
    pass


class ConfigValidationError(ProvisionError):
    pass
