from __future__ import annotations

from typing import Optional


class ProvisionError(RuntimeError):
    """Fatal provisioning failure.

    ``remediation`` holds the manual fix shown to the operator, if one exists.
    """

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class UnsupportedEnvironment(ProvisionError):
    pass


class UnsupportedArchitecture(ProvisionError):
    pass


class NoRoutableAddress(ProvisionError):
    pass


class NoInstallStrategy(ProvisionError):
    pass


class InstallVerificationFailed(ProvisionError):
    pass


class VersionResolutionFailed(ProvisionError):
    pass


class DownloadFailed(ProvisionError):
    pass


class ConfigPatchFailed(ProvisionError):
    pass


class SecretEmpty(ProvisionError):
    pass


class SecretMismatch(ProvisionError):
    pass


class PrerequisiteConfigMissing(ProvisionError):
    pass


class ServiceActivationFailed(ProvisionError):
    pass


class CommandFailed(ProvisionError):
    def __init__(self, message: str, *, argv: list[str], returncode: int, stderr: str) -> None:
        super().__init__(message)
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr


class AlreadyRunning(ProvisionError):
    pass
