from .step_10_probe_environment import ProbeEnvironmentStep
from .step_15_preflight import PreflightStep
from .step_20_install_dependencies import InstallDependenciesStep
from .step_30_fetch_artifacts import FetchArtifactsStep
from .step_50_reconcile_services import ReconcileServicesStep
from .step_90_report import ReportStep

__all__ = [
    "ProbeEnvironmentStep",
    "PreflightStep",
    "InstallDependenciesStep",
    "FetchArtifactsStep",
    "ReconcileServicesStep",
    "ReportStep",
]
