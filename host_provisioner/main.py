from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from .config import DEFAULT_CONFIG_PATH, load_config
from .context import ProvisionContext
from .errors import ProvisionError
from .lib.fetch import make_session
from .lib.lock import host_lock
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .models import PatchMode, Role
from .pipeline import Step, run_pipeline
from .report import save_report
from .steps import (
    FetchArtifactsStep,
    InstallDependenciesStep,
    PreflightStep,
    ProbeEnvironmentStep,
    ReconcileServicesStep,
    ReportStep,
)

logger = logging.getLogger(__name__)


def build_steps() -> List[Step]:
    return [
        ProbeEnvironmentStep(),
        PreflightStep(),
        InstallDependenciesStep(),
        FetchArtifactsStep(),
        ReconcileServicesStep(),
        ReportStep(),
    ]


def provision(ctx: ProvisionContext, *, lock_path: Optional[str] = None) -> Dict[str, Any]:
    """Run every stage under the per-host lock and return the run record."""

    with host_lock(lock_path or ctx.cfg.lock_path):
        try:
            run_pipeline(ctx=ctx, steps=build_steps())
        except Exception as e:
            ctx.record.setdefault("errors", []).append(
                {"step": ctx.record.get("current_step"), "error": str(e)}
            )
            raise
    return ctx.record


def run(
    *,
    role: Role = Role.PRIMARY,
    config_path: str = DEFAULT_CONFIG_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    report_path: Optional[str] = None,
    secret_file: Optional[str] = None,
    textual_patch: bool = False,
    dry_run: bool = False,
    verbose: bool = False,
) -> Dict[str, Any]:
    actual_log_path = configure_logging(log_path=log_path, verbose=verbose)

    cfg = load_config(config_path)
    ctx = ProvisionContext(
        cfg=cfg,
        role=role,
        session=make_session(),
        patch_mode=PatchMode.TEXTUAL if textual_patch else PatchMode.STRUCTURED,
        secret_file=secret_file,
        dry_run=dry_run,
    )
    ctx.record["log_path"] = actual_log_path

    try:
        return provision(ctx)
    finally:
        ctx.session.close()
        if report_path:
            save_report(report_path, ctx.record)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="host-provisioner")
    p.add_argument("--role", choices=[r.value for r in Role], default=Role.PRIMARY.value,
                   help="Cluster role for Cronicle; only primary runs first-time setup")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to provisioner config (yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to provisioner log")
    p.add_argument("--report", default=None, help="Write a run report (json|yaml)")
    p.add_argument("--secret-file", default=None, help="Read the Cronicle secret_key from this file")
    p.add_argument("--textual-patch", action="store_true",
                   help="Patch config.json by line substitution instead of JSON parsing")
    p.add_argument("--dry-run", action="store_true", help="Log commands without changing the host")
    p.add_argument("-v", "--verbose", action="store_true", help="Show command output on the console")

    args = p.parse_args(argv)

    try:
        run(
            role=Role(args.role),
            config_path=args.config,
            log_path=args.log,
            report_path=args.report,
            secret_file=args.secret_file,
            textual_patch=bool(args.textual_patch),
            dry_run=bool(args.dry_run),
            verbose=bool(args.verbose),
        )
    except ProvisionError as e:
        logger.error("ERROR: %s", e)
        if e.remediation:
            logger.error("Remediation:\n%s", e.remediation)
        return 1
    except Exception:
        logger.exception("Provisioner failed")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
