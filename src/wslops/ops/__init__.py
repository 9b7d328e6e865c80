"""Operator flows built on top of distribution selection."""

from .backup import ExportPlan, plan_export, run_export
from .default_user import apply_default_user, set_default_user
from .preclean import build_cleanup_plan, parse_os_release, run_preclean
from .restore import ImportPlan, plan_import, run_import

__all__ = [
    "apply_default_user",
    "build_cleanup_plan",
    "ExportPlan",
    "ImportPlan",
    "parse_os_release",
    "plan_export",
    "plan_import",
    "run_export",
    "run_import",
    "run_preclean",
    "set_default_user",
]
