"""Read-only status views."""

from .projection import build_account_report, build_status_report

__all__ = ["build_account_report", "build_status_report"]
