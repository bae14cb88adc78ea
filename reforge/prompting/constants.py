"""Shared constants for model prompting."""

from __future__ import annotations

SELECTION_TEMPLATE = "select_files.j2"
ANALYSIS_TEMPLATE = "analyze.j2"
REIMPLEMENT_TEMPLATE = "reimplement.j2"

DEFAULT_MAX_SELECTED_FILES = 50

REPORT_SECTIONS: tuple[str, ...] = (
    "Executive Summary",
    "Detailed Architecture Review",
    "Error Handling & Debugging Analysis",
    "Security Vulnerabilities",
    "Performance Bottlenecks",
    "Actionable Modernization Plan",
)


__all__ = [
    "ANALYSIS_TEMPLATE",
    "DEFAULT_MAX_SELECTED_FILES",
    "REIMPLEMENT_TEMPLATE",
    "REPORT_SECTIONS",
    "SELECTION_TEMPLATE",
]
