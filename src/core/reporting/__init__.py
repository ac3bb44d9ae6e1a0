#!/usr/bin/env python3
"""
Forensic report generation and export.
"""

from .forensic_report import ForensicReportGenerator, build_subjects
from .exporter import ExportOptions, ReportExporter, EXPORT_FORMATS, generate_filename

__all__ = [
    'ForensicReportGenerator', 'build_subjects',
    'ExportOptions', 'ReportExporter', 'EXPORT_FORMATS', 'generate_filename',
]
