#!/usr/bin/env python3
"""
Forensic report export.

Serializes a ForensicReport to Markdown, CSV, JSON, HTML or PDF. The PDF
is rendered by fpdf2 from the same HTML body the HTML export uses.
"""

import csv
import html
import io
import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import List, Dict, Any, Optional

from dateutil import parser as date_parser
from fpdf import FPDF

from ..exceptions import UnsupportedExportFormatError
from ..formatters import percent, slugify
from ..models.report import ForensicReport

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ['markdown', 'csv', 'json', 'html', 'pdf']

FILE_EXTENSIONS = {
    'markdown': 'md',
    'csv': 'csv',
    'json': 'json',
    'html': 'html',
    'pdf': 'pdf',
}

CSV_HEADER = ['Section', 'Timestamp', 'Element', 'Observation', 'Interpretation',
              'Confidence', 'API_Source', 'Micro_Expressions', 'Significance']

ADVANCED_FIELDS = ['baseline_behavior', 'signal_clusters', 'temporal_patterns',
                   'stress_comfort_indicators', 'advanced_insights']

FOOTER_TEXT = 'Generated by Blindspots Forensic Analysis System'

HTML_STYLE = """
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px; }
.header { text-align: center; border-bottom: 3px solid #2563eb; padding-bottom: 20px; margin-bottom: 30px; }
.section-title { color: #1e40af; border-left: 4px solid #3b82f6; padding-left: 10px; }
table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
th, td { border: 1px solid #d1d5db; padding: 10px; text-align: left; }
th { background-color: #f3f4f6; }
.meta { font-size: 12px; color: #6b7280; }
.stress-indicator { background-color: #fef2f2; border-left: 4px solid #ef4444; padding: 10px; }
.comfort-indicator { background-color: #f0fdf4; border-left: 4px solid #22c55e; padding: 10px; }
footer { margin-top: 40px; border-top: 1px solid #d1d5db; font-size: 12px; color: #6b7280; text-align: center; }
@media print { @page { margin: 1cm; size: A4; } }
"""

# Characters outside latin-1 that show up in report text
PDF_REPLACEMENTS = {
    '—': '-', '–': '-', '‘': "'", '’': "'",
    '“': '"', '”': '"', '≈': '~', '…': '...',
}


@dataclass
class ExportOptions:
    """What to include in an export."""
    format: str = 'markdown'
    include_advanced_analysis: bool = True
    include_raw_data: bool = False
    cultural_context: bool = True
    confidence_threshold: float = 0.0


def filter_report(report: ForensicReport, options: ExportOptions) -> Dict[str, Any]:
    """
    Report dictionary with the parts the options exclude removed.

    Works on a fresh dictionary; the report itself is left untouched.
    """
    filtered = report.to_dict()

    if not options.include_advanced_analysis:
        for key in ADVANCED_FIELDS:
            filtered.pop(key, None)

    if not options.include_raw_data:
        threshold = options.confidence_threshold
        filtered['baseline_calibration']['observations'] = [
            obs for obs in filtered['baseline_calibration']['observations'] if obs['confidence'] >= threshold
        ]
        for phase in filtered['analysis_phases']:
            phase['observations'] = [obs for obs in phase['observations'] if obs['confidence'] >= threshold]

    if not options.cultural_context:
        filtered.pop('cultural_context', None)

    return filtered


def display_time(timestamp: str) -> str:
    """Human-readable generation time for an ISO timestamp."""
    try:
        return date_parser.isoparse(timestamp).strftime('%Y-%m-%d %H:%M:%S')
    except (ValueError, TypeError):
        return timestamp


def generate_filename(report: ForensicReport, export_format: str, today: Optional[date] = None) -> str:
    """forensic-report-{title slug}-{YYYY-MM-DD}.{ext}"""
    if today is None:
        try:
            today = date_parser.isoparse(report.timestamp).date()
        except (ValueError, TypeError):
            today = date.today()
    extension = FILE_EXTENSIONS.get(export_format, export_format)
    return f"forensic-report-{slugify(report.title)}-{today.isoformat()}.{extension}"


def render_markdown(report: ForensicReport, options: ExportOptions) -> str:
    """Markdown rendering of the report."""
    summary = report.summary_judgment
    lines = [
        "# Forensic Body-Language Report",
        "",
        f"**{report.title}**",
        "",
        f"*Generated: {display_time(report.timestamp)}*",
        "",
    ]
    if report.cultural_context:
        lines += [f"**Cultural Context:** {report.cultural_context}", ""]

    lines += [
        "## Executive Summary",
        "",
        summary.overall_assessment,
        "",
        f"- **Trust Vector:** {percent(summary.trust_vector)}%",
        f"- **Engagement Level:** {summary.engagement_level}",
        f"- **Openness to Next Steps:** {summary.openness_to_next}",
        "",
        "## Subjects",
        "",
    ]
    lines += [f"**{subject.label}** ({subject.role}): {subject.description}" for subject in report.subjects]
    lines += ["", "---", ""]

    lines += [
        f"## 1. {report.baseline_calibration.phase_name}",
        "",
        "| Cue | Observation | Implication |",
        "|-----|-------------|-------------|",
    ]
    lines += [f"| {obs.cue} | {obs.observation} | {obs.implication} |"
              for obs in report.baseline_calibration.observations]
    lines += ["", "---", ""]

    for index, phase in enumerate(report.analysis_phases, 2):
        lines += [f"## {index}. {phase.phase_name}", ""]
        for obs in phase.observations:
            heading = f"### {obs.cue}"
            if obs.timestamp:
                heading += f" (≈{obs.timestamp})"
            source = f" | **Source:** {obs.api_source}" if obs.api_source else ""
            lines += [
                heading, "",
                f"**Observation:** {obs.observation}", "",
                f"**Interpretation:** {obs.implication}", "",
                f"**Confidence:** {percent(obs.confidence)}%{source}", "",
            ]
            if obs.micro_expressions:
                lines += [f"**Micro-expressions:** {', '.join(obs.micro_expressions)}", ""]
        lines += ["---", ""]

    if options.include_advanced_analysis:
        lines += _markdown_advanced(report)

    lines += [
        f"## {len(report.analysis_phases) + 2}. Decision-Read Indicators",
        "",
        "| Indicator | Presence | Weight |",
        "|-----------|----------|--------|",
    ]
    lines += [f"| {item.indicator} | {item.presence} | {item.weight} |" for item in report.decision_indicators]
    lines += ["", "---", ""]

    lines += ["## Summary Judgment", "", f"**{summary.overall_assessment}**", ""]
    for index, finding in enumerate(summary.key_findings, 1):
        lines.append(f"{index}. **{finding.category}:** {finding.level}")
        if finding.evidence:
            lines.append(f"   - Evidence: {', '.join(finding.evidence)}")
    lines.append("")

    lines += ["## Recommended Next Moves", ""]
    for index, rec in enumerate(report.recommendations, 1):
        lines += [
            f"{index}. **{rec.action}** ({rec.priority} Priority)",
            f"   - **Rationale:** {rec.rationale}",
            f"   - **Expected Outcome:** {rec.expected_outcome}",
            "",
        ]

    lines += ["---", "", "## Confidence Note", "", report.confidence_note]
    return "\n".join(lines)


def _markdown_advanced(report: ForensicReport) -> List[str]:
    lines = []
    if report.signal_clusters:
        lines += ["## Behavioral Signal Clusters", ""]
        for cluster in report.signal_clusters:
            lines += [
                f"### {cluster.name}", "",
                f"**Interpretation:** {cluster.interpretation}", "",
                f"**Significance:** {cluster.significance} | **Confidence:** {percent(cluster.confidence)}%", "",
                f"**Time Window:** {cluster.time_window['start']} - {cluster.time_window['end']}", "",
                f"**Signals:** {', '.join(cluster.signals)}", "",
                "---", "",
            ]

    if report.temporal_patterns:
        lines += ["## Temporal Patterns", ""]
        lines += [f"- **{pattern.signal}** ({pattern.pattern}): {pattern.interpretation}"
                  for pattern in report.temporal_patterns]
        lines += ["", "---", ""]

    if report.stress_comfort_indicators:
        lines += ["## Stress & Comfort Analysis", ""]
        for indicator in report.stress_comfort_indicators:
            lines += [
                f"### {indicator.type.capitalize()} Response ({percent(indicator.level)}%) @ {indicator.time_stamp}", "",
                f"**Physiological Markers:** {', '.join(indicator.physiological_markers) or 'None detected'}", "",
                f"**Behavioral Markers:** {', '.join(indicator.behavioral_markers) or 'None detected'}", "",
                f"**Reliability:** {percent(indicator.reliability)}%", "",
                "---", "",
            ]

    if report.advanced_insights:
        lines += ["## Advanced Behavioral Insights", ""]
        lines += [f"- {insight}" for insight in report.advanced_insights]
        lines += ["", "---", ""]
    return lines


def render_csv(report: ForensicReport, options: ExportOptions) -> str:
    """One row per observation, cluster and stress/comfort reading."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerow(CSV_HEADER)

    for obs in report.baseline_calibration.observations:
        writer.writerow(['Baseline', '', obs.cue, obs.observation, obs.implication, percent(obs.confidence),
                         obs.api_source or '', ';'.join(obs.micro_expressions or []), ''])

    for phase in report.analysis_phases:
        for obs in phase.observations:
            writer.writerow([phase.phase_name, obs.timestamp or '', obs.cue, obs.observation, obs.implication,
                             percent(obs.confidence), obs.api_source or '',
                             ';'.join(obs.micro_expressions or []), ''])

    if options.include_advanced_analysis:
        for cluster in report.signal_clusters or []:
            writer.writerow(['Signal_Cluster', f"{cluster.time_window['start']}-{cluster.time_window['end']}",
                             cluster.name, '; '.join(cluster.signals), cluster.interpretation,
                             percent(cluster.confidence), '', '', cluster.significance])

        for indicator in report.stress_comfort_indicators or []:
            writer.writerow([f"{indicator.type}_Indicator", indicator.time_stamp, f"{indicator.type}_Response",
                             '; '.join(indicator.behavioral_markers), f"Level: {percent(indicator.level)}%",
                             percent(indicator.reliability), '', '', ''])

    return buffer.getvalue()


def _esc(value: Any) -> str:
    return html.escape(str(value))


def render_html_body(report: ForensicReport, options: ExportOptions) -> str:
    """
    HTML body shared by the HTML and PDF exports.

    Uses only headings, paragraphs, lists and simple tables so the PDF
    renderer can lay it out.
    """
    summary = report.summary_judgment
    parts = [
        '<h1>Forensic Body-Language Report</h1>',
        f'<h2>{_esc(report.title)}</h2>',
        f'<p class="meta">Generated: {_esc(display_time(report.timestamp))}</p>',
    ]
    if report.cultural_context:
        parts.append(f'<p><b>Cultural Context:</b> {_esc(report.cultural_context)}</p>')

    parts += [
        '<h2 class="section-title">Executive Summary</h2>',
        f'<p><b>{_esc(summary.overall_assessment)}</b></p>',
        f'<p><b>Trust Vector:</b> {percent(summary.trust_vector)}% | '
        f'<b>Engagement:</b> {_esc(summary.engagement_level)} | '
        f'<b>Openness:</b> {_esc(summary.openness_to_next)}</p>',
        '<h2 class="section-title">Subjects</h2>',
    ]
    parts += [f'<p><b>{_esc(subject.label)}</b> ({_esc(subject.role)}): {_esc(subject.description)}</p>'
              for subject in report.subjects]

    parts.append('<h2 class="section-title">Baseline Calibration</h2>')
    parts.append(_html_table(['Cue', 'Observation', 'Implication'],
                             [[obs.cue, obs.observation, obs.implication]
                              for obs in report.baseline_calibration.observations]))

    for index, phase in enumerate(report.analysis_phases, 2):
        parts.append(f'<h2 class="section-title">{index}. {_esc(phase.phase_name)}</h2>')
        for obs in phase.observations:
            heading = _esc(obs.cue) + (f' ({_esc(obs.timestamp)})' if obs.timestamp else '')
            source = f' | Source: {_esc(obs.api_source)}' if obs.api_source else ''
            parts += [
                f'<h4>{heading}</h4>',
                f'<p><b>Observation:</b> {_esc(obs.observation)}</p>',
                f'<p><b>Interpretation:</b> {_esc(obs.implication)}</p>',
                f'<p class="meta">Confidence: {percent(obs.confidence)}%{source}</p>',
            ]
            if obs.micro_expressions:
                parts.append(f'<p class="meta"><b>Micro-expressions:</b> {_esc(", ".join(obs.micro_expressions))}</p>')

    if options.include_advanced_analysis:
        if report.signal_clusters:
            parts.append('<h2 class="section-title">Behavioral Signal Clusters</h2>')
            for cluster in report.signal_clusters:
                parts += [
                    f'<h4>{_esc(cluster.name)} ({_esc(cluster.significance)} significance, '
                    f'{percent(cluster.confidence)}% confidence)</h4>',
                    f'<p>{_esc(cluster.interpretation)}</p>',
                    f'<p class="meta"><b>Time Window:</b> {_esc(cluster.time_window["start"])} - '
                    f'{_esc(cluster.time_window["end"])}<br><b>Signals:</b> {_esc(", ".join(cluster.signals))}</p>',
                ]

        if report.stress_comfort_indicators:
            parts.append('<h2 class="section-title">Stress &amp; Comfort Analysis</h2>')
            for indicator in report.stress_comfort_indicators:
                parts += [
                    f'<h4>{_esc(indicator.type.capitalize())} Response ({percent(indicator.level)}%) '
                    f'@ {_esc(indicator.time_stamp)}</h4>',
                    f'<p class="{_esc(indicator.type)}-indicator"><b>Physiological:</b> '
                    f'{_esc(", ".join(indicator.physiological_markers) or "None detected")}<br>'
                    f'<b>Behavioral:</b> {_esc(", ".join(indicator.behavioral_markers) or "None detected")}<br>'
                    f'Reliability: {percent(indicator.reliability)}%</p>',
                ]

    if report.advanced_insights:
        parts.append('<h2 class="section-title">Advanced Behavioral Insights</h2>')
        parts.append('<ul>' + ''.join(f'<li>{_esc(insight)}</li>' for insight in report.advanced_insights) + '</ul>')

    parts.append('<h2 class="section-title">Decision Indicators</h2>')
    parts.append(_html_table(['Indicator', 'Presence', 'Weight'],
                             [[item.indicator, item.presence, item.weight] for item in report.decision_indicators]))

    parts.append('<h2 class="section-title">Recommendations</h2>')
    for index, rec in enumerate(report.recommendations, 1):
        parts += [
            f'<h4>{index}. {_esc(rec.action)} ({_esc(rec.priority)} Priority)</h4>',
            f'<p><b>Rationale:</b> {_esc(rec.rationale)}</p>',
            f'<p><b>Expected Outcome:</b> {_esc(rec.expected_outcome)}</p>',
        ]

    parts += [
        '<h2 class="section-title">Methodology &amp; Confidence</h2>',
        f'<p>{_esc(report.confidence_note)}</p>',
    ]
    return "\n".join(parts)


def _html_table(headers: List[str], rows: List[List[str]]) -> str:
    head = '<tr>' + ''.join(f'<th>{_esc(cell)}</th>' for cell in headers) + '</tr>'
    body = ''.join('<tr>' + ''.join(f'<td>{_esc(cell)}</td>' for cell in row) + '</tr>' for row in rows)
    return f'<table border="1">{head}{body}</table>'


def render_html(report: ForensicReport, options: ExportOptions) -> str:
    """Standalone printable HTML document."""
    return (
        '<!DOCTYPE html>\n<html>\n<head>\n<meta charset="utf-8">\n'
        '<title>Forensic Body-Language Report</title>\n'
        f'<style>{HTML_STYLE}</style>\n</head>\n<body>\n'
        f'{render_html_body(report, options)}\n'
        f'<footer><p>{FOOTER_TEXT}</p>'
        '<p>This report contains advanced behavioral analysis based on multiple AI services '
        'and cultural context adjustments.</p></footer>\n'
        '</body>\n</html>\n'
    )


def _latin1(text: str) -> str:
    for char, replacement in PDF_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text.encode('latin-1', 'replace').decode('latin-1')


def render_pdf(report: ForensicReport, options: ExportOptions) -> bytes:
    """PDF laid out by fpdf2 from the HTML body."""
    pdf = FPDF(format='A4')
    pdf.set_title('Forensic Body-Language Report')
    pdf.set_auto_page_break(auto=True, margin=10)
    pdf.add_page()
    pdf.set_font('Helvetica', size=10)
    pdf.write_html(_latin1(render_html_body(report, options) + f'<p>{FOOTER_TEXT}</p>'))
    return bytes(pdf.output())


class ReportExporter:
    """Serializes forensic reports and writes them to disk."""

    def __init__(self, export_dir: str = 'exports'):
        self.export_dir = export_dir

    def export(self, report: ForensicReport, options: ExportOptions) -> bytes:
        """
        Serialize a report.

        Observations below the confidence threshold are dropped unless
        include_raw_data is set.

        Raises:
            UnsupportedExportFormatError: Unknown format
        """
        if options.format not in EXPORT_FORMATS:
            raise UnsupportedExportFormatError(options.format, EXPORT_FORMATS)

        filtered = filter_report(report, options)
        if options.format == 'json':
            return json.dumps(filtered, indent=2, ensure_ascii=False).encode('utf-8')

        view = ForensicReport.from_dict(filtered)
        if options.format == 'markdown':
            return render_markdown(view, options).encode('utf-8')
        if options.format == 'csv':
            return render_csv(view, options).encode('utf-8')
        if options.format == 'html':
            return render_html(view, options).encode('utf-8')
        return render_pdf(view, options)

    def save(self, report: ForensicReport, options: ExportOptions, output_path: Optional[str] = None,
             today: Optional[date] = None) -> str:
        """
        Export a report to a file.

        Args:
            report: Report to export
            options: Export options
            output_path: Destination file (a generated name in export_dir if omitted)
            today: Date used in the generated file name

        Returns:
            Path of the written file
        """
        data = self.export(report, options)
        if output_path is None:
            os.makedirs(self.export_dir, exist_ok=True)
            output_path = os.path.join(self.export_dir, generate_filename(report, options.format, today))

        with open(output_path, 'wb') as f:
            f.write(data)

        logger.info(f"📄 Report exported to {output_path} ({len(data)} bytes)")
        return output_path
