#!/usr/bin/env python3
"""
GitHub archival of analysis results.

Each session is committed as analyses/{session_id}.md through the
repository contents API.
"""

import asyncio
import base64
import logging
from typing import Optional

import requests

from core.exceptions import ArchivalError
from core.formatters import percent, humanize_signal
from core.models.analysis import AnalysisResult
from .base import ServiceAdapter

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


def analysis_markdown(result: AnalysisResult) -> str:
    """Markdown summary committed for one session."""
    lines = [
        f"# Behavioral Analysis {result.session_id}",
        "",
        f"- Context: {result.context_preset}",
        f"- Media: {result.media_type or 'unknown'}",
        f"- Trust vector: {percent(result.trust_vector)}%",
        "",
        "## Signals",
        "",
        "| Signal | Confidence | Source | Indicators |",
        "|---|---|---|---|",
    ]
    for name, signal in result.signals.items():
        lines.append(f"| {humanize_signal(name)} | {percent(signal.confidence)}% | "
                     f"{signal.api_source} | {', '.join(signal.indicators)} |")

    lines += ["", "## Alerts", ""]
    if result.alerts:
        lines += [f"- [{alert.severity}] {alert.timestamp} {alert.description}" for alert in result.alerts]
    else:
        lines.append("No alerts.")

    lines += ["", "## Timeline", ""]
    lines += [f"- {event.time} {event.event} ({event.api_call})" for event in result.timeline]

    if result.narrative:
        lines += ["", "## Narrative", "", result.narrative]

    return "\n".join(lines) + "\n"


class GitHubArchiver(ServiceAdapter):
    """Best-effort archive of session summaries."""

    service_name = 'github'

    def __init__(self, token: Optional[str] = None, owner: Optional[str] = None,
                 repo: str = 'blind-spot-analyses', timeout: int = 30,
                 session: Optional[requests.Session] = None):
        super().__init__()
        self.token = token
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": "blindspot-analyzer/1.0",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def _connect(self) -> bool:
        if not self.token or not self.owner:
            logger.warning("GitHub token or owner missing")
            return False

        response = await asyncio.to_thread(
            self.session.get, f"{GITHUB_API}/repos/{self.repository}", timeout=self.timeout
        )
        if response.status_code != 200:
            logger.warning(f"GitHub repository {self.repository} unavailable: HTTP {response.status_code}")
            return False
        return True

    async def archive_analysis(self, result: AnalysisResult) -> str:
        """
        Commit the session summary.

        Returns:
            HTML URL of the committed file

        Raises:
            ArchivalError: Archiver not connected or the commit failed
        """
        path = f"analyses/{result.session_id}.md"
        if not self.connected:
            raise ArchivalError(self.repository, path, RuntimeError('GitHub not initialized'))

        body = {
            'message': f"Add behavioral analysis {result.session_id}",
            'content': base64.b64encode(analysis_markdown(result).encode('utf-8')).decode('ascii'),
        }
        try:
            response = await asyncio.to_thread(
                self.session.put, f"{GITHUB_API}/repos/{self.repository}/contents/{path}",
                json=body, timeout=self.timeout
            )
            response.raise_for_status()
            url = response.json().get('content', {}).get('html_url', '')
        except (requests.RequestException, ValueError) as e:
            raise ArchivalError(self.repository, path, e) from e

        logger.info(f"📁 Analysis archived to GitHub: {url}")
        return url
