#!/usr/bin/env python3
"""
Supabase persistence for analysis results.

One row per session in the blindspots_analyses table, written through
the Supabase REST client.
"""

import asyncio
import logging
from typing import List, Dict, Any, Optional

from supabase import create_client, Client

from core.exceptions import PersistenceError
from core.models.analysis import AnalysisResult
from .base import ServiceAdapter

logger = logging.getLogger(__name__)

# analysis_mode values accepted by the table's check constraint
ANALYSIS_MODES = {'video': 'video', 'upload': 'video', 'image': 'video', 'audio': 'video',
                  'text': 'text', 'live': 'live'}


def analysis_row(result: AnalysisResult, mode: str, text_input: Optional[str] = None) -> Dict[str, Any]:
    """Table row for one result."""
    return {
        'session_id': result.session_id,
        'trust_vector': round(result.trust_vector, 2),
        'signals': {name: signal.to_dict() for name, signal in result.signals.items()},
        'alerts': [alert.to_dict() for alert in result.alerts],
        'timeline': [event.to_dict() for event in result.timeline],
        'context_preset': result.context_preset,
        'claude_analysis': result.narrative,
        'analysis_mode': ANALYSIS_MODES.get(mode, 'video'),
        'text_input': text_input,
        'github_url': result.github_url,
    }


class SupabaseStore(ServiceAdapter):
    """Best-effort analysis store."""

    service_name = 'supabase'

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 table_name: str = 'blindspots_analyses', client: Optional[Client] = None):
        super().__init__()
        self.url = url
        self.key = key
        self.table_name = table_name
        self.client = client

    async def _connect(self) -> bool:
        if self.client is None:
            if not self.url or not self.key:
                logger.warning("Supabase configuration missing")
                return False
            self.client = create_client(self.url, self.key)

        await asyncio.to_thread(
            lambda: self.client.table(self.table_name).select('id').limit(1).execute()
        )
        return True

    async def store_analysis(self, result: AnalysisResult, mode: str,
                             text_input: Optional[str] = None) -> Optional[str]:
        """
        Insert one analysis row.

        Args:
            result: Completed analysis
            mode: Session kind (upload, text, live)
            text_input: Source text for text sessions

        Returns:
            Row id, or None when the insert returned no data

        Raises:
            PersistenceError: Store not connected or the insert failed
        """
        if not self.connected:
            raise PersistenceError('insert', self.table_name, RuntimeError('Supabase not initialized'))

        row = analysis_row(result, mode, text_input)
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table(self.table_name).insert(row).execute()
            )
        except Exception as e:
            raise PersistenceError('insert', self.table_name, e) from e

        row_id = response.data[0].get('id') if response.data else None
        logger.info(f"💾 Analysis {result.session_id} stored in Supabase: {row_id}")
        return row_id

    async def get_analyses(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Most recent analyses, newest first.

        Raises:
            PersistenceError: Store not connected or the query failed
        """
        if not self.connected:
            raise PersistenceError('select', self.table_name, RuntimeError('Supabase not initialized'))

        try:
            response = await asyncio.to_thread(
                lambda: (self.client.table(self.table_name)
                         .select('*')
                         .order('created_at', desc=True)
                         .limit(limit)
                         .execute())
            )
        except Exception as e:
            raise PersistenceError('select', self.table_name, e) from e

        return response.data or []
