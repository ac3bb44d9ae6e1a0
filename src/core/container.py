#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to manage the analyzer's services (configuration,
media, service adapters, report generation) and avoid scattered
instantiation throughout the codebase. Supports singleton and factory patterns.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        # Reentrant: singleton factories resolve their own dependencies through get()
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service created once and reused.

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a service created anew on every get()."""
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register an existing instance (used by tests to inject fakes)."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

        instance = factory()
        logger.debug(f"Created new instance for '{service_name}'")
        return instance

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """Mark a factory function as singleton."""
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    def config():
        return container.get('config')

    @singleton
    def create_config():
        from core.config import get_config
        return get_config()

    @singleton
    def create_media_service():
        from core.media import MediaService
        return MediaService(camera_index=config().app.camera_index)

    @singleton
    def create_openai():
        from integrations.openai_client import OpenAIAdapter
        cfg = config()
        return OpenAIAdapter(api_key=cfg.integrations.openai_api_key, model=cfg.app.openai_model,
                             timeout=cfg.app.request_timeout)

    @singleton
    def create_anthropic():
        from integrations.anthropic_client import AnthropicAdapter
        cfg = config()
        return AnthropicAdapter(api_key=cfg.integrations.anthropic_api_key, model=cfg.app.anthropic_model,
                                timeout=cfg.app.request_timeout)

    @singleton
    def create_google_vision():
        from integrations.google_vision import GoogleVisionAdapter
        cfg = config()
        return GoogleVisionAdapter(api_key=cfg.integrations.google_api_key, timeout=cfg.app.request_timeout)

    @singleton
    def create_google_video():
        from integrations.google_video import GoogleVideoAdapter
        cfg = config()
        return GoogleVideoAdapter(api_key=cfg.integrations.google_api_key,
                                  project_id=cfg.integrations.google_project_id,
                                  media_service=container.get('media_service'),
                                  frame_samples=cfg.app.frame_samples)

    @singleton
    def create_supabase():
        from integrations.supabase_store import SupabaseStore
        cfg = config()
        return SupabaseStore(url=cfg.storage.supabase_url, key=cfg.storage.supabase_anon_key,
                             table_name=cfg.storage.table_name)

    @singleton
    def create_github():
        from integrations.github_archiver import GitHubArchiver
        cfg = config()
        return GitHubArchiver(token=cfg.integrations.github_token, owner=cfg.integrations.github_owner,
                              repo=cfg.integrations.github_repo, timeout=cfg.app.request_timeout)

    @singleton
    def create_narrative():
        from core.analysis.narrative import NarrativeGenerator
        return NarrativeGenerator(anthropic=container.get('anthropic'), openai=container.get('openai'))

    @singleton
    def create_behavioral_analyzer():
        from core.analysis.behavioral import BehavioralAnalyzer
        return BehavioralAnalyzer()

    @singleton
    def create_report_generator():
        from core.analysis.stages import build_heuristics_pipeline
        from core.reporting import ForensicReportGenerator
        return ForensicReportGenerator(pipeline=build_heuristics_pipeline(container.get('behavioral_analyzer')))

    @singleton
    def create_report_exporter():
        from core.reporting import ReportExporter
        return ReportExporter(export_dir=config().app.export_dir)

    def create_orchestrator():
        from core.analysis.orchestrator import AnalysisOrchestrator
        return AnalysisOrchestrator(
            media_service=container.get('media_service'),
            openai=container.get('openai'),
            anthropic=container.get('anthropic'),
            google_vision=container.get('google_vision'),
            google_video=container.get('google_video'),
            supabase=container.get('supabase'),
            github=container.get('github'),
            narrative=container.get('narrative'),
            live_interval=config().app.live_capture_interval_seconds,
        )

    container.register_singleton('config', create_config)
    container.register_singleton('media_service', create_media_service)
    container.register_singleton('openai', create_openai)
    container.register_singleton('anthropic', create_anthropic)
    container.register_singleton('google_vision', create_google_vision)
    container.register_singleton('google_video', create_google_video)
    container.register_singleton('supabase', create_supabase)
    container.register_singleton('github', create_github)
    container.register_singleton('narrative', create_narrative)
    container.register_singleton('behavioral_analyzer', create_behavioral_analyzer)
    container.register_singleton('report_generator', create_report_generator)
    container.register_singleton('report_exporter', create_report_exporter)

    # Non-singletons
    container.register_factory('orchestrator', create_orchestrator)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def create_orchestrator():
    """Create a new orchestrator wired to the shared adapters."""
    return get_container().get('orchestrator')
