"""
Pipeline Module - capture processing

Provides:
- PipelineOrchestrator running clear -> validate -> consent -> submit ->
  poll -> normalize -> cache & notify
- Progress reporters, consent providers and result renderers
- DebugReconciler picking the most recent adapter debug record
"""

from .orchestrator import (
    PipelineOrchestrator,
    OrchestratorConfig,
    PipelineBusyError,
    create_default_orchestrator,
)
from .progress import ProgressReporter, LoggingProgressReporter, CompletionInfo, Outcome, safe_call
from .consent import ConsentProvider, AutoConsent, CallbackConsent, FileInfo
from .debug_reconciler import DebugReconciler
from .renderer import ResultRenderer, NullRenderer, ConsoleRenderer
from .validation import resolve_kind, validate_input

__all__ = [
    'PipelineOrchestrator',
    'OrchestratorConfig',
    'PipelineBusyError',
    'create_default_orchestrator',
    'ProgressReporter',
    'LoggingProgressReporter',
    'CompletionInfo',
    'Outcome',
    'safe_call',
    'ConsentProvider',
    'AutoConsent',
    'CallbackConsent',
    'FileInfo',
    'DebugReconciler',
    'ResultRenderer',
    'NullRenderer',
    'ConsoleRenderer',
    'resolve_kind',
    'validate_input',
]
