"""Model-backed classification for the triage gate.

This module provides:
- The classifier oracle capability (OracleResult success/failure values)
- LLMOracle, an OpenAI-compatible implementation using LangChain
- The label resolver that maps a free-text answer onto configured labels
"""

from src.triage.classifier.oracle import (
    ClassifierOracle,
    LLMOracle,
    OracleError,
    OracleFailureKind,
    OracleResult,
)
from src.triage.classifier.resolver import ALIAS_GROUPS, resolve_label

__all__ = [
    "ALIAS_GROUPS",
    "ClassifierOracle",
    "LLMOracle",
    "OracleError",
    "OracleFailureKind",
    "OracleResult",
    "resolve_label",
]
