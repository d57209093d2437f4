"""Automated triage gate for new GitHub issues and pull requests.

This package provides:
- Heuristic template detection and content quality scoring
- Model-backed spam, coverage, quality and label classification
- Staged decision pipelines for issues and pull requests
- Moderation actions (comment, close, lock, label) through the GitHub API
- Webhook intake, event emission and Prometheus metrics
"""
