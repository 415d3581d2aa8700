"""
apmcore — Per-Request Instrumentation Core

An in-process application performance monitoring core designed for:
- Transactions: concurrency-safe per-request records with exactly-once finalize
- Errors: structured, capped and optionally redacted error capture
- Apdex: completion-time satisfaction classification for web transactions
- Logs: validated log events and trace/entity linking metadata

Copyright (c) 2024 apmcore Contributors
"""

__version__ = "0.1.0"
__author__ = "apmcore Team"
