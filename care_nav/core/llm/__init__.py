"""LLM integration layer.

This package is intentionally small and conservative:
- No prompt/output logging (answers describe a person's health).
- Configurable via environment variables.
- One client per process, created at startup and injected into callers.
"""
