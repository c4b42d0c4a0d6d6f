"""
Integration tests for localbox.

These tests require a running localbox server at localhost:8000.
Run with: pytest tests/integration/ -v -m integration
"""
