# tests/unit/__init__.py
"""
Unit tests for the CRM pipeline jobs.

Rules, records, forecast math and config loading, tested without the
Supabase mock or the HTTP layer.
"""
