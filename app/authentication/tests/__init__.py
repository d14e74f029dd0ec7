"""
Tests for authentication app.

- test_models.py: User model and manager tests

Usage:
    pytest authentication/tests/
"""
