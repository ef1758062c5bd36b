"""Test suite for the pytest-bdspec package.

This package contains unit and integration tests validating
declaration rules, suite assembly, sequential and parallel replay,
report rendering, and the pytest integration.
"""
