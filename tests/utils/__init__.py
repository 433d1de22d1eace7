"""
Test Utilities
==============

Shared mocks for the rendering test suite.
"""
