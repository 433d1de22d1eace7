"""
Test Suite
==========

Test suite matching the mmd_render/ package structure.

Test Categories:
- unit: Unit tests for individual components, with Playwright mocked out
- e2e: End-to-end renders through a real Chromium and the bundled Mermaid script
"""
