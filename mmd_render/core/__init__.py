"""
Core Business Logic
==================

Core rendering pipeline for Mermaid diagrams.

Modules:
- exceptions: Typed pipeline failures
- rendering: Browser session, page building, render driving and artifact extraction
"""
