"""
Data Models
===========

Pydantic models for render options, pipeline values and render results.
"""
