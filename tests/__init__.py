"""
Test suite for the finance engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
