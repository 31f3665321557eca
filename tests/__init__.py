"""
Test suite for mandi-floor

Contains:
- tests/unit/          : Unit tests for individual modules
"""
