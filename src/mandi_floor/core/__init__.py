"""
Core domain models, money primitives, and outbound contracts.

This module contains the foundational building blocks that are independent
of external systems (market-price feeds, databases, etc.).
"""
