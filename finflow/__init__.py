"""
FinFlow - Source Package

A personal finance tracker that keeps income, expenses, categories and
a monthly spending goal in a local key-value store.

DESIGN PRINCIPLES:
1. Local data first: the store is the source of truth
2. Every change is logged and visible to the user
3. Backups merge, they never overwrite
4. AI phrases the numbers, it never computes them
5. Integrations are optional and degrade gracefully
"""

__version__ = "1.0.0"
__author__ = "FinFlow Team"
