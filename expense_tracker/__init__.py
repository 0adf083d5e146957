"""
Expense Tracker - Source Package

A personal expense tracker that keeps a local ledger, summarizes it per
day, month or year, and asks an LLM for plain-language analysis.

DESIGN PRINCIPLES:
1. The ledger is the single source of truth; summaries are recomputed
2. Reject bad input at the boundary, never silently fix it
3. Storage and LLM failures degrade to empty or placeholder states
4. The LLM only ever sees figures we computed
5. Storage is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
