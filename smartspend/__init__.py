"""
SmartSpend - Source Package

A local-first personal finance ledger: accounts, categories, income and
expense transactions, monthly budgets, spend breakdowns and heuristic
insights over a single JSON document.

DESIGN PRINCIPLES:
1. One document, one owner (the ledger service)
2. Every mutation ends with an explicit commit
3. Aggregations and insights are pure and serializable
4. Historical transactions keep the snapshot they were created with
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SmartSpend Team"
