"""
Credit Service

Organization credit ledger for the content platform.

Features:
- One spendable credit balance per organization
- Atomic, per-organization locked debits for billable actions
- Append-only ledger with paginated, filterable history
- Administrative grants with provenance records
- Pluggable pricing (price table, caller-supplied, or both)
- Post-commit events for debits and grants
"""

__version__ = "1.0.0"
