"""
Ledger Modules.

Thin layers over the kernel and engines:
- reporting: financial statements and KPI orchestration
- postings: business events -> balanced journal entries
"""
