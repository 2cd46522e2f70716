"""
Tenant Migrator

A one-shot, re-runnable engine that copies a tenant's data from the legacy
(V1) store into the new (V2) store.

Supports:
- Idempotent user migration keyed on email
- Identifier remapping from legacy to destination user ids
- Paged bulk transfer of transactions
- Telegram, WhatsApp and bank connection transfer
- Per-entity statistics, an error log and one audit record per run
"""

__version__ = "0.1.0"
