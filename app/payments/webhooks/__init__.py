"""
Processor webhook intake and reconciliation.

Webhooks are verified, stored idempotently, and processed asynchronously
via Celery tasks.
"""
