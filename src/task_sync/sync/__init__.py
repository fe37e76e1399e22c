"""
Sync subsystem.

Components:
- sync_models.py: queue entries, wire items, run results
- sync_queue.py: SQLite-backed operation queue
- remote.py: httpx client for /health and /batch
- conflict.py: last-write-wins rule
- sync_service.py: orchestrator (batches, retries, prune)
- sync_scheduler.py: periodic trigger loop
"""
