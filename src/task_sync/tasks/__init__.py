"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskSnapshot, SyncStatus)
- task_store.py: SQLite-backed tasks table
- task_service.py: mutator (create/update/delete + queue entry in one transaction)
"""
