"""
Task subsystem.

Components:
- task_models.py: data structures (Task, SubTask, TaskStatus, filters)
- task_time.py: date-time parsing/formatting (canonical + backend forms)
- task_status.py: status derivation and duration type
- task_conflicts.py: overlap detection between short tasks
- task_grouping.py: timeline, calendar and completion-trend views
- task_codec.py: remote API / local record encodings
- task_store.py: the in-memory collection, guest and remote modes
- task_scheduler.py: periodic status sweep
- task_api.py: submission helpers (validation + conflict soft-gate)
"""
