"""
Reminder subsystem.

Components:
- reminder_models.py: data structures (Reminder, ReminderStatus, NewReminder)
- reminder_store.py: SQLite-backed storage
- reminder_scheduler.py: validation, schedule/cancel coordination, upcoming check + poller
"""
