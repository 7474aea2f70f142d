"""
Library subsystem.

Components:
- models.py: CardTemplate, LibraryEntry, DeadlineStatus, effective_deadline
- bucketer.py: urgency buckets by calendar-day distance to the deadline
- store.py: in-memory template catalog + unscheduled pool
"""
