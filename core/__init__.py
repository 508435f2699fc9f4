"""
Core roster and selection logic

This package contains:
- Managers: classroom and student record operations
- Roster store: async facade the sessions call into
- Selection engine: the timed random-pick state machine
- Session controller/registry: one engine + roster per classroom view
"""
