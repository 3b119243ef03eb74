"""Moodtrack - Core application modules.

Provides:
- Settings and filesystem layout
- Pipeline error taxonomy and mood profiles
- SQLAlchemy catalog models and DB primitives
- Huey queue for deferred orphan purges
"""

__version__ = "0.1.0"
