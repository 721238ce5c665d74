"""
Task Vision - Task lifecycle workflow core

Coordinates work items across a three-tier role hierarchy (worker,
department head, administrator) with photographic proof of completion,
supervisor verification, administrator disposition, and automatic
reassignment of rejected work.

Operating rules:
- Every transition names its caller explicitly
- Notification failures never fail a transition
- Partial reassignment is reported, never rolled back
- Writes to optional columns are narrowed and retried when the schema lacks them
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
