"""
Domain layer - Pure business logic for Task Vision.

This layer contains:
- Task, verification request and reassignment models
- The task lifecycle state machine
- Domain exceptions

This layer must NOT import from application, infrastructure or bootstrap.
Only stdlib and typing imports are allowed.
"""

from taskvision.domain.exceptions import TaskVisionError

__all__: list[str] = ["TaskVisionError"]
