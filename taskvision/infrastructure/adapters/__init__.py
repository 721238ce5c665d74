"""Infrastructure adapters implementing the application ports."""

from taskvision.infrastructure.adapters.time_authority import SystemTimeAuthority

__all__ = ["SystemTimeAuthority"]
