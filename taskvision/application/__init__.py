"""
Application layer - Use cases and orchestration for Task Vision.

This layer contains:
- Workflow services (lifecycle, verification ledger, reassignment)
- Port definitions (abstract interfaces for infrastructure)
- DTOs for outbound payloads

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, bootstrap
"""
