"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (Access and
Complaints).

Architecture Pattern: Modular Monolith
- Each module (access, complaints) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add complaint or access business logic to the shared kernel.
"""
