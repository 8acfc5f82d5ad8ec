"""
Access Application Layer
========================

Contains the user directory port and actor resolution.
"""

from complaintdesk.access.application.services import IUserDirectory, resolve_actor

__all__ = [
    "IUserDirectory",
    "resolve_actor",
]
