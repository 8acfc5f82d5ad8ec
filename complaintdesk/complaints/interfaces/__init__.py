"""
Complaints Interfaces Layer
===========================

Interface adapters (controllers) for the complaints module.

Contains:
- Controllers: FastAPI route handlers

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from complaintdesk.complaints.interfaces.controllers import complaints_router

__all__ = ["complaints_router"]
