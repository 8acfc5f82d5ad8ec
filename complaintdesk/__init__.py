"""
Complaint Desk
==============

Farmer complaint lifecycle engine: ticketing, SLA deadlines, status
transitions, phone follow-ups and zone/branch scoped access.
"""

__version__ = "1.0.0"
