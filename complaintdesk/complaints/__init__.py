"""
Complaints Module
=================

Bounded Context for the farmer complaint lifecycle.

Responsibilities:
- Issue ticket numbers and fix SLA deadlines at creation
- Drive complaints through open / progress / closed / reopen
- Record phone follow-ups, cascading the status a call asserts
- Provide scoped listings and SLA compliance summaries
"""
