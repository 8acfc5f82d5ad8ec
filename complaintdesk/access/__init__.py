"""
Access Module
=============

Bounded Context for role and zone/branch scoped authorization.

Responsibilities:
- Model the acting user as Admin | Executive
- Decide read/write eligibility for a resource's zone/branch
- Resolve actors from the user directory
"""
