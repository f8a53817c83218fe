"""
UniForm - Centralized University Admission Platform
Students register once, build an academic profile and apply to institution units.

Architecture:
- PostgreSQL: Structured data (students, institutions, units, applications)
- Eligibility rules are evaluated in Python against each unit's requirement rows
- Institution admins review applications; system admins provision institutions
"""

__version__ = "1.0.0"
