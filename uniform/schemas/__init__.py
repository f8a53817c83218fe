"""
Schemas module - Request/Response schemas for API endpoints.

All API contracts live in schemas.py; the academic record types there are
also the domain objects the eligibility evaluator works on.
"""
