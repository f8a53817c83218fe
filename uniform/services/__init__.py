"""
Services module - business rules of the admission workflow.

- eligibility_service: pure (profile, requirement rows) -> eligible evaluation
- profile_service: student academic record mapping (row <-> tagged record)
- unit_service: unit + requirement ruleset management for institution admins
- application_service: application register (submit / list / detail)
- review_service: approve / exam details / cancel for institution admins
- explore_service: eligible institutions and units for a student
"""
