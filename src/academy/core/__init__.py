"""Core scheduling logic.

Modules:
- models: Enrollment, curriculum item and content records
- calendar: Civil dates, study days, breaks
- content: Section grouping of wordbook units
- pacing: Daily amounts and per-day content windows
- schedule_resolver: (enrollment, date) -> assignment, re-anchoring
- review: Review ranges and multiple-choice questions
- rewards: Dollar reward rules
- study_session: Study logs around resolved assignments
"""

__all__ = [
    "models",
    "calendar",
    "content",
    "pacing",
    "schedule_resolver",
    "review",
    "rewards",
    "study_session",
]
