"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each aggregate family
(plans/job cards/transitions, QA reports/rejections, material requests).
They never commit; services own the transaction boundary.
"""
