"""
API route modules for the job-card workflow.

This package contains subrouters for:
- Steps: the pipeline step catalog
- Plans: production plans and their derived progress
- Job cards: creation, step moves, hold/release, transition history
- Quality: QA gate inspections and rejection resolution
- Materials: material requests and fulfillments

Routers are included from jobcard_api.api.main (under the /api/v1 prefix).
"""
