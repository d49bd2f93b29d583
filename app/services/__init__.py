"""Services layer for ReelForge.

Services implement business logic and orchestrate collaborator calls.
Organized by feature:
- retry: Error classification, backoff and collaborator rate limits
- workflow: Pipeline orchestration, progress and the run launcher
- scheduler: Cadence-based job scheduling and job stores
"""
