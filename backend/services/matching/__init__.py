"""
Provider matching and job dispatch service.

This module handles:
    - Finding verified providers near a job that offer its service
    - Refining straight-line distances with a road-distance estimate
    - Fanning a job out into provider inboxes
"""

from .candidate_finder import Candidate, find_candidates
from .distance import DistanceResult, estimate_distances
from .job_dispatch import DispatchResult, dispatch_job

__all__ = [
    "Candidate",
    "find_candidates",
    "DistanceResult",
    "estimate_distances",
    "DispatchResult",
    "dispatch_job",
]
