"""Data schemas and models for the Minna no Nasu App backend."""

from .common import ApiModel, ErrorResponse, FirestoreDocument
from .user import AuthenticatedUser, UserRole
from .matching import JobPosting, JobSeekerProfile, SearchCriteria

__all__ = [
    "ApiModel",
    "ErrorResponse",
    "FirestoreDocument",
    "AuthenticatedUser",
    "UserRole",
    "JobPosting",
    "JobSeekerProfile",
    "SearchCriteria",
]
