"""
Udyog Jagat API
Multi-role job board backend (admin, job poster, job seeker, referrer).

Architecture:
- MongoDB: user, referrer and access-code documents; resumes in GridFS
- FastAPI: REST endpoints with JWT bearer authentication
"""

__version__ = "1.0.0"
