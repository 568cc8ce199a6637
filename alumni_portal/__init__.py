"""
Alumni Placement Portal
Job listings and applications for alumni, gated by the placement policy.

Architecture:
- PostgreSQL: alumni, courses, companies, jobs, applications
- services/eligibility.py: who may apply to which job
"""

__version__ = "1.0.0"
