"""
TMV Business Platform
Recruitment and business-services backend.

Architecture:
- MySQL (SQLite in tests): users, jobs, applications, tasks, orders, payments
- Local disk: uploaded documents (CVs, company papers, project plans)
- Yoco: hosted card checkout, confirmed by webhook
"""

__version__ = "1.0.0"
