# backend/traineedb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- Admin and instructor accounts
- Login (password or emailed one-time code)
- Admin endpoints to manage admins and instructors

Other apps (training, notifications) depend on these models for anything
related to "who is acting" and "who should be told".
"""

from . import models, schemas  # noqa: F401

__all__ = ["models", "schemas"]
