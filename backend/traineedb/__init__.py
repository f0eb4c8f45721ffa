# backend/traineedb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in traineedb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models              # admins / instructors
from .apps.training import models as training_models              # trainees, projects, reviews, documents
from .apps.notifications import models as notifications_models    # in-app notifications + email log
from .apps.audit import models as audit_models                    # workflow audit trail

__all__ = [
    "accounts_models",
    "training_models",
    "notifications_models",
    "audit_models",
]
