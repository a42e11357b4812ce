"""
base.py — Shared Declarative Base

All ORM models inherit from this Base so relationships between tables
(companies → company_metrics / waste_streams / company_data_templates)
resolve against one metadata object.
"""

import datetime
import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    """Text primary keys (Supabase tables use uuid strings)."""
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
