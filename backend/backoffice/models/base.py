from __future__ import annotations

from ..extensions import db


class TimestampMixin:
    """
    created_at / updated_at columns.

    Values are written by the unit-of-work flush hook
    (services/unit_of_work.py), never by column defaults, so every code path
    that flushes through the session is stamped the same way.
    """
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)
