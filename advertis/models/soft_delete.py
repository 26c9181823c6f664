"""
Side-status mixin for strategies.

Adds ``archived_at`` and ``deleted_at`` timestamps. Both are orthogonal to the
pipeline phase: archiving or deleting a strategy never moves its phase, and
restoring it puts it back exactly where it was.

Usage:
    class Strategy(SideStatusMixin, db.Model):
        ...

    strategy.archive()
    Strategy.query_active().filter_by(user_id=uid).all()
"""

from datetime import datetime, timezone

from advertis.models import db


class SideStatusMixin:
    """Mixin that adds archive + soft delete support to a model."""

    archived_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def archive(self):
        self.archived_at = datetime.now(timezone.utc)

    def soft_delete(self):
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        """Clear both side statuses."""
        self.archived_at = None
        self.deleted_at = None

    @property
    def is_archived(self):
        return self.archived_at is not None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def side_status(self):
        if self.is_deleted:
            return "deleted"
        if self.is_archived:
            return "archived"
        return "active"

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))
