from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class TimestampMixin:
    """Adds created_at and updated_at timestamps to models"""
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, onupdate=TimezoneUtils.utc_now, nullable=False)


class ScopedModelMixin:
    @declared_attr
    def organization_id(cls):
        return db.Column(db.Integer, db.ForeignKey('organization.id'), nullable=False, index=True)
