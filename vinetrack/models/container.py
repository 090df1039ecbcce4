from __future__ import annotations

from typing import Any, Mapping

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from ..utils.validation_helpers import FieldValidationError, clean_string, coerce_float, coerce_int
from .mixins import ScopedModelMixin, TimestampMixin

CONTAINER_STATUSES = (
    'empty',
    'in_use',
    'cleaning',
    'needs_cip',
    'sanitized',
    'needs_repair',
    'retired',
)

CONTAINER_TYPES = ('barrel', 'tank', 'tote', 'bin', 'ibc', 'other')


class ContainerValidationError(FieldValidationError):
    """Raised when a vessel payload is malformed."""


class ProductionContainer(ScopedModelMixin, TimestampMixin, db.Model):
    """A physical holding vessel: barrel, tank, tote."""
    __tablename__ = 'production_container'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False, default='barrel')
    capacity_gallons = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(32), nullable=False, default='empty', index=True)

    # Barrel usage and maintenance
    total_fills = db.Column(db.Integer, nullable=False, default=0)
    last_topping_date = db.Column(db.Date, nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    last_cip_date = db.Column(db.Date, nullable=True)
    cip_product = db.Column(db.String(128), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.CheckConstraint('total_fills >= 0', name='check_container_fills_non_negative'),
    )

    def __repr__(self):
        return f'<ProductionContainer {self.id}: {self.name} {self.capacity_gallons} gal [{self.status}]>'

    @property
    def capacity(self) -> float:
        return float(self.capacity_gallons or 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'capacity_gallons': self.capacity,
            'status': self.status,
            'total_fills': self.total_fills or 0,
            'last_topping_date': self.last_topping_date.isoformat() if self.last_topping_date else None,
            'purchase_date': self.purchase_date.isoformat() if self.purchase_date else None,
            'last_cip_date': self.last_cip_date.isoformat() if self.last_cip_date else None,
            'cip_product': self.cip_product,
            'notes': self.notes,
        }

    @classmethod
    def clean_fields(cls, fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
        """Validate a vessel create/patch payload."""
        cleaned: dict[str, Any] = {}
        try:
            if 'name' in fields or not partial:
                name = clean_string(fields.get('name'), max_length=200, field='name')
                if not name:
                    raise ContainerValidationError('name', 'is required')
                cleaned['name'] = name

            if 'type' in fields or not partial:
                vessel_type = (clean_string(fields.get('type'), field='type') or 'barrel').lower()
                if vessel_type not in CONTAINER_TYPES:
                    raise ContainerValidationError('type', f"must be one of {', '.join(CONTAINER_TYPES)}")
                cleaned['type'] = vessel_type

            capacity_key = 'capacity_gallons' if 'capacity_gallons' in fields else 'capacity'
            if capacity_key in fields or not partial:
                capacity = coerce_float(
                    fields.get(capacity_key), field='capacity_gallons', minimum=0.0, exclusive_minimum=True
                )
                if capacity is None:
                    raise ContainerValidationError('capacity_gallons', 'is required')
                cleaned['capacity_gallons'] = capacity

            if 'status' in fields or not partial:
                status = clean_string(fields.get('status'), field='status') or 'empty'
                if status not in CONTAINER_STATUSES:
                    raise ContainerValidationError('status', f"must be one of {', '.join(CONTAINER_STATUSES)}")
                cleaned['status'] = status

            if 'total_fills' in fields or not partial:
                fills = coerce_int(fields.get('total_fills'), field='total_fills', minimum=0)
                cleaned['total_fills'] = fills or 0

            for field in ('last_topping_date', 'purchase_date', 'last_cip_date'):
                if field in fields:
                    try:
                        cleaned[field] = TimezoneUtils.as_date(fields.get(field))
                    except ValueError as exc:
                        raise ContainerValidationError(field, str(exc)) from None

            if 'cip_product' in fields:
                cleaned['cip_product'] = clean_string(fields.get('cip_product'), max_length=128, field='cip_product')
            if 'notes' in fields:
                cleaned['notes'] = clean_string(fields.get('notes'), field='notes')
        except ContainerValidationError:
            raise
        except FieldValidationError as exc:
            raise ContainerValidationError(exc.field, exc.message) from None
        return cleaned
