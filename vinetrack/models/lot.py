from __future__ import annotations

from typing import Any, Mapping

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from ..utils.validation_helpers import FieldValidationError, clean_string, coerce_float, coerce_int
from .mixins import ScopedModelMixin, TimestampMixin

LOT_STATUSES = (
    'planning',
    'harvested',
    'crushing',
    'fermenting',
    'pressed',
    'aging',
    'blending',
    'ready_to_bottle',
    'bottled',
)

CHEMISTRY_FIELDS = ('ph', 'ta', 'so2', 'va', 'alcohol')

# Copied from a parent onto each child lot created by a vessel split
LINEAGE_FIELDS = (
    'varietal',
    'appellation',
    'vintage',
    'block_id',
    'harvest_date',
    'press_date',
    'yeast_strain',
)


class LotValidationError(FieldValidationError):
    """Raised when a lot payload is malformed."""


class ProductionLot(ScopedModelMixin, TimestampMixin, db.Model):
    """A tracked quantity of wine at one production stage."""
    __tablename__ = 'production_lot'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(32), nullable=False, default='planning', index=True)
    volume_gallons = db.Column(db.Float, nullable=False, default=0.0)

    # Chemistry snapshot
    ph = db.Column(db.Float, nullable=True)
    ta = db.Column(db.Float, nullable=True)
    so2 = db.Column(db.Float, nullable=True)
    va = db.Column(db.Float, nullable=True)
    alcohol = db.Column(db.Float, nullable=True)

    # Lineage
    parent_lot_id = db.Column(db.Integer, db.ForeignKey('production_lot.id'), nullable=True, index=True)
    container_id = db.Column(db.Integer, db.ForeignKey('production_container.id'), nullable=True, index=True)

    vintage = db.Column(db.Integer, nullable=True)
    varietal = db.Column(db.String(128), nullable=True)
    appellation = db.Column(db.String(128), nullable=True)
    block_id = db.Column(db.Integer, nullable=True)
    harvest_date = db.Column(db.Date, nullable=True)
    press_date = db.Column(db.Date, nullable=True)
    yeast_strain = db.Column(db.String(128), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    archived_at = db.Column(db.DateTime, nullable=True)

    parent = db.relationship('ProductionLot', remote_side=[id], backref='children')
    container = db.relationship('ProductionContainer', backref='lots')

    __table_args__ = (
        db.CheckConstraint('volume_gallons >= 0', name='check_lot_volume_non_negative'),
    )

    def __repr__(self):
        return f'<ProductionLot {self.id}: {self.name} {self.volume_gallons} gal [{self.status}]>'

    @property
    def volume(self) -> float:
        return float(self.volume_gallons or 0.0)

    def chemistry_snapshot(self) -> dict[str, float | None]:
        return {field: getattr(self, field) for field in CHEMISTRY_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'volume_gallons': self.volume,
            'chemistry': self.chemistry_snapshot(),
            'parent_lot_id': self.parent_lot_id,
            'container_id': self.container_id,
            'vintage': self.vintage,
            'varietal': self.varietal,
            'appellation': self.appellation,
            'block_id': self.block_id,
            'harvest_date': self.harvest_date.isoformat() if self.harvest_date else None,
            'press_date': self.press_date.isoformat() if self.press_date else None,
            'yeast_strain': self.yeast_strain,
            'notes': self.notes,
            'archived_at': self.archived_at.isoformat() if self.archived_at else None,
        }

    @classmethod
    def clean_fields(cls, fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
        """Validate a create/patch payload and return column-ready values.

        With ``partial`` only the keys present are validated; otherwise ``name``
        is required and defaults are filled in.
        """
        cleaned: dict[str, Any] = {}
        try:
            if 'name' in fields or not partial:
                name = clean_string(fields.get('name'), max_length=200, field='name')
                if not name:
                    raise LotValidationError('name', 'is required')
                cleaned['name'] = name

            if 'status' in fields or not partial:
                status = clean_string(fields.get('status'), field='status') or 'planning'
                if status not in LOT_STATUSES:
                    raise LotValidationError('status', f"must be one of {', '.join(LOT_STATUSES)}")
                cleaned['status'] = status

            volume_key = 'volume_gallons' if 'volume_gallons' in fields else 'volume'
            if volume_key in fields or not partial:
                volume = coerce_float(fields.get(volume_key), field='volume_gallons', minimum=0.0)
                cleaned['volume_gallons'] = volume if volume is not None else 0.0

            for field in CHEMISTRY_FIELDS:
                if field in fields:
                    cleaned[field] = coerce_float(fields.get(field), field=field, minimum=0.0)

            for field in ('parent_lot_id', 'container_id', 'block_id'):
                if field in fields:
                    cleaned[field] = coerce_int(fields.get(field), field=field, minimum=1)

            if 'vintage' in fields:
                cleaned['vintage'] = coerce_int(fields.get('vintage'), field='vintage', minimum=1800)

            for field in ('varietal', 'appellation', 'yeast_strain'):
                if field in fields:
                    cleaned[field] = clean_string(fields.get(field), max_length=128, field=field)

            for field in ('harvest_date', 'press_date'):
                if field in fields:
                    try:
                        cleaned[field] = TimezoneUtils.as_date(fields.get(field))
                    except ValueError as exc:
                        raise LotValidationError(field, str(exc)) from None

            if 'notes' in fields:
                cleaned['notes'] = clean_string(fields.get('notes'), field='notes')
        except LotValidationError:
            raise
        except FieldValidationError as exc:
            raise LotValidationError(exc.field, exc.message) from None
        return cleaned
