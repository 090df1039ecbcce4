from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import ScopedModelMixin

VESSEL_EVENT_TYPES = (
    'lot_assigned',
    'lot_removed',
    'cip',
    'maintenance',
    'repair',
    'topping',
    'status_change',
)


class VesselHistoryEvent(ScopedModelMixin, db.Model):
    """
    Append-only audit record of what happened to a vessel.
    A ``lot_assigned`` row is the allocation record for one vessel split.
    """
    __tablename__ = 'vessel_history'

    id = db.Column(db.Integer, primary_key=True)
    container_id = db.Column(db.Integer, db.ForeignKey('production_container.id'), nullable=False, index=True)
    lot_id = db.Column(db.Integer, db.ForeignKey('production_lot.id'), nullable=True, index=True)
    event_type = db.Column(db.String(32), nullable=False)

    volume_before = db.Column(db.Float, nullable=True)
    volume_after = db.Column(db.Float, nullable=True)
    volume_change = db.Column(db.Float, nullable=True)

    cip_product = db.Column(db.String(128), nullable=True)
    maintenance_type = db.Column(db.String(64), nullable=True)
    cost = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    performed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    event_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now, index=True)

    container = db.relationship('ProductionContainer', backref=db.backref('history_events', lazy='dynamic'))
    lot = db.relationship('ProductionLot')

    def __repr__(self):
        return f'<VesselHistoryEvent {self.id}: {self.event_type} container={self.container_id} lot={self.lot_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'container_id': self.container_id,
            'lot_id': self.lot_id,
            'event_type': self.event_type,
            'volume_before': self.volume_before,
            'volume_after': self.volume_after,
            'volume_change': self.volume_change,
            'cip_product': self.cip_product,
            'maintenance_type': self.maintenance_type,
            'cost': self.cost,
            'notes': self.notes,
            'performed_by': self.performed_by,
            'event_date': self.event_date.isoformat() if self.event_date else None,
        }
