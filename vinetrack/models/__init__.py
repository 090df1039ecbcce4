"""Models package - imports all models for the application"""
from ..extensions import db
from .mixins import ScopedModelMixin, TimestampMixin

# Import in dependency order for table creation
from .organization import Organization, User
from .container import (
    CONTAINER_STATUSES,
    CONTAINER_TYPES,
    ContainerValidationError,
    ProductionContainer,
)
from .lot import (
    CHEMISTRY_FIELDS,
    LINEAGE_FIELDS,
    LOT_STATUSES,
    LotValidationError,
    ProductionLot,
)
from .vessel_history import VESSEL_EVENT_TYPES, VesselHistoryEvent

__all__ = [
    'db',
    'ScopedModelMixin',
    'TimestampMixin',
    'Organization',
    'User',
    'CONTAINER_STATUSES',
    'CONTAINER_TYPES',
    'ContainerValidationError',
    'ProductionContainer',
    'CHEMISTRY_FIELDS',
    'LINEAGE_FIELDS',
    'LOT_STATUSES',
    'LotValidationError',
    'ProductionLot',
    'VESSEL_EVENT_TYPES',
    'VesselHistoryEvent',
]
