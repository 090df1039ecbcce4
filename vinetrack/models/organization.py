from flask_login import UserMixin

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class Organization(db.Model):
    __tablename__ = 'organization'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    contact_email = db.Column(db.String(256))
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # free, professional, estate, enterprise
    subscription_tier = db.Column(db.String(32), nullable=False, default='free')

    users = db.relationship('User', backref='organization', lazy='dynamic')

    def __repr__(self):
        return f'<Organization {self.id}: {self.name} ({self.subscription_tier})>'


class User(UserMixin, db.Model):
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), nullable=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organization.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)

    def __repr__(self):
        return f'<User {self.id}: {self.username}>'
