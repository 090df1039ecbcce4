from __future__ import annotations

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, login_manager


def configure_login_manager(app):
    """Attach Flask-Login handlers with API-aware responses."""
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        if _expects_json():
            return jsonify({"success": False, "message": "Authentication required", "errors": {}}), 401
        return "Authentication required", 401

    @login_manager.user_loader
    def load_user(user_id: str):
        from .models import User

        try:
            user = db.session.get(User, int(user_id))
        except (ValueError, TypeError):
            return None
        except SQLAlchemyError:
            _rollback_safely()
            return None

        if not user or not user.is_active:
            return None

        if getattr(user, "organization", None) and user.organization.is_active:
            return user

        return None


def _expects_json() -> bool:
    accepts = request.headers.get("Accept", "")
    content_type = request.headers.get("Content-Type", "")
    return (
        request.is_json
        or request.path.startswith("/api/")
        or "application/json" in accepts
        or "application/json" in content_type
    )


def _rollback_safely() -> None:
    try:
        db.session.rollback()
    except SQLAlchemyError:
        pass
