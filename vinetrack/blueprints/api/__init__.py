from flask import Blueprint

production_api_bp = Blueprint('production_api', __name__, url_prefix='/api/production')

# Import all route modules to register them
from . import lot_routes  # noqa: E402,F401
from . import container_routes  # noqa: E402,F401
from . import maintenance_routes  # noqa: E402,F401
