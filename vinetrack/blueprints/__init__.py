"""Flask blueprints for the production API."""
