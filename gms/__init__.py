"""Application factory for Game Master Support."""

from __future__ import annotations

import os

from flask import Flask

from gms.auth import init_auth
from gms.blueprints.auth import auth_bp
from gms.blueprints.common.tenant import init_tenant
from gms.blueprints.games import games_bp
from gms.blueprints.hints import hints_bp
from gms.blueprints.maintenance import maintenance_bp
from gms.blueprints.puzzle_images import puzzle_images_bp
from gms.blueprints.puzzles import puzzles_bp
from gms.blueprints.reports import reports_bp
from gms.blueprints.uploads import uploads_bp
from gms.blueprints.workspaces import workspaces_bp
from gms.config import Config
from gms.errors import init_error_handlers
from gms.extensions import (
    db,
    migrate,
    csrf,
    limiter,
)
from gms.security.config import configure_security_headers, validate_input_length
from gms.services.db import close_db, ensure_core_tables
from gms.services.email import init_mailer
from gms.services.queue import init_queue
from gms.services.storage import init_storage

API_BLUEPRINTS = (
    (auth_bp, '/api/auth'),
    (workspaces_bp, '/api/workspaces'),
    (games_bp, '/api/games'),
    (puzzles_bp, '/api/puzzles'),
    (hints_bp, '/api/hints'),
    (maintenance_bp, '/api/maintenance'),
    (reports_bp, '/api/reports'),
    (puzzle_images_bp, '/api/puzzle-images'),
    (uploads_bp, '/api/uploads'),
)


def create_app(config_class=Config):
    """Create Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)
    init_auth(app)
    init_tenant(app)
    init_error_handlers(app)
    init_mailer(app)
    init_queue(app)
    init_storage(app)

    # Ensure models are registered for migrations
    import gms.models  # noqa: F401

    # Safety net for development databases without migrations
    if os.getenv('GMS_SKIP_BOOTSTRAP', '0') != '1':
        with app.app_context():
            ensure_core_tables()

    # Configure security
    configure_security_headers(app)
    validate_input_length(app)

    # Register blueprints; the JSON API authenticates with bearer tokens, not cookies
    for blueprint, prefix in API_BLUEPRINTS:
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint, url_prefix=prefix)

    @app.teardown_appcontext
    def teardown_db(exception):
        close_db()

    # Register CLI commands
    from gms.commands import register_commands
    register_commands(app)

    return app
