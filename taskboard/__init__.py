import os
import logging

import click
from werkzeug.security import generate_password_hash

from flask import Flask

from taskboard.config import config_by_name
from taskboard.extensions import db, migrate, login_manager, limiter, socketio


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config["CORS_ALLOWED_ORIGINS"],
        message_queue=app.config["SOCKETIO_MESSAGE_QUEUE"],
    )

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from taskboard import models  # noqa: F401

    # --- Realtime: hub transport + socket event handlers ---
    from taskboard.realtime.broadcaster import init_broadcaster
    from taskboard.realtime import handlers  # noqa: F401
    init_broadcaster(app)

    # --- Register blueprints ---
    from taskboard.blueprints.auth import auth_bp
    from taskboard.blueprints.workspaces import workspaces_bp
    from taskboard.blueprints.boards import boards_bp
    from taskboard.blueprints.lists import lists_bp
    from taskboard.blueprints.cards import cards_bp
    from taskboard.blueprints.users import users_bp
    from taskboard.blueprints.health import health_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(workspaces_bp)
    app.register_blueprint(boards_bp)
    app.register_blueprint(lists_bp)
    app.register_blueprint(cards_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(health_bp)

    # --- Error handlers ---
    from taskboard.errors import register_error_handlers
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON API: nothing to render, nothing to load
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        # HSTS (only in production -- don't break local dev)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--email", default="demo@taskboard.local", help="Demo user email")
    @click.option("--password", default="demo1234", help="Demo user password")
    def seed_demo(email, password):
        """Create a demo user, workspace and board with a few cards.

        Usage:
            flask seed-demo
            flask seed-demo --email me@example.com --password s3cret
        """
        from taskboard.models.user import User
        from taskboard.services import board_service, card_service, workspace_service
        from taskboard.services import store

        # --- 1. Demo user ---
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"Demo user already exists: {email}")
        else:
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                name="Demo User",
            )
            db.session.add(user)
            db.session.commit()
            click.echo(f"Created demo user: {email}")

        # --- 2. Workspace + board (default lists) ---
        workspace = workspace_service.create_workspace(user, "Demo Workspace")
        board = board_service.create_board(user, workspace.id, "Product Launch")
        click.echo(f"Created board: {board.title} ({board.id})")

        # --- 3. A few cards in the first list ---
        first_list = store.live_lists(board.id)[0]
        for title in ["Write release notes", "Update landing page", "Plan launch call"]:
            card_service.create_card(user, first_list.id, title)

        click.echo("")
        click.echo("=" * 60)
        click.echo("Demo data ready!")
        click.echo("=" * 60)
        click.echo(f"  Login:  {email} / {password}")
        click.echo(f"  Board:  /api/boards/{board.id}")
        click.echo("=" * 60)

    @app.cli.command("rebalance-board")
    @click.argument("board_id")
    def rebalance_board(board_id):
        """Re-space every list and card position on a board.

        Usage:
            flask rebalance-board <board_id>
        """
        from taskboard.errors import NotFound
        from taskboard.services import board_service

        try:
            count = board_service.rebalance_board(board_id)
        except NotFound:
            click.echo(f"ERROR: board {board_id} not found.")
            return
        click.echo(f"Rebalanced {count} lists and cards on board {board_id}.")
