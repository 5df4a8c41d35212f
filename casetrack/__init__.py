"""
Case & Report Tracker Flask Application

A JSON API for legal staff tracking criminal cases and incident reports
through their workflow stages, with deadline warnings and export.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional

from flask import Flask, current_app

from casetrack.config.settings import Config
from casetrack.services.auth_service import AuthService, InMemoryUserDirectory, PostgresUserDirectory
from casetrack.services.database import DatabaseConnection
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.services.persistence import PersistenceWriter, build_collection_store
from casetrack.services.prosecutor_service import (
    PostgresProsecutorProvider,
    ProsecutorProvider,
    StaticProsecutorProvider,
)
from casetrack.services.workspace import WorkspaceRegistry
from casetrack.utils.logging_config import get_logger, setup_flask_logging
from casetrack.utils.security import SecurityMiddleware

EXTENSION_KEY = "casetrack"


@dataclass
class AppServices:
    """Collaborators shared by every request, owned by one app instance"""

    evaluator: DeadlineEvaluator
    writer: PersistenceWriter
    workspaces: WorkspaceRegistry
    prosecutors: ProsecutorProvider
    auth: AuthService
    db_connection: Optional[DatabaseConnection] = None


def _load_prosecutor_seed(path: str):
    if not path:
        return []
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def build_services(config_class) -> AppServices:
    logger = get_logger("app.init")

    db_connection = None
    if config_class.uses_database():
        db_connection = DatabaseConnection(**config_class.get_database_config())
        if db_connection.test_connection():
            logger.info(
                "Database connection established successfully",
                extra={"event": "database_init_success", "host": config_class.DB_HOST, "port": config_class.DB_PORT},
            )
        else:
            logger.warning(
                "Database unreachable at startup, remote backends will fall back",
                extra={"event": "database_init_failed", "host": config_class.DB_HOST, "port": config_class.DB_PORT},
            )

    evaluator = DeadlineEvaluator(
        warning_days=config_class.DEADLINE_WARNING_DAYS, overdue_days=config_class.REPORT_OVERDUE_DAYS
    )
    store = build_collection_store(config_class.PERSISTENCE_BACKENDS, config_class.STORAGE_DIR, db_connection)
    writer = PersistenceWriter(store, async_mode=config_class.PERSIST_ASYNC)

    if config_class.PROSECUTOR_BACKEND == "postgres" and db_connection is not None:
        prosecutors: ProsecutorProvider = PostgresProsecutorProvider(db_connection)
    else:
        prosecutors = StaticProsecutorProvider(_load_prosecutor_seed(config_class.PROSECUTORS_FILE))

    if config_class.AUTH_BACKEND == "postgres" and db_connection is not None:
        directory = PostgresUserDirectory(db_connection)
    else:
        directory = InMemoryUserDirectory()

    logger.info(
        "Services initialized",
        extra={
            "event": "services_init",
            "persistence_backends": store.backend_names,
            "persist_async": config_class.PERSIST_ASYNC,
            "prosecutor_backend": prosecutors.backend,
            "auth_backend": type(directory).__name__,
        },
    )

    return AppServices(
        evaluator=evaluator,
        writer=writer,
        workspaces=WorkspaceRegistry(writer, evaluator),
        prosecutors=prosecutors,
        auth=AuthService(directory),
        db_connection=db_connection,
    )


def create_app(config_class=Config):
    """Application factory pattern for creating Flask app instances"""
    app = Flask(__name__)

    # Load configuration
    try:
        config_class.validate_config()
        app.config.from_object(config_class)
        app.secret_key = config_class.SECRET_KEY
    except ValueError as e:
        # Set up basic logging first for error reporting
        setup_flask_logging(app)
        logger = get_logger("app.config")
        logger.error("Configuration validation failed", extra={"error": str(e), "config_class": config_class.__name__})
        raise

    # Set up structured logging
    setup_flask_logging(app)
    SecurityMiddleware(app)

    if "local" in config_class.PERSISTENCE_BACKENDS:
        os.makedirs(config_class.STORAGE_DIR, exist_ok=True)

    app.extensions[EXTENSION_KEY] = build_services(config_class)

    # Register blueprints
    from casetrack.views.api import api_bp
    from casetrack.views.main import main_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    # Register error handlers
    from casetrack.views.errors import register_error_handlers

    register_error_handlers(app)

    return app


def get_services(app: Optional[Flask] = None) -> AppServices:
    """Services of ``app``, or of the app handling the current request"""
    return (app or current_app).extensions[EXTENSION_KEY]
