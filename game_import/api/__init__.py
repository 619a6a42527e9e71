"""
HTTP surface for the importer.
"""

from typing import Optional

from flask import Flask

from ..importing import ImportOrchestrator, create_orchestrator
from .routes import import_blueprint


def create_app(orchestrator: Optional[ImportOrchestrator] = None) -> Flask:
    """Build the Flask app. Without an orchestrator one is wired from the environment."""
    app = Flask(__name__)
    app.extensions["game_import"] = orchestrator or create_orchestrator()
    app.register_blueprint(import_blueprint)
    return app


__all__ = ["create_app", "import_blueprint"]
