"""Import API routes."""

import logging
from functools import wraps
from typing import Any, Callable, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ..error_handling import GameImportError, InvalidRequestError
from ..importing import ImportOrchestrator, ImportRequest

logger = logging.getLogger(__name__)

import_blueprint = Blueprint("imports", __name__)


def _orchestrator() -> ImportOrchestrator:
    return current_app.extensions["game_import"]


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def handle_api_errors(func: Callable) -> Callable:
    """Turn importer errors into ``{"success": false, "error": ...}`` JSON responses."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GameImportError as exc:
            level = logging.WARNING if exc.status_code < 500 else logging.ERROR
            logger.log(level, f"{request.path} failed ({exc.status_code}): {exc.message}")
            return jsonify({"success": False, "error": exc.message}), exc.status_code
        except ValidationError as exc:
            message = _validation_message(exc)
            logger.warning(f"{request.path} rejected: {message}")
            return jsonify({"success": False, "error": message}), 400
        except HTTPException as exc:
            return jsonify({"success": False, "error": exc.description or str(exc)}), exc.code or 500
        except Exception as exc:
            logger.exception(f"Unhandled error on {request.path}: {exc}")
            return jsonify({"success": False, "error": "Internal server error"}), 500

    return wrapper


@import_blueprint.route("/bulk-import", methods=["POST"])
@handle_api_errors
def bulk_import():
    orchestrator = _orchestrator()
    user_id = orchestrator.authorize(request.headers.get("Authorization"))
    import_request = ImportRequest.model_validate(_json_body())
    result = orchestrator.execute(import_request, user_id)
    return jsonify(result.to_dict())


@import_blueprint.route("/game-import", methods=["POST"])
@handle_api_errors
def game_import():
    orchestrator = _orchestrator()
    user_id = orchestrator.authorize(request.headers.get("Authorization"))
    import_request = ImportRequest.single_url(_json_body())
    result = orchestrator.execute(import_request, user_id)
    return jsonify(result.to_dict())


@import_blueprint.route("/bgg-lookup", methods=["POST"])
@handle_api_errors
def bgg_lookup():
    body = _json_body()
    url_or_id = body.get("url") or body.get("bgg_id")
    if not url_or_id or not isinstance(url_or_id, (str, int)):
        raise InvalidRequestError("url or bgg_id is required")

    lookup = _orchestrator().lookup(str(url_or_id))
    if lookup.is_found:
        return jsonify({"success": True, "data": lookup.value.to_dict()})
    if lookup.is_miss:
        return jsonify({"success": False, "error": lookup.reason}), 404
    return jsonify({"success": False, "error": lookup.reason or "Lookup failed"}), 502
