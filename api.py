"""
Alchemy Worker - Flask API server.

Lets a host agent framework discover and call registered worker functions
over HTTP.
Endpoints:
  GET  /health            - Health check
  GET  /functions         - Manifest of registered workers and functions
  POST /functions/<name>  - Invoke a function with a JSON object of arguments
"""

import os

from flask import Flask, jsonify, request

from alchemy_plugin import AlchemyPlugin
from config import AlchemyConfig, get_logger, setup_logging
from worker import FunctionRegistry

logger = get_logger(__name__)

SERVICE_NAME = "Alchemy Worker"


def _error_response(message: str, code: str = "ERROR", status: int = 400):
    """Return graceful JSON error. Consistent structure for AI agents."""
    return jsonify({"error": message, "code": code}), status


def build_registry(config: AlchemyConfig) -> FunctionRegistry:
    """Register every worker this service exposes."""
    registry = FunctionRegistry()
    registry.register_worker(AlchemyPlugin(config=config).get_worker())
    return registry


def create_app(registry: FunctionRegistry) -> Flask:
    app = Flask(__name__)
    # Sort keys so response field order is consistent
    app.json.sort_keys = True

    @app.route("/health", methods=["GET"])
    def health():
        """Health check: returns 200 and status."""
        return jsonify({"status": "ok", "service": SERVICE_NAME})

    @app.route("/functions", methods=["GET"])
    def list_functions():
        return jsonify(registry.manifest())

    @app.route("/functions/<name>", methods=["POST"])
    def invoke_function(name):
        """
        Invoke a registered function.
        Request body (JSON): function arguments, e.g. { "address": "0x...", "limit": "10" }
        Response: { status, feedback, logs }
        200 when the function is done, 422 when it failed.
        """
        if name not in registry:
            return _error_response(f"Unknown function: {name}", "NOT_FOUND", 404)

        if request.content_length and not request.is_json:
            return _error_response("Content-Type must be application/json", "INVALID_INPUT", 400)
        body = request.get_json(silent=True) if request.content_length else {}
        if body is None:
            return _error_response("Invalid JSON body", "INVALID_JSON", 400)
        if not isinstance(body, dict):
            return _error_response("Body must be a JSON object", "INVALID_INPUT", 400)

        logs = []
        result = registry.invoke(name, body, logs.append)
        payload = {**result.to_dict(), "logs": logs}
        return jsonify(payload), (200 if result.ok else 422)

    # --- Global error handlers: consistent JSON for all errors ---
    @app.errorhandler(404)
    def not_found(e):
        return _error_response("Not found", "NOT_FOUND", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error_response("Method not allowed", "METHOD_NOT_ALLOWED", 405)

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Unhandled server error: %s", e)
        return _error_response("Internal server error", "INTERNAL_ERROR", 500)

    return app


def main():
    """Run the Flask app."""
    setup_logging()
    try:
        config = AlchemyConfig.from_env()
    except ValueError as e:
        logger.error("Cannot start: %s", e)
        raise SystemExit(1)

    app = create_app(build_registry(config))

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", "0") == "1"
    # Disable reloader when debugging on Windows to avoid WinError 10038 (socket/reloader conflict)
    use_reloader = debug and os.name != "nt"
    app.run(host=host, port=port, debug=debug, use_reloader=use_reloader)


if __name__ == "__main__":
    main()
