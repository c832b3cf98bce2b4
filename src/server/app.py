"""
Quart application exposing the summarization endpoint.

POST /   forwards {messages, model} to the LLM provider for an authenticated caller
OPTIONS / CORS preflight
"""
import json
import logging
from typing import Any, Dict, Optional

from quart import Quart, jsonify, request
from werkzeug.exceptions import HTTPException

from core.errors import AuthorizationError, ProviderError
from server.auth import AuthServiceVerifier, TokenVerifier, extract_bearer_token
from server.provider import ProviderClient
from services.config import Config

logger = logging.getLogger(__name__)

NO_STORE = "no-store, no-cache, must-revalidate, private"


def cors_headers(origin: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, accept",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": "86400",
    }


def create_app(
    config: Config,
    verifier: Optional[TokenVerifier] = None,
    provider: Optional[ProviderClient] = None,
) -> Quart:
    app = Quart(__name__)

    verifier = verifier or AuthServiceVerifier(config.AUTH_URL, config.AUTH_ANON_KEY)
    provider = provider or ProviderClient(config.PROVIDER_API_URL, config.PROVIDER_API_KEY)
    headers = cors_headers(config.ALLOWED_ORIGIN)

    def error_response(message: str, status: int, **extra: Any):
        return jsonify({"error": message, **extra}), status

    @app.after_request
    async def apply_headers(response):
        for key, value in headers.items():
            response.headers[key] = value
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = NO_STORE
        return response

    @app.errorhandler(AuthorizationError)
    async def handle_authorization(error: AuthorizationError):
        logger.warning(f"Rejected request: {error}")
        return error_response(str(error), 401, type="authorization")

    @app.errorhandler(ProviderError)
    async def handle_provider(error: ProviderError):
        return error_response(str(error), 500, type=type(error).__name__)

    @app.errorhandler(Exception)
    async def handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error_response(error.description, error.code)
        logger.exception(f"Summarization endpoint error: {error}")
        return error_response(str(error), 500, type=type(error).__name__)

    @app.route("/", methods=["POST", "OPTIONS"], provide_automatic_options=False)
    async def summarize():
        if request.method == "OPTIONS":
            return "", 204, {"Cache-Control": "no-store"}

        logger.info(f"Handling request: method={request.method} path={request.path}")

        token = extract_bearer_token(request.headers.get("Authorization"))
        await verifier.verify(token)

        text = await request.get_data(as_text=True) or "{}"
        try:
            body = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse request body: {e}")
            return error_response("Invalid JSON in request body", 400, details=str(e))

        if not isinstance(body, dict):
            return error_response("Request body must be a JSON object", 400)

        messages = body.get("messages")
        model = body.get("model")

        if not isinstance(messages, list) or not messages:
            return error_response("Messages array is required", 400)

        if not model:
            return error_response("Model parameter is required", 400)

        data = await provider.complete(messages, model)
        return jsonify(data), 200

    return app
