#!/usr/bin/env python3
"""
Wave Print Publisher Web API

Backend proxy between the browser and the Printify / Pexels APIs. Keeps the
API credentials server-side, validates and rate-limits requests, and wraps
every answer in the same JSON envelope.
"""

import logging
import re
import sys
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from api_envelope import int_arg, json_body, send_error, send_success
from api_printify import register_printify_routes
from config import Settings
from errors import ApiError, InternalError, ValidationError, utc_timestamp
from image_compositor import STYLES, CompositeOptions, compose
from pexels_client import DEFAULT_QUERY, IMAGES_PER_PAGE, PexelsClient
from printify_client import PrintifyClient
from validation import RateLimiter, require_fields
from workflows.product_publishing import ProductPublisher

RATE_LIMITED_PREFIXES = ("/api/printify", "/api/images")
REMOTE_IMAGE_PATTERN = re.compile(r"^(https?://|data:image/[a-z+]+;base64,)", re.IGNORECASE)
MAX_PEXELS_PER_PAGE = 80

ENDPOINTS = {
    "GET /health": "Server health",
    "GET /api/docs": "This list",
    "POST /api/printify/upload-image-base64": "Upload a base64 data URL image",
    "POST /api/printify/create-product": "Create a product and auto-publish it",
    "POST /api/printify/publish-to-shop": "Publish a product to a shop",
    "GET /api/printify/shops": "List shops",
    "GET /api/printify/products[/<shop_id>]": "List products (page, limit)",
    "GET /api/printify/product/<product_id>": "Get one product",
    "PUT /api/printify/products/<product_id>": "Update a product",
    "DELETE /api/printify/products/<product_id>": "Delete a product",
    "POST /api/printify/products/bulk-delete": "Delete many products (confirmPhrase required)",
    "POST /api/printify/products/bulk-publish": "Publish many products",
    "GET /api/printify/blueprints": "List catalog blueprints",
    "GET /api/printify/blueprints/<id>/print-providers": "List print providers for a blueprint",
    "GET /api/printify/blueprints/<id>/providers/<pid>/variants": "List variants",
    "GET /api/printify/health": "Printify connection check",
    "GET /api/pexels/search": "Search stock photos (query, per_page, page)",
    "POST /api/images/process": "Composite a caption onto an image",
}


def create_app(
    settings: Settings = None,
    printify: PrintifyClient = None,
    pexels: PexelsClient = None,
    rate_limiter: RateLimiter = None,
    publisher: ProductPublisher = None,
) -> Flask:
    """
    Build the Flask app. Collaborators not passed in are built from settings.
    """
    settings = settings or Settings.from_env()
    printify = printify or PrintifyClient.from_settings(settings)
    pexels = pexels or PexelsClient(settings.pexels_api_key)
    rate_limiter = rate_limiter or RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window)
    publisher = publisher or ProductPublisher(printify)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings

    # Browser front ends on the allowed origins only
    CORS(app, origins=settings.allowed_origins, supports_credentials=True,
         expose_headers=["X-Request-ID", "Retry-After"])

    @app.before_request
    def start_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        if request.path.startswith(RATE_LIMITED_PREFIXES) and request.method != "OPTIONS":
            rate_limiter.check(request.remote_addr or "unknown")

    @app.after_request
    def finish_request(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers["X-Request-ID"] = request_id

        logging.info("%s %s %d %s", request.method, request.path, response.status_code, request_id)
        return response

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logging.error("%s %s failed: %s", request.method, request.path, error.message)
        return send_error(error, include_stack=not settings.is_production)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 404:
            message = f"Route {request.method} {request.path} not found"
        else:
            message = error.description
        return send_error(ApiError(message, status_code=error.code))

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logging.exception("Unhandled error on %s %s", request.method, request.path)
        message = "Internal server error" if settings.is_production else str(error)
        internal = InternalError(message).with_traceback(error.__traceback__)
        return send_error(internal, include_stack=not settings.is_production)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            "status": "healthy",
            "timestamp": utc_timestamp(),
            "environment": settings.environment,
            "version": settings.version,
        })

    @app.route('/api/docs', methods=['GET'])
    def docs():
        return send_success({"version": settings.version, "endpoints": ENDPOINTS}, "API documentation")

    @app.route('/api/pexels/search', methods=['GET'])
    def pexels_search():
        query = (request.args.get("query") or DEFAULT_QUERY).strip()
        per_page = min(int_arg("per_page", IMAGES_PER_PAGE), MAX_PEXELS_PER_PAGE)
        page = int_arg("page", 1)
        return send_success(pexels.search_raw(query, page, per_page), "Images retrieved successfully")

    @app.route('/api/images/process', methods=['POST'])
    def process_image():
        """
        Composite a caption onto an image server-side.

        Body:
            imageUrl: http(s) or data URL
            caption: caption text
            width, height: optional canvas size (both = print path)
            style: print_ready | preview_gold | preview_yellow
        """
        body = json_body()
        require_fields(body, ["imageUrl", "caption"])

        # Local paths are for the command line only
        image_url = body["imageUrl"]
        if not isinstance(image_url, str) or not REMOTE_IMAGE_PATTERN.match(image_url):
            raise ValidationError("imageUrl must be an http(s) URL or a base64 image data URL")

        style = body.get("style") or "print_ready"
        if style not in STYLES:
            raise ValidationError(f"Unknown style '{style}'. Choose from: {', '.join(STYLES)}")

        width, height = body.get("width"), body.get("height")
        for name, value in (("width", width), ("height", height)):
            if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
                raise ValidationError(f"{name} must be a positive integer")

        result = compose(image_url, body["caption"], CompositeOptions(width, height), style=style)
        return send_success(result.to_dict(), "Image processed")

    register_printify_routes(app, printify, publisher)
    return app


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    settings = Settings.from_env()
    settings.warn_missing_credentials()

    app = create_app(settings)

    # 0.0.0.0 when deployed, loopback for local use
    host = '0.0.0.0' if settings.is_production else '127.0.0.1'
    logging.info("Wave Print Publisher API %s starting on http://%s:%d (%s)",
                 settings.version, host, settings.port, settings.environment)
    app.run(host=host, port=settings.port, debug=False, threaded=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
