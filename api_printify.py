#!/usr/bin/env python3
"""
Printify API endpoints for the Flask app.
Separated for clarity - import and register with Flask app.
"""

from api_envelope import int_arg, json_body, send_success
from errors import ValidationError
from printify_client import PrintifyClient
from validation import (
    require_fields,
    validate_image_upload,
    validate_product_creation,
    validate_shop_publish,
)
from workflows.product_publishing import ProductPublisher


def _product_ids(body: dict) -> list:
    product_ids = body["productIds"]
    if not isinstance(product_ids, list):
        raise ValidationError("productIds must be a list")
    return [str(pid) for pid in product_ids]


def register_printify_routes(app, printify: PrintifyClient, publisher: ProductPublisher):
    """Register Printify proxy routes with Flask app."""

    @app.route('/api/printify/upload-image-base64', methods=['POST'])
    def upload_image():
        """
        Upload a base64 data URL image.

        Body:
            imageData: data:image/...;base64,...
            filename: file name to store
        """
        body = json_body()
        validate_image_upload(body)
        result = printify.upload_image(body["imageData"], body["filename"])
        return send_success(result, "Image uploaded successfully")

    @app.route('/api/printify/create-product', methods=['POST'])
    def create_product():
        """
        Create a product and try to publish it straight away.

        Returns:
            201: created product with published / publishNote fields
        """
        draft = validate_product_creation(json_body())
        product = publisher.create_with_publish(draft)
        return send_success(product, "Product created successfully", 201)

    @app.route('/api/printify/publish-to-shop', methods=['POST'])
    def publish_to_shop():
        body = json_body()
        validate_shop_publish(body)
        result = printify.publish_to_shop(body["productId"], body.get("shopId"))
        return send_success(result, "Product published successfully")

    @app.route('/api/printify/shops', methods=['GET'])
    def get_shops():
        return send_success(printify.get_shops(), "Shops retrieved successfully")

    @app.route('/api/printify/products', methods=['GET'])
    @app.route('/api/printify/products/<shop_id>', methods=['GET'])
    def get_products(shop_id=None):
        """
        List products for a shop (default: configured shop).

        Query params:
            page: page number (default 1)
            limit: page size (default 10)
        """
        products = printify.get_products(shop_id, int_arg("page", 1), int_arg("limit", 10))
        if isinstance(products, dict):
            publisher.cache.refresh(products.get("data") or [])
        return send_success(products, "Products retrieved successfully")

    @app.route('/api/printify/product/<product_id>', methods=['GET'])
    def get_product(product_id):
        return send_success(printify.get_product(product_id), "Product retrieved successfully")

    @app.route('/api/printify/products/<product_id>', methods=['PUT'])
    def update_product(product_id):
        body = json_body()
        if not body:
            raise ValidationError("Request body with fields to update is required")
        return send_success(printify.update_product(product_id, body), "Product updated successfully")

    @app.route('/api/printify/products/<product_id>', methods=['DELETE'])
    def delete_product(product_id):
        printify.delete_product(product_id)
        publisher.cache.remove(product_id)
        return send_success(None, "Product deleted successfully")

    @app.route('/api/printify/products/bulk-delete', methods=['POST'])
    def bulk_delete():
        """
        Delete many products. confirmPhrase must be exactly "DELETE ALL LISTINGS".

        Returns:
            200: {totalRequested, deleted, failed, results}
            400: missing fields or wrong phrase (nothing deleted)
        """
        # Not sanitised: the phrase must match byte for byte
        body = json_body(sanitize=False)
        require_fields(body, ["productIds", "confirmPhrase"])
        summary = publisher.bulk_delete(_product_ids(body), body["confirmPhrase"])
        return send_success(summary.to_dict(), "Bulk delete completed")

    @app.route('/api/printify/products/bulk-publish', methods=['POST'])
    def bulk_publish():
        body = json_body()
        require_fields(body, ["productIds"])
        summary = publisher.bulk_publish(_product_ids(body), body.get("shopId"))
        return send_success(summary.to_dict(), "Bulk publish completed")

    @app.route('/api/printify/blueprints', methods=['GET'])
    def get_blueprints():
        return send_success(printify.get_blueprints(), "Blueprints retrieved successfully")

    @app.route('/api/printify/blueprints/<int:blueprint_id>/print-providers', methods=['GET'])
    def get_print_providers(blueprint_id):
        return send_success(printify.get_print_providers(blueprint_id), "Print providers retrieved successfully")

    @app.route('/api/printify/blueprints/<int:blueprint_id>/providers/<int:provider_id>/variants', methods=['GET'])
    def get_variants(blueprint_id, provider_id):
        return send_success(printify.get_variants(blueprint_id, provider_id), "Variants retrieved successfully")

    @app.route('/api/printify/health', methods=['GET'])
    def printify_health():
        return send_success(printify.check_health(), "Printify API health check completed")
