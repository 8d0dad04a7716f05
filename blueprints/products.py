from flask import Blueprint, jsonify, current_app

from ledger.catalog import ProductCatalog
from blueprints.helpers import admin_required, json_body


bp = Blueprint("products", __name__, url_prefix="/api/products")


@bp.route("", methods=["GET"])
def list_products():
    products = ProductCatalog.list_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@bp.route("", methods=["POST"])
@admin_required
def add_product():
    product = ProductCatalog.add_product(json_body())
    current_app.logger.info(f"[ADMIN] product {product.id} created")
    return jsonify({"message": "Product created", "product": product.to_dict()}), 201


@bp.route("/<int:product_id>", methods=["PUT"])
@admin_required
def update_product(product_id):
    product = ProductCatalog.update_product(product_id, json_body())
    return jsonify({"message": "Product updated", "product": product.to_dict()}), 200


@bp.route("/<int:product_id>", methods=["DELETE"])
@admin_required
def delete_product(product_id):
    ProductCatalog.delete_product(product_id)
    current_app.logger.info(f"[ADMIN] product {product_id} deleted")
    return jsonify({"message": "Product deleted"}), 200
