from flask import Blueprint, jsonify, g

from models import money
from ledger.advice import AdviceClient
from ledger.catalog import ProductCatalog
from ledger.errors import ValidationError
from blueprints.helpers import json_body, login_required_json


bp = Blueprint("advice", __name__, url_prefix="/api/advice")


@bp.route("/product/<int:product_id>", methods=["POST"])
@login_required_json
def analyze_product(product_id):
    product = ProductCatalog.get_product(product_id)
    text, roi = AdviceClient.from_config().analyze_product(product)
    return jsonify({"productId": product.id, "roi": money(roi), "text": text}), 200


@bp.route("", methods=["POST"])
@login_required_json
def financial_advice():
    query = str(json_body().get("query") or "").strip()
    if not query:
        raise ValidationError("query is required")
    if len(query) > 1000:
        raise ValidationError("query is too long")

    text = AdviceClient.from_config().financial_advice(query, money(g.current_user.balance))
    return jsonify({"text": text}), 200
