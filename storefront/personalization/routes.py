import os

from flask import request, jsonify, abort, current_app, send_from_directory
from werkzeug.utils import secure_filename

from storefront import db
from storefront.catalog.models import Product
from storefront.checkout.cart import add_custom_line, refresh_applied_coupon
from storefront.personalization import personalization
from storefront.personalization.calculator import (
    PlacementSelection, default_selections, default_choice,
    unit_price, is_valid, build_custom_line, validate_artwork,
)
from storefront.personalization.storage import save_artwork, file_size


# ── Helpers ───────────────────────────────────────────────────────

def _load(product_id):
    """Active personalisable product and its config, or 404."""
    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        abort(404)
    config = product.personalization_config
    if config is None:
        abort(404)
    return product, config


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_choices(config, data: dict):
    """
    Selections for every configured placement plus chosen size/color.
    Malformed placement entries are skipped and unoffered sizes/colours
    count as not chosen, so a bad payload only makes the result invalid.
    """
    selections = default_selections(config)
    placements = data.get('placements')
    if isinstance(placements, dict):
        for key, raw in placements.items():
            if isinstance(raw, dict):
                selections[key] = PlacementSelection.from_dict(raw)

    size  = data.get('size')
    color = data.get('color')
    if not isinstance(size, str) or size not in config.sizes:
        size = default_choice(config.sizes)
    if not isinstance(color, str) or color not in config.colors:
        color = default_choice(sorted(config.colors))
    return selections, size, color


# ── Quote ─────────────────────────────────────────────────────────

@personalization.route('/<int:product_id>/quote', methods=['POST'])
def quote(product_id):
    """Live price + add-to-cart gate for the configurator."""
    product, config = _load(product_id)
    selections, size, color = _parse_choices(config, _json_body())

    return jsonify(
        unit_price=str(unit_price(product.unit_price, config, selections)),
        is_valid=is_valid(config, selections, size, color),
        is_purchasable=config.is_purchasable,
        size=size,
        color=color,
    )


# ── Artwork upload ────────────────────────────────────────────────

@personalization.route('/<int:product_id>/upload', methods=['POST'])
def upload(product_id):
    """Multipart: file=<artwork>, placement=<placement key>."""
    _, config = _load(product_id)
    placement    = request.form.get('placement', '')
    artwork_file = request.files.get('file')

    if placement not in config.placements or not config.placements[placement].enabled:
        return jsonify(error=f'Unknown placement "{placement}".'), 400
    if artwork_file is None or not artwork_file.filename:
        return jsonify(error='Please choose a file to upload.'), 400

    errors = validate_artwork(artwork_file.filename, file_size(artwork_file), config)
    if errors:
        return jsonify(error=' '.join(errors.values()), errors=errors), 400

    try:
        url = save_artwork(artwork_file, product_id, placement)
    except OSError as exc:
        current_app.logger.error(f"Artwork upload failed for product {product_id}: {exc}")
        return jsonify(error='Upload failed. Please try again.'), 500

    return jsonify(placement=placement, url=url), 201


@personalization.route('/uploads/<int:product_id>/<path:filename>')
def artwork(product_id, filename):
    folder = os.path.join(current_app.config['UPLOAD_FOLDER'], str(product_id))
    return send_from_directory(folder, secure_filename(filename))


# ── Add to cart ───────────────────────────────────────────────────

@personalization.route('/<int:product_id>/add-to-cart', methods=['POST'])
def add_to_cart(product_id):
    product, config = _load(product_id)
    data = _json_body()
    selections, size, color = _parse_choices(config, data)

    if not config.is_purchasable:
        return jsonify(error=f'"{product.name}" is not available for personalisation yet.'), 400
    if not is_valid(config, selections, size, color):
        return jsonify(error='Choose size and colour, and add a print type and artwork '
                             'for every selected placement.'), 400

    try:
        quantity = max(int(data.get('quantity', 1)), 1)
    except (TypeError, ValueError):
        quantity = 1

    line = build_custom_line(
        product.id, product.name, product.unit_price, config, selections,
        size=size, color=color, quantity=quantity, note=str(data.get('note') or '').strip(),
    )
    item_id = add_custom_line(line, size or 'OS')
    refresh_applied_coupon()

    current_app.logger.info(
        f"Custom {product.name} added: unit {line.unit_price} "
        f"(base {line.base_price_unit} + custom {line.customization_cost_unit})"
    )
    return jsonify(item_id=item_id, unit_price=str(line.unit_price)), 201
