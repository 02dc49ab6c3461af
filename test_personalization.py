"""
test_personalization.py — Tests for personalised product pricing.
Run: pytest test_personalization.py -v
"""
import io
import json
from dataclasses import replace
from decimal import Decimal

import pytest

from storefront import create_app, db
from storefront.catalog.models import Product
from storefront.checkout.engine import StoreSettings, compute_totals
from storefront.personalization.calculator import (
    PersonalizationConfig, PlacementSelection, default_selections, default_choice,
    unit_price, is_valid, build_custom_line, validate_artwork,
)


CONFIG_DATA = {
    'enabled': True,
    'colors':  ['White', 'Black'],
    'sizes':   ['S', 'M', 'L'],
    'print_types': {
        'DTG Printing': {'enabled': True,  'price': 150},
        'Embroidery':   {'enabled': False, 'price': 250},
    },
    'placements': {
        'Front': {'enabled': True, 'price': 100, 'max_width': 12, 'max_height': 16},
        'Back':  {'enabled': True, 'price': 120, 'max_width': 14, 'max_height': 18},
    },
}

ART = 'https://cdn.example.com/art/front.png'


@pytest.fixture
def config():
    return PersonalizationConfig.from_dict(CONFIG_DATA)


def front(**kwargs):
    values = dict(enabled=True, print_type='DTG Printing', uploaded_image=ART)
    values.update(kwargs)
    return PlacementSelection(**values)


# ── 1. Config loading ─────────────────────────────────────────────

def test_missing_rates_default_to_12_and_18(config):
    assert config.gst_percent == Decimal('12')
    assert config.print_gst_percent == Decimal('18')


def test_explicit_rates_are_kept():
    cfg = PersonalizationConfig.from_dict({**CONFIG_DATA, 'gst_percent': 5, 'print_gst_percent': 0})
    assert cfg.gst_percent == Decimal('5')
    assert cfg.print_gst_percent == Decimal('0')


def test_purchasable_needs_enabled_print_type_and_placement(config):
    assert config.is_purchasable is True

    no_print = json.loads(json.dumps(CONFIG_DATA))
    no_print['print_types']['DTG Printing']['enabled'] = False
    assert PersonalizationConfig.from_dict(no_print).is_purchasable is False

    no_placement = {**CONFIG_DATA, 'placements': {}}
    assert PersonalizationConfig.from_dict(no_placement).is_purchasable is False


def test_default_selections_are_all_off(config):
    selections = default_selections(config)
    assert set(selections) == {'Front', 'Back'}
    assert not any(s.enabled for s in selections.values())


def test_default_choice_only_for_single_option():
    assert default_choice(['OS']) == 'OS'
    assert default_choice(['S', 'M']) is None
    assert default_choice([]) is None


# ── 2. Unit price ─────────────────────────────────────────────────

def test_unit_price_adds_placement_and_print_type(config):
    selections = {'Front': front(), 'Back': PlacementSelection()}
    # 500 + Front 100 + DTG 150
    assert unit_price(Decimal('500'), config, selections) == Decimal('750')


def test_two_placements_each_add_their_costs(config):
    selections = {'Front': front(), 'Back': front(print_type='Embroidery')}
    # 500 + (100 + 150) + (120 + 250)
    assert unit_price(Decimal('500'), config, selections) == Decimal('1120')


def test_unknown_keys_add_nothing(config):
    selections = {
        'Sleeve': front(),                       # unknown placement → print type only
        'Front':  front(print_type='Screen'),    # unknown print type → placement only
    }
    assert unit_price(Decimal('500'), config, selections) == Decimal('750')


def test_disabled_selection_is_free(config):
    selections = {'Front': front(enabled=False)}
    assert unit_price(Decimal('500'), config, selections) == Decimal('500')


# ── 3. Validity gate ──────────────────────────────────────────────

def test_missing_upload_blocks_until_added(config):
    incomplete = {'Front': front(uploaded_image=None)}
    assert is_valid(config, incomplete, 'M', 'Black') is False

    complete = {'Front': replace(incomplete['Front'], uploaded_image=ART)}
    assert is_valid(config, complete, 'M', 'Black') is True


def test_missing_print_type_blocks(config):
    assert is_valid(config, {'Front': front(print_type=None)}, 'M', 'Black') is False


def test_size_and_color_required_when_offered(config):
    selections = {'Front': front()}
    assert is_valid(config, selections, None, 'Black') is False
    assert is_valid(config, selections, 'M', None) is False


def test_size_and_color_optional_when_not_offered():
    cfg = PersonalizationConfig.from_dict({**CONFIG_DATA, 'sizes': [], 'colors': []})
    assert is_valid(cfg, {'Front': front()}) is True


def test_at_least_one_placement_required(config):
    assert is_valid(config, default_selections(config), 'M', 'Black') is False


# ── 4. Custom cart line ───────────────────────────────────────────

def test_custom_line_splits_base_and_customisation(config):
    line = build_custom_line(7, 'Custom Tee', Decimal('500'), config,
                             {'Front': front()}, size='M', color='Black', quantity=2)
    assert line.kind == 'custom'
    assert line.unit_price == Decimal('750')
    assert line.base_price_unit == Decimal('500')
    assert line.customization_cost_unit == Decimal('250')
    assert line.metadata['placements']['Front']['uploaded_image'] == ART

    settings = StoreSettings(free_shipping_threshold=Decimal('999'))
    result = compute_totals([line], settings)
    # 2 × (500×12% + 250×18%) = 2 × 105
    assert result.tax == Decimal('210.00')
    assert result.final_total == Decimal('1710.00')


# ── 5. Artwork checks ─────────────────────────────────────────────

def test_artwork_format_and_size(config):
    assert validate_artwork('logo.png', 1024, config) == {}
    assert 'file' in validate_artwork('logo.gif', 1024, config)
    assert 'file' in validate_artwork('logo', 1024, config)
    assert 'size' in validate_artwork('logo.png', 11 * 1024 * 1024, config)


# ── 6. Routes ─────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def client(tmp_path):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path)
    with app.app_context():
        db.create_all()
        db.session.add(Product(id=1, name='Custom Tee', price=Decimal('500.00'),
                               personalization=json.dumps(CONFIG_DATA)))
        db.session.add(Product(id=2, name='Plain Mug', price=Decimal('299.00'), gst_percent=12))
        db.session.commit()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


def configurator_payload(**overrides):
    payload = {
        'size': 'M', 'color': 'Black',
        'placements': {'Front': {'enabled': True, 'print_type': 'DTG Printing',
                                 'uploaded_image': ART}},
    }
    payload.update(overrides)
    return payload


def test_quote_route(client):
    resp = client.post('/personalise/1/quote', json=configurator_payload())
    assert resp.status_code == 200
    data = resp.get_json()
    assert Decimal(data['unit_price']) == Decimal('750')
    assert data['is_valid'] is True


def test_quote_route_reports_incomplete_configuration(client):
    payload = configurator_payload(placements={'Front': {'enabled': True, 'print_type': 'DTG Printing'}})
    data = client.post('/personalise/1/quote', json=payload).get_json()
    assert data['is_valid'] is False


def test_quote_for_plain_product_is_404(client):
    assert client.post('/personalise/2/quote', json={}).status_code == 404


def test_add_to_cart_gated_by_validity(client):
    payload = configurator_payload(size=None)
    resp = client.post('/personalise/1/add-to-cart', json=payload)
    assert resp.status_code == 400


def test_malformed_placements_block_instead_of_failing(client):
    for placements in (['Front'], {'Front': 'yes'}, {'Front': {'enabled': True, 'print_type': ['DTG']}}):
        resp = client.post('/personalise/1/quote', json=configurator_payload(placements=placements))
        assert resp.status_code == 200
        assert resp.get_json()['is_valid'] is False

    resp = client.post('/personalise/1/add-to-cart', json=configurator_payload(placements=['Front']))
    assert resp.status_code == 400
    assert client.post('/personalise/1/quote', json=['Front']).status_code == 200


def test_unoffered_size_or_colour_counts_as_unchosen(client):
    data = client.post('/personalise/1/quote', json=configurator_payload(size='XXL')).get_json()
    assert data['is_valid'] is False
    assert data['size'] is None

    data = client.post('/personalise/1/quote', json=configurator_payload(color='Neon')).get_json()
    assert data['is_valid'] is False

    resp = client.post('/personalise/1/add-to-cart', json=configurator_payload(size='XXL'))
    assert resp.status_code == 400


def test_add_to_cart_creates_custom_line(client):
    resp = client.post('/personalise/1/add-to-cart', json=configurator_payload())
    assert resp.status_code == 201

    cart = client.get('/checkout/cart').get_json()
    item = cart['items'][resp.get_json()['item_id']]
    assert item['kind'] == 'custom'
    assert Decimal(item['customization_cost_unit']) == Decimal('250')

    # no settings row → defaults: 18% store rate, ₹100 shipping under ₹5000
    totals = cart['totals']
    assert Decimal(totals['subtotal']) == Decimal('750.00')
    assert Decimal(totals['shipping']) == Decimal('100.00')
    # 500×12% + 250×18% + 100×18% = 60 + 45 + 18
    assert Decimal(totals['tax']) == Decimal('123.00')
    assert Decimal(totals['final_total']) == Decimal('973.00')


def test_same_design_twice_gives_two_lines(client):
    client.post('/personalise/1/add-to-cart', json=configurator_payload())
    client.post('/personalise/1/add-to-cart', json=configurator_payload())
    assert len(client.get('/checkout/cart').get_json()['items']) == 2


def test_upload_returns_reference(client, tmp_path):
    resp = client.post('/personalise/1/upload', data={
        'placement': 'Front',
        'file': (io.BytesIO(b'\x89PNG fake'), 'logo.png'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 201
    url = resp.get_json()['url']
    assert url.startswith('/personalise/uploads/1/front-')
    assert len(list((tmp_path / '1').iterdir())) == 1

    assert client.get(url).status_code == 200


def test_upload_rejects_bad_format_and_placement(client):
    resp = client.post('/personalise/1/upload', data={
        'placement': 'Front',
        'file': (io.BytesIO(b'GIF89a'), 'logo.gif'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400

    resp = client.post('/personalise/1/upload', data={
        'placement': 'Hat',
        'file': (io.BytesIO(b'\x89PNG'), 'logo.png'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400
