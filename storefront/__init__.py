import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from storefront.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Models (register tables with SQLAlchemy) ──────────────────
    from storefront.catalog import models as catalog_models      # noqa: F401
    from storefront.coupons import models as coupon_models       # noqa: F401
    from storefront.wallet import models as wallet_models        # noqa: F401
    from storefront.checkout import models as checkout_models    # noqa: F401

    # ── Blueprints ────────────────────────────────────────────────
    from storefront.checkout import checkout as checkout_blueprint
    app.register_blueprint(checkout_blueprint, url_prefix='/checkout')

    from storefront.personalization import personalization as personalization_blueprint
    app.register_blueprint(personalization_blueprint, url_prefix='/personalise')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify(error='Please log in to continue.'), 401

    @app.errorhandler(404)
    def not_found(e):
        return jsonify(error='Not found.'), 404

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        return jsonify(error='Server error.'), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables and the store settings row."""
        from storefront.catalog.models import StoreSettingsRow

        db.create_all()
        click.echo('✅  Database tables created.')

        if StoreSettingsRow.query.first() is None:
            db.session.add(StoreSettingsRow())
            db.session.commit()
            click.echo('✅  Default store settings seeded.')
        else:
            click.echo('ℹ️   Store settings already exist.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo products, coupons and a wallet."""
        import json
        from decimal import Decimal
        from storefront.catalog.models import Product, StoreSettingsRow
        from storefront.coupons.models import Coupon
        from storefront.wallet.service import process_wallet_transaction

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        if StoreSettingsRow.query.first() is None:
            db.session.add(StoreSettingsRow())

        if Product.query.count() == 0:
            db.session.add(Product(name='Oversized Classic T-Shirt', price=Decimal('799.00'), gst_percent=12))
            db.session.add(Product(name='Acrylic Poster', price=Decimal('1499.00'), gst_percent=18))
            db.session.add(Product(
                name='Custom Hoodie',
                price=Decimal('1299.00'),
                personalization=json.dumps({
                    'enabled':     True,
                    'colors':      ['Black', 'Heather Grey'],
                    'sizes':       ['S', 'M', 'L', 'XL'],
                    'print_types': {
                        'DTG Printing': {'enabled': True, 'price': 150},
                        'Embroidery':   {'enabled': True, 'price': 250},
                    },
                    'placements': {
                        'Front': {'enabled': True, 'price': 100, 'max_width': 12, 'max_height': 16},
                        'Back':  {'enabled': True, 'price': 120, 'max_width': 14, 'max_height': 18},
                    },
                    'gst_percent':       12,
                    'print_gst_percent': 18,
                }),
            ))
            click.echo("✅ Products seeded.")

        for code, kind, value in [('WELCOME10', 'percentage', 10),
                                  ('FLAT200', 'fixed_amount', 200),
                                  ('FREESHIP', 'free_shipping', 0)]:
            if not Coupon.query.filter_by(code=code).first():
                db.session.add(Coupon(code=code, discount_type=kind, discount_value=Decimal(value)))

        db.session.flush()
        process_wallet_transaction('demo-customer', Decimal('500'), 'credit', 'signup_bonus', expiry_days=90)
        db.session.commit()
        click.echo("✅ Demo seed complete (customer 'demo-customer' has ₹500 wallet credit).")

    return app
