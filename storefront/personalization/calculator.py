"""
storefront/personalization/calculator.py
----------------------------------------
Price and validity of a personalised product.

A base product carries a PersonalizationConfig (stored as JSON on the
product row):

    {
        "enabled":      true,
        "colors":       ["White", "Black"],
        "sizes":        ["S", "M", "L"],
        "print_types":  {"DTG Printing": {"enabled": true, "price": 150}},
        "placements":   {"Front": {"enabled": true, "price": 100,
                                   "max_width": 12, "max_height": 16}},
        "gst_percent":        12,     ← optional, defaults to 12
        "print_gst_percent":  18,     ← optional, defaults to 18
        "image_requirements": {"min_dpi": 150, "max_size_mb": 10,
                               "allowed_formats": ["png", "jpg"]}
    }

The customer's choices arrive as one PlacementSelection per placement key.
Everything here is pure: no uploads, no DB access.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from storefront.checkout.engine import CustomLine, to_decimal


# ── Central defaults — resolved once when a config is loaded ─────
DEFAULT_GST_PERCENT       = Decimal('12')
DEFAULT_PRINT_GST_PERCENT = Decimal('18')
DEFAULT_IMAGE_REQUIREMENTS = {
    'min_dpi':         150,
    'max_size_mb':     10,
    'allowed_formats': ['png', 'jpg', 'jpeg', 'svg', 'pdf'],
}


@dataclass(frozen=True)
class PrintTypeConfig:
    enabled: bool
    price:   Decimal


@dataclass(frozen=True)
class PlacementConfig:
    enabled:    bool
    price:      Decimal
    max_width:  Decimal = Decimal('0')
    max_height: Decimal = Decimal('0')


@dataclass(frozen=True)
class PersonalizationConfig:
    colors:             frozenset
    sizes:              tuple
    print_types:        Dict[str, PrintTypeConfig]
    placements:         Dict[str, PlacementConfig]
    gst_percent:        Decimal = DEFAULT_GST_PERCENT
    print_gst_percent:  Decimal = DEFAULT_PRINT_GST_PERCENT
    enabled:            bool = True
    image_requirements: dict = field(default_factory=lambda: dict(DEFAULT_IMAGE_REQUIREMENTS))

    @classmethod
    def from_dict(cls, data: dict) -> 'PersonalizationConfig':
        """Build from the product's stored JSON, applying rate defaults here and only here."""
        data = data or {}
        print_types = {
            name: PrintTypeConfig(
                enabled=bool(cfg.get('enabled', False)),
                price=to_decimal(cfg.get('price', 0)),
            )
            for name, cfg in (data.get('print_types') or {}).items()
        }
        placements = {
            name: PlacementConfig(
                enabled=bool(cfg.get('enabled', False)),
                price=to_decimal(cfg.get('price', 0)),
                max_width=to_decimal(cfg.get('max_width', 0)),
                max_height=to_decimal(cfg.get('max_height', 0)),
            )
            for name, cfg in (data.get('placements') or {}).items()
        }
        gst       = data.get('gst_percent')
        print_gst = data.get('print_gst_percent')
        requirements = dict(DEFAULT_IMAGE_REQUIREMENTS)
        requirements.update(data.get('image_requirements') or {})

        return cls(
            colors=frozenset(data.get('colors') or []),
            sizes=tuple(data.get('sizes') or []),
            print_types=print_types,
            placements=placements,
            gst_percent=to_decimal(gst) if gst is not None else DEFAULT_GST_PERCENT,
            print_gst_percent=to_decimal(print_gst) if print_gst is not None else DEFAULT_PRINT_GST_PERCENT,
            enabled=bool(data.get('enabled', True)),
            image_requirements=requirements,
        )

    @property
    def is_purchasable(self) -> bool:
        """At least one enabled print type and one enabled placement."""
        return (any(p.enabled for p in self.print_types.values())
                and any(p.enabled for p in self.placements.values()))


def _text(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class PlacementSelection:
    enabled:        bool = False
    print_type:     Optional[str] = None
    uploaded_image: Optional[str] = None   # opaque storage reference (URL)

    @classmethod
    def from_dict(cls, data: dict) -> 'PlacementSelection':
        data = data or {}
        return cls(
            enabled=bool(data.get('enabled', False)),
            print_type=_text(data.get('print_type')),
            uploaded_image=_text(data.get('uploaded_image')),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.enabled and self.print_type and self.uploaded_image)

    def as_dict(self) -> dict:
        return {
            'enabled':        self.enabled,
            'print_type':     self.print_type,
            'uploaded_image': self.uploaded_image,
        }


# ── Configurator helpers ──────────────────────────────────────────

def default_selections(config: PersonalizationConfig) -> Dict[str, PlacementSelection]:
    """Initial state: every configured placement present but switched off."""
    return {key: PlacementSelection() for key in config.placements}


def default_choice(options) -> Optional[str]:
    """Auto-select when exactly one option is offered."""
    options = list(options)
    return options[0] if len(options) == 1 else None


# ── Pricing ───────────────────────────────────────────────────────

def unit_price(base_price, config: PersonalizationConfig,
               selections: Dict[str, PlacementSelection]) -> Decimal:
    """
    base price + (placement price + print type price) for every enabled
    placement. Unknown placement or print type keys add nothing.
    """
    total = to_decimal(base_price)

    for key, selection in selections.items():
        if not selection.enabled:
            continue
        placement = config.placements.get(key)
        if placement is not None:
            total += placement.price
        if selection.print_type and selection.print_type in config.print_types:
            total += config.print_types[selection.print_type].price

    return total


def is_valid(config: PersonalizationConfig,
             selections: Dict[str, PlacementSelection],
             size: str | None = None, color: str | None = None) -> bool:
    """True when the configuration can be added to the cart."""
    if config.sizes and not size:
        return False
    if config.colors and not color:
        return False

    active = [s for s in selections.values() if s.enabled]
    if not active:
        return False
    return all(s.is_complete for s in active)


def build_custom_line(product_id, name: str, base_price,
                      config: PersonalizationConfig,
                      selections: Dict[str, PlacementSelection],
                      size: str | None = None, color: str | None = None,
                      quantity: int = 1, note: str = '') -> CustomLine:
    """
    Turn a finished configuration into a cart line.
    Callers gate on is_valid() first; this function does not re-check.
    """
    base  = to_decimal(base_price)
    price = unit_price(base, config, selections)

    return CustomLine(
        product_id=str(product_id),
        name=name,
        unit_price=price,
        quantity=quantity,
        base_price_unit=base,
        customization_cost_unit=price - base,
        gst_percent=config.gst_percent,
        print_gst_percent=config.print_gst_percent,
        metadata={
            'base_product_id': str(product_id),
            'size':            size,
            'color':           color,
            'note':            note,
            'placements':      {k: s.as_dict() for k, s in selections.items()},
        },
    )


# ── Artwork checks ────────────────────────────────────────────────

def validate_artwork(filename: str, size_bytes: int,
                     config: PersonalizationConfig) -> dict:
    """
    Check an artwork file against the config's image requirements.
    Returns dict of {field_name: error_message} — empty if valid.
    """
    errors = {}
    rules = config.image_requirements

    if not filename or '.' not in filename:
        errors['file'] = 'Artwork file must have an extension.'
        return errors

    ext = filename.rsplit('.', 1)[1].lower()
    allowed: List[str] = [f.lower().lstrip('.') for f in rules.get('allowed_formats', [])]
    if allowed and ext not in allowed:
        errors['file'] = f'Format ".{ext}" is not allowed. Use: {", ".join(allowed)}.'

    max_mb = rules.get('max_size_mb')
    if max_mb and size_bytes > int(max_mb) * 1024 * 1024:
        errors['size'] = f'Artwork must be {max_mb} MB or smaller.'

    return errors
