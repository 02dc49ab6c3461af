"""
storefront/checkout/engine.py
-----------------------------
Pure-Python checkout pricing engine.

Reduces a cart snapshot plus store settings, wallet state and an applied
coupon into an itemised CheckoutBreakdown:

    subtotal → shipping → tax → pre-wallet total → wallet → coupon → final

Each step only sees the running values of the steps before it. Nothing here
touches the database or the session — callers load the inputs, call
compute_totals(), and decide what to do with the result.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN
from typing import Iterable, List, Optional


Q = Decimal('0.01')   # quantize target
ZERO = Decimal('0')
HUNDRED = Decimal('100')

# ── Pricing rules ─────────────────────────────────────────────────
WALLET_MIN_ORDER     = Decimal('999')   # subtotal needed before wallet credit applies
WALLET_MAX_PERCENT   = Decimal('10')    # wallet covers at most this % of the subtotal
SHIPPING_GST_PERCENT = Decimal('18')    # shipping is always taxed at this rate

PAYMENT_METHODS = ('upi', 'card', 'cod')


def to_decimal(value) -> Decimal:
    """Coerce int / str / float / Decimal to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


# ── Cart lines (tagged by `kind`) ─────────────────────────────────

@dataclass(frozen=True)
class StandardLine:
    """A catalogue product bought as-is."""
    product_id:  str
    name:        str
    unit_price:  Decimal
    quantity:    int
    gst_percent: Optional[Decimal] = None   # None → store tax rate
    size:        Optional[str] = field(default=None, compare=False)
    kind:        str = field(default='standard', init=False)


@dataclass(frozen=True)
class CustomLine:
    """
    A personalised product. unit_price = base_price_unit + customization_cost_unit,
    and each portion is taxed at its own rate.
    """
    product_id:              str
    name:                    str
    unit_price:              Decimal
    quantity:                int
    base_price_unit:         Decimal
    customization_cost_unit: Decimal
    gst_percent:             Decimal
    print_gst_percent:       Decimal
    metadata:                dict = field(default_factory=dict, compare=False)
    kind:                    str = field(default='custom', init=False)


# ── Checkout inputs ───────────────────────────────────────────────

@dataclass(frozen=True)
class StoreSettings:
    tax_rate:                Decimal = Decimal('18')
    free_shipping_threshold: Decimal = Decimal('5000')
    shipping_charge:         Decimal = Decimal('100')


@dataclass(frozen=True)
class WalletState:
    balance:    Decimal = ZERO
    is_applied: bool = False


@dataclass(frozen=True)
class Coupon:
    """A coupon as resolved by the validation service."""
    code:            str
    type:            str
    discount_amount: Decimal = ZERO

    def __post_init__(self):
        # frozen → bypass __setattr__ to normalise the code
        object.__setattr__(self, 'code', self.code.strip().upper())


@dataclass(frozen=True)
class CheckoutBreakdown:
    subtotal:         Decimal
    shipping:         Decimal
    tax:              Decimal
    pre_wallet_total: Decimal
    wallet_discount:  Decimal
    coupon_discount:  Decimal
    final_total:      Decimal

    @property
    def is_payable(self) -> bool:
        """False when discounts exceed the order value (see submit_order)."""
        return self.final_total >= ZERO

    def as_dict(self) -> dict:
        """String amounts, safe for JSON and the Flask session."""
        return {
            'subtotal':         str(self.subtotal),
            'shipping':         str(self.shipping),
            'tax':              str(self.tax),
            'pre_wallet_total': str(self.pre_wallet_total),
            'wallet_discount':  str(self.wallet_discount),
            'coupon_discount':  str(self.coupon_discount),
            'final_total':      str(self.final_total),
        }


# ── Individual steps ──────────────────────────────────────────────

def cart_subtotal(lines: Iterable) -> Decimal:
    """Sum of unit_price × quantity for all lines (pre-tax)."""
    total = ZERO
    for line in lines:
        total += to_decimal(line.unit_price) * line.quantity
    return total


def shipping_for(subtotal: Decimal, settings: StoreSettings,
                 coupon: Coupon | None = None) -> Decimal:
    """Flat shipping charge unless the threshold is reached or a free-shipping coupon applies."""
    if subtotal >= to_decimal(settings.free_shipping_threshold):
        return ZERO
    if coupon is not None and coupon.type == 'free_shipping':
        return ZERO
    return to_decimal(settings.shipping_charge)


def line_tax(line, settings: StoreSettings) -> Decimal:
    """
    GST for a single line at full precision (no rounding).

    Standard lines use their own rate, falling back to the store rate.
    Custom lines split into base and customisation portions.
    """
    qty = Decimal(line.quantity)

    if line.kind == 'standard':
        rate = line.gst_percent if line.gst_percent is not None else settings.tax_rate
        return to_decimal(line.unit_price) * qty * to_decimal(rate) / HUNDRED

    elif line.kind == 'custom':
        base_tax   = to_decimal(line.base_price_unit) * qty * to_decimal(line.gst_percent) / HUNDRED
        custom_tax = (to_decimal(line.customization_cost_unit) * qty
                      * to_decimal(line.print_gst_percent) / HUNDRED)
        return base_tax + custom_tax

    raise TypeError(f'Unknown cart line kind: {line.kind!r}')


def total_tax(lines: Iterable, shipping: Decimal, settings: StoreSettings) -> Decimal:
    """All line taxes plus shipping tax, summed unrounded and rounded once."""
    tax = ZERO
    for line in lines:
        tax += line_tax(line, settings)
    tax += shipping * SHIPPING_GST_PERCENT / HUNDRED
    return tax.quantize(Q, rounding=ROUND_HALF_UP)


def wallet_discount(subtotal: Decimal, wallet: WalletState) -> Decimal:
    """
    Wallet credit usable on this order.
    Rules: wallet toggled on, subtotal ≥ ₹999, capped at 10% of the
    subtotal and at the available balance.
    """
    if not wallet.is_applied or subtotal < WALLET_MIN_ORDER:
        return ZERO

    max_by_policy = subtotal * WALLET_MAX_PERCENT / HUNDRED
    usable = min(to_decimal(wallet.balance), max_by_policy)
    # Round down so the cap is never exceeded by a fraction of a paisa
    return max(usable, ZERO).quantize(Q, rounding=ROUND_DOWN)


def coupon_discount(coupon: Coupon | None) -> Decimal:
    """The amount resolved at validation time, taken verbatim."""
    if coupon is None:
        return ZERO
    return to_decimal(coupon.discount_amount)


# ── Main public function ──────────────────────────────────────────

def compute_totals(lines: List, settings: StoreSettings,
                   wallet: WalletState | None = None,
                   coupon: Coupon | None = None) -> CheckoutBreakdown:
    """
    Price a cart snapshot.

    The final total is not clamped at zero: a large wallet + coupon on a
    tiny cart can drive it negative. submit_order() rejects such totals.
    """
    wallet = wallet or WalletState()

    subtotal  = cart_subtotal(lines)
    shipping  = shipping_for(subtotal, settings, coupon)
    tax       = total_tax(lines, shipping, settings)
    pre_total = subtotal + shipping + tax
    wallet_d  = wallet_discount(subtotal, wallet)
    coupon_d  = coupon_discount(coupon)

    return CheckoutBreakdown(
        subtotal=subtotal.quantize(Q, rounding=ROUND_HALF_UP),
        shipping=shipping.quantize(Q),
        tax=tax,
        pre_wallet_total=pre_total.quantize(Q, rounding=ROUND_HALF_UP),
        wallet_discount=wallet_d,
        coupon_discount=coupon_d.quantize(Q, rounding=ROUND_HALF_UP),
        final_total=(pre_total - wallet_d - coupon_d).quantize(Q, rounding=ROUND_HALF_UP),
    )


# ── Payment guard ─────────────────────────────────────────────────

def validate_payment_selection(wallet: WalletState, payment_method: str) -> str | None:
    """
    Wallet credit and Cash on Delivery are mutually exclusive.
    Returns an error message, or None when the combination is allowed.
    """
    if payment_method not in PAYMENT_METHODS:
        return f'Unsupported payment method "{payment_method}".'
    if wallet.is_applied and payment_method == 'cod':
        return 'Wallet credit cannot be used with Cash on Delivery.'
    return None
