"""
test_pricing_engine.py — Tests for the checkout pricing engine.
Run: pytest test_pricing_engine.py -v

Pure functions only; no app or database needed.
"""
from decimal import Decimal

from storefront.checkout.engine import (
    StandardLine, CustomLine, StoreSettings, WalletState, Coupon,
    cart_subtotal, shipping_for, line_tax, total_tax, wallet_discount,
    compute_totals, validate_payment_selection,
)


SETTINGS = StoreSettings(
    tax_rate=Decimal('18'),
    free_shipping_threshold=Decimal('999'),
    shipping_charge=Decimal('100'),
)


def std(price, qty=1, gst=None, pid='p1'):
    return StandardLine(
        product_id=pid, name='Tee', unit_price=Decimal(price), quantity=qty,
        gst_percent=Decimal(gst) if gst is not None else None,
    )


def custom(base, cost, qty=1, gst='12', print_gst='18'):
    base, cost = Decimal(base), Decimal(cost)
    return CustomLine(
        product_id='c1', name='Custom Hoodie', unit_price=base + cost, quantity=qty,
        base_price_unit=base, customization_cost_unit=cost,
        gst_percent=Decimal(gst), print_gst_percent=Decimal(print_gst),
    )


# ── 1. Subtotal ───────────────────────────────────────────────────

def test_subtotal_is_sum_of_price_times_quantity():
    lines = [std('100.50', 2), std('19.99', 3, pid='p2'), custom('500', '250', 2)]
    # 201.00 + 59.97 + 1500.00
    assert cart_subtotal(lines) == Decimal('1760.97')


def test_empty_cart_prices_to_zero():
    result = compute_totals([], SETTINGS)
    assert result.subtotal == Decimal('0')
    # empty cart is below the threshold, so shipping + its 18% tax apply
    assert result.shipping == Decimal('100.00')
    assert result.tax == Decimal('18.00')


# ── 2. Shipping ───────────────────────────────────────────────────

def test_free_shipping_threshold_is_inclusive():
    assert shipping_for(Decimal('999'), SETTINGS) == Decimal('0')
    assert shipping_for(Decimal('998.99'), SETTINGS) == Decimal('100')


def test_free_shipping_coupon_overrides_threshold():
    coupon = Coupon(code='FREESHIP', type='free_shipping')
    assert shipping_for(Decimal('10'), SETTINGS, coupon) == Decimal('0')


def test_other_coupon_types_keep_shipping():
    coupon = Coupon(code='FLAT50', type='fixed_amount', discount_amount=Decimal('50'))
    assert shipping_for(Decimal('10'), SETTINGS, coupon) == Decimal('100')


# ── 3. Tax ────────────────────────────────────────────────────────

def test_custom_line_tax_is_split_between_base_and_print():
    # 100 × 12% + 50 × 18% = 12 + 9
    assert line_tax(custom('100', '50'), SETTINGS) == Decimal('21')


def test_standard_line_falls_back_to_store_rate():
    assert line_tax(std('100'), SETTINGS) == Decimal('18')


def test_explicit_zero_gst_is_honoured():
    assert line_tax(std('100', gst='0'), SETTINGS) == Decimal('0')


def test_shipping_is_taxed_at_18_percent():
    assert total_tax([std('500', gst='0')], Decimal('100'), SETTINGS) == Decimal('18.00')


def test_tax_is_rounded_once_not_per_line():
    # each line: 1.11 × 5% = 0.0555 → per-line rounding would give 0.18
    lines = [std('1.11', gst='5', pid=f'p{i}') for i in range(3)]
    assert total_tax(lines, Decimal('0'), SETTINGS) == Decimal('0.17')


# ── 4. Wallet ─────────────────────────────────────────────────────

def test_wallet_capped_at_ten_percent_of_subtotal():
    wallet = WalletState(balance=Decimal('1000'), is_applied=True)
    assert wallet_discount(Decimal('2000'), wallet) == Decimal('200.00')


def test_wallet_capped_at_balance():
    wallet = WalletState(balance=Decimal('50'), is_applied=True)
    assert wallet_discount(Decimal('2000'), wallet) == Decimal('50.00')


def test_wallet_needs_minimum_order():
    wallet = WalletState(balance=Decimal('1000'), is_applied=True)
    assert wallet_discount(Decimal('998'), wallet) == Decimal('0')
    assert wallet_discount(Decimal('999'), wallet) == Decimal('99.90')


def test_wallet_not_applied_gives_nothing():
    wallet = WalletState(balance=Decimal('1000'), is_applied=False)
    assert wallet_discount(Decimal('5000'), wallet) == Decimal('0')


# ── 5. End-to-end breakdowns ──────────────────────────────────────

def test_standard_cart_above_threshold():
    result = compute_totals([std('1500', gst='18')], SETTINGS)
    assert result.subtotal == Decimal('1500.00')
    assert result.shipping == Decimal('0.00')
    assert result.tax == Decimal('270.00')
    assert result.final_total == Decimal('1770.00')


def test_coupon_and_wallet_composition():
    settings = StoreSettings(tax_rate=Decimal('18'),
                             free_shipping_threshold=Decimal('5000'),
                             shipping_charge=Decimal('100'))
    coupon = Coupon(code='freeship', type='free_shipping', discount_amount=Decimal('100'))
    wallet = WalletState(balance=Decimal('500'), is_applied=True)

    result = compute_totals([std('2000', gst='0')], settings, wallet, coupon)

    assert result.shipping == Decimal('0.00')
    assert result.tax == Decimal('0.00')
    assert result.wallet_discount == Decimal('200.00')
    assert result.coupon_discount == Decimal('100.00')
    assert result.final_total == Decimal('1700.00')


def test_custom_and_standard_lines_together():
    lines = [custom('500', '250'), std('300', gst='5', pid='p2')]
    result = compute_totals(lines, SETTINGS)
    # 500×12% + 250×18% + 300×5% = 60 + 45 + 15
    assert result.subtotal == Decimal('1050.00')
    assert result.tax == Decimal('120.00')
    assert result.final_total == Decimal('1170.00')


def test_final_total_is_not_clamped():
    settings = StoreSettings(free_shipping_threshold=Decimal('0'))
    coupon = Coupon(code='HUGE', type='fixed_amount', discount_amount=Decimal('500'))
    result = compute_totals([std('100', gst='0')], settings, coupon=coupon)
    assert result.final_total == Decimal('-400.00')
    assert result.is_payable is False


def test_compute_totals_is_idempotent():
    lines  = [std('1500', gst='18'), custom('100', '50', 3)]
    wallet = WalletState(balance=Decimal('300'), is_applied=True)
    coupon = Coupon(code='SAVE', type='percentage', discount_amount=Decimal('75.50'))

    first  = compute_totals(lines, SETTINGS, wallet, coupon)
    second = compute_totals(lines, SETTINGS, wallet, coupon)
    assert first == second
    assert first.as_dict() == second.as_dict()


def test_breakdown_as_dict_uses_strings():
    data = compute_totals([std('1500', gst='18')], SETTINGS).as_dict()
    assert data['final_total'] == '1770.00'
    assert set(data) == {'subtotal', 'shipping', 'tax', 'pre_wallet_total',
                         'wallet_discount', 'coupon_discount', 'final_total'}


# ── 6. Coupon / payment guards ───────────────────────────────────

def test_coupon_code_normalised_to_upper_case():
    assert Coupon(code=' save10 ', type='percentage').code == 'SAVE10'


def test_wallet_and_cod_are_mutually_exclusive():
    applied = WalletState(balance=Decimal('100'), is_applied=True)
    assert validate_payment_selection(applied, 'cod') is not None
    assert validate_payment_selection(applied, 'upi') is None
    assert validate_payment_selection(WalletState(), 'cod') is None


def test_unknown_payment_method_rejected():
    assert 'Unsupported' in validate_payment_selection(WalletState(), 'barter')
