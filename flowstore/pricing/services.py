"""
Price lists and price resolution.

Prices are stored both net and gross; whichever one the user enters, the other
is derived from the sum of the applicable tax rates.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from flowstore.catalog.models import ProductVariant
from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.models import lock_company
from flowstore.core.utils import create_audit_log, round_money, to_decimal
from .models import PriceList, PriceListItem

logger = logging.getLogger('flowstore.pricing')

SOURCE_PRICE_LIST = 'PRICE_LIST'
SOURCE_DEFAULT_VARIANT = 'DEFAULT_VARIANT'


def compute_price_with_taxes(net_price=None, gross_price=None, tax_rates=()):
    """
    Derive the missing side of a price.

    Returns (net, gross), both rounded to 2 decimals. The multiplier is
    1 + sum(rates) / 100.
    """
    net_price = to_decimal(net_price)
    gross_price = to_decimal(gross_price)
    if net_price is None and gross_price is None:
        raise ServiceError('Either a net price or a gross price is required')

    multiplier = Decimal('1') + sum((to_decimal(rate, Decimal('0')) for rate in tax_rates), Decimal('0')) / Decimal('100')
    if net_price is not None:
        gross_price = net_price * multiplier
    else:
        net_price = gross_price / multiplier
    return round_money(net_price), round_money(gross_price)


def _validate_window(valid_from, valid_until):
    if valid_from and valid_until and valid_until < valid_from:
        raise ServiceError('The validity end date cannot be before the start date')


def _clear_other_defaults(exclude_pk=None):
    # The company lock serializes default changes, also when no list is default yet
    lock_company()
    others = PriceList.objects.select_for_update().filter(is_default=True)
    if exclude_pk:
        others = others.exclude(pk=exclude_pk)
    ids = list(others.values_list('pk', flat=True))
    if ids:
        PriceList.objects.filter(pk__in=ids).update(is_default=False)
        logger.info(f"Cleared default flag on price lists {ids}")


def _check_code(code, exclude_pk=None):
    if not code:
        return
    others = PriceList.objects.alive().filter(code=code)
    if exclude_pk:
        others = others.exclude(pk=exclude_pk)
    if others.exists():
        raise ServiceError('A price list with this code already exists')


@transaction.atomic
def create_price_list(data, request=None):
    _validate_window(data.get('valid_from'), data.get('valid_until'))
    _check_code(data.get('code'))
    if data.get('is_default'):
        _clear_other_defaults()
    price_list = PriceList.objects.create(**data)
    create_audit_log(request=request, action='create', model_name='PriceList', object_id=price_list.id,
                     object_name=price_list.name, changes={'is_default': price_list.is_default})
    return price_list


@transaction.atomic
def update_price_list(price_list, data, request=None):
    price_list = PriceList.objects.select_for_update().get(pk=price_list.pk)
    _validate_window(data.get('valid_from', price_list.valid_from), data.get('valid_until', price_list.valid_until))
    if 'code' in data:
        _check_code(data.get('code'), exclude_pk=price_list.pk)
    if data.get('is_default') and not price_list.is_default:
        _clear_other_defaults(exclude_pk=price_list.pk)
    for key, value in data.items():
        setattr(price_list, key, value)
    price_list.save()
    create_audit_log(request=request, action='update', model_name='PriceList', object_id=price_list.id,
                     object_name=price_list.name, changes={key: str(value) for key, value in data.items()})
    return price_list


@transaction.atomic
def delete_price_list(price_list, request=None):
    if price_list.is_default:
        raise ServiceError('The default price list cannot be deleted')
    now = timezone.now()
    price_list.items.alive().update(deleted_at=now)
    price_list.deleted_at = now
    price_list.is_active = False
    price_list.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='PriceList', object_id=price_list.id,
                     object_name=price_list.name)


def get_active_price_lists(at=None):
    """Active lists whose validity window contains the given day, highest priority first"""
    day = at or timezone.localdate()
    lists = PriceList.objects.active().order_by('-priority', 'name')
    return [price_list for price_list in lists if price_list.is_valid_on(day)]


def get_default_price_list():
    return PriceList.objects.alive().filter(is_default=True).first()


@transaction.atomic
def upsert_price_list_item(price_list, product, variant=None, net_price=None, gross_price=None,
                           taxes=None, min_price=None, discount_percentage=None, request=None):
    """Create or replace the price of a product/variant in a list"""
    if price_list.deleted_at is not None:
        raise ServiceError('The price list no longer exists')
    if variant is not None and variant.product_id != product.id:
        raise ServiceError('The variant does not belong to the product')

    if taxes is None:
        taxes = list(variant.taxes.all()) if variant is not None else []
    net, gross = compute_price_with_taxes(net_price, gross_price, [tax.rate for tax in taxes])
    min_price = to_decimal(min_price)
    if min_price is not None and min_price > gross:
        raise ServiceError('The minimum price cannot exceed the price')

    item = PriceListItem.objects.alive().select_for_update().filter(
        price_list=price_list, product=product, variant=variant
    ).first()
    old_gross = item.gross_price if item else None
    if item is None:
        item = PriceListItem(price_list=price_list, product=product, variant=variant)
    item.net_price = net
    item.gross_price = gross
    item.min_price = min_price
    item.discount_percentage = to_decimal(discount_percentage, Decimal('0.00'))
    item.save()
    item.taxes.set(taxes)

    create_audit_log(request=request, action='price_change', model_name='PriceListItem', object_id=item.id,
                     object_name=product.name, object_reference=price_list.name,
                     sku=variant.sku if variant else None,
                     changes={'gross_price': {'old': str(old_gross) if old_gross is not None else None,
                                              'new': str(gross)}})
    return item


def _find_item(price_list, product_id, variant_id):
    items = PriceListItem.objects.alive().filter(price_list=price_list, product_id=product_id)
    if variant_id:
        # A variant-specific price wins over the product-wide one
        item = items.filter(variant_id=variant_id).first()
        if item:
            return item
    return items.filter(variant__isnull=True).first()


def get_product_price(product_id, variant_id=None, price_list_id=None):
    """
    Resolve the price of a product/variant.

    Order: the requested list, then the default list, then the variant's base price.
    """
    candidates = []
    if price_list_id:
        requested = PriceList.objects.active().filter(pk=price_list_id).first()
        if requested and requested.is_valid_on(timezone.localdate()):
            candidates.append(requested)
    default = get_default_price_list()
    if default and default not in candidates and default.is_active:
        candidates.append(default)

    for price_list in candidates:
        item = _find_item(price_list, product_id, variant_id)
        if item:
            return {
                'netPrice': item.net_price,
                'grossPrice': item.gross_price,
                'minPrice': item.min_price,
                'discountPercentage': item.discount_percentage,
                'source': SOURCE_PRICE_LIST,
                'priceListId': price_list.id,
            }

    variants = ProductVariant.objects.alive().filter(product_id=product_id)
    variant = variants.filter(pk=variant_id).first() if variant_id else variants.order_by('id').first()
    if variant is None:
        raise NotFoundError('Product variant not found')
    # Variant base prices are net; the gross side comes from its taxes
    net, gross = compute_price_with_taxes(net_price=variant.base_price,
                                          tax_rates=[tax.rate for tax in variant.taxes.all()])
    return {
        'netPrice': net,
        'grossPrice': gross,
        'minPrice': None,
        'discountPercentage': Decimal('0.00'),
        'source': SOURCE_DEFAULT_VARIANT,
        'priceListId': None,
    }
