"""
Variant attribute map tests: ordered, immutable, order-sensitive equality.
"""
from decimal import Decimal

import pytest

from signal_pricing.models import Product, ProductVariant, VariantAttributes


def test_keeps_insertion_order():
    attrs = VariantAttributes([("size", "M"), ("color", "red")])
    assert list(attrs) == ["size", "color"]
    assert attrs["color"] == "red"
    assert len(attrs) == 2


def test_equality_and_hash_depend_on_order():
    a = VariantAttributes([("size", "M"), ("color", "red")])
    b = VariantAttributes([("size", "M"), ("color", "red")])
    swapped = VariantAttributes([("color", "red"), ("size", "M")])

    assert a == b
    assert hash(a) == hash(b)
    assert a != swapped
    assert len({a, b, swapped}) == 2


def test_rejects_duplicate_keys():
    with pytest.raises(ValueError):
        VariantAttributes([("size", "M"), ("size", "L")])


def test_is_immutable():
    attrs = VariantAttributes({"size": "M"})
    with pytest.raises(TypeError):
        attrs["size"] = "L"


def test_missing_key():
    with pytest.raises(KeyError):
        VariantAttributes()["size"]


def test_persists_in_order(db):
    product = Product(name="Tee", merchant_price=Decimal("10.00"))
    product.variants.append(ProductVariant(
        position=0,
        attributes=VariantAttributes([("size", "M"), ("color", "red"), ("fit", "slim")]),
    ))
    product.variants.append(ProductVariant(position=1))
    db.add(product)
    db.commit()
    db.expire_all()

    variants = db.get(Product, product.id).variants
    assert variants[0].attributes.to_pairs() == [["size", "M"], ["color", "red"], ["fit", "slim"]]
    assert variants[1].attributes == VariantAttributes()
