"""
ledger/units.py

Unit conversion for products sold in a stocking unit (e.g. Box) and an
optional sub-unit (e.g. Piece, `conversion_factor` pieces per box).

Stock is always kept in stocking units. A line quoted in the sub-unit moves
quantity / conversion_factor stocking units and costs
purchase_price / conversion_factor per sub-unit.

A missing product (None) is tolerated everywhere and contributes zero.
A unit that is neither the stocking unit nor the sub-unit is treated as the
stocking unit.
"""
from __future__ import annotations

import math
from typing import Optional, Protocol

__all__ = [
    "is_sub_unit",
    "cost_per_unit",
    "to_stocking_units",
    "format_stock",
]


class UnitProduct(Protocol):
    purchase_price: float
    stocking_unit: str
    sub_unit: Optional[str]
    conversion_factor: float


def is_sub_unit(product: Optional[UnitProduct], unit: str) -> bool:
    return bool(product is not None and product.sub_unit and unit == product.sub_unit)


def cost_per_unit(product: Optional[UnitProduct], unit: str) -> float:
    """Purchase cost of one `unit` of the product (0.0 if it cannot be resolved)."""
    if product is None:
        return 0.0
    price = float(product.purchase_price or 0.0)
    if is_sub_unit(product, unit):
        cf = float(product.conversion_factor or 0.0)
        if cf <= 0:
            return 0.0
        return price / cf
    return price


def to_stocking_units(quantity: float, unit: str, product: Optional[UnitProduct]) -> float:
    """Express `quantity` of `unit` in the product's stocking unit."""
    if product is None:
        return 0.0
    if is_sub_unit(product, unit):
        cf = float(product.conversion_factor or 0.0)
        if cf > 0:
            return float(quantity) / cf
    return float(quantity)


def format_stock(quantity: float, product: Optional[UnitProduct]) -> str:
    """
    7.5 Box with 12 Piece per Box -> '7 Box, 6 Piece'.
    Products without a usable sub-unit (and negative stock) -> '7.50 Box'.
    """
    if product is None:
        return ""
    q = float(quantity)
    cf = float(product.conversion_factor or 0.0)
    if not product.sub_unit or cf <= 0 or q < 0:
        return f"{q:.2f} {product.stocking_unit}"

    whole = math.floor(q)
    pieces = round((q - whole) * cf)
    if pieces >= cf:
        whole += 1
        pieces = 0

    parts = []
    if whole > 0:
        parts.append(f"{whole} {product.stocking_unit}")
    if pieces > 0:
        parts.append(f"{pieces} {product.sub_unit}")
    if not parts:
        return f"0 {product.stocking_unit}"
    return ", ".join(parts)
