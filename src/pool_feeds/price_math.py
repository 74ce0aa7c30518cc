"""Conversion of a pool's Q64.96 square-root price into a 6-decimal fixed-point price."""

from __future__ import annotations

from decimal import Decimal

from .constants import (
    FEED_DECIMALS,
    INTERMEDIATE_DECIMALS,
    MAX_PRICE,
    MAX_SQRT_PRICE_X96,
    Q192,
)

# 18-decimal intermediate down to the 6-decimal feed scale
_DOWNSCALE = 10 ** (INTERMEDIATE_DECIMALS - FEED_DECIMALS)
# Inversion numerator: 1.0 at 6 decimals, squared
_INVERSION_NUMERATOR = 10 ** (2 * FEED_DECIMALS)
_MAX_DECIMALS = 255


class PriceComputationError(ValueError):
    """Raised when a price cannot be computed or falls outside (0, 2**128).

    Always fatal: it indicates a miscalibrated decimals configuration, and the
    value must never be committed.
    """

    retry_recommended = False


def compute_price(
    sqrt_price_x96: int,
    decimals0: int,
    decimals1: int,
    invert: bool = False,
) -> int:
    """Compute the canonical 6-decimal price from a pool's sqrtPriceX96.

    Args:
        sqrt_price_x96: Square root of token1/token0, scaled by 2**96.
        decimals0: Decimals of the pool's token0.
        decimals1: Decimals of the pool's token1.
        invert: Report the reciprocal using the ``10**12 // price`` convention.

    Returns:
        Price as an integer with 6 implied decimals.

    Raises:
        PriceComputationError: On invalid inputs or a result outside (0, 2**128).

    Notes:
        - All arithmetic is integer; every division truncates.
        - Inversion is not a true reciprocal and is not an involution:
          ``10**12 // (10**12 // x)`` differs from ``x`` in general.
    """
    if not 0 <= sqrt_price_x96 < MAX_SQRT_PRICE_X96:
        raise PriceComputationError(
            f"sqrtPriceX96 out of uint160 range: {sqrt_price_x96}"
        )
    for label, value in (("decimals0", decimals0), ("decimals1", decimals1)):
        if not 0 <= value <= _MAX_DECIMALS:
            raise PriceComputationError(f"{label} out of uint8 range: {value}")

    price = sqrt_price_x96 * sqrt_price_x96 * 10**INTERMEDIATE_DECIMALS // Q192

    if decimals0 > decimals1:
        price = price * 10 ** (decimals0 - decimals1)
    elif decimals1 > decimals0:
        price = price // 10 ** (decimals1 - decimals0)

    price = price // _DOWNSCALE

    if invert and price > 0:
        price = _INVERSION_NUMERATOR // price

    if not 0 < price < MAX_PRICE:
        raise PriceComputationError(
            f"Computed price {price} is outside (0, 2**128); "
            f"check token decimals ({decimals0}, {decimals1}) and inversion ({invert})"
        )
    return price


def format_price(value: int, decimals: int = FEED_DECIMALS) -> str:
    """Render a fixed-point integer as a decimal string, e.g. 1000000 -> '1.000000'."""
    return f"{Decimal(value).scaleb(-decimals):.{decimals}f}"
