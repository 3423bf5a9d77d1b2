"""
Washroom Quote - Area & Tile Quantity Calculator

This module calculates floor/wall areas and tile quantities from the
washroom dimensions entered in the quote wizard.
"""

import math
from dataclasses import dataclass

from .errors import ConfigurationError, InvalidGeometryError


# Wall height is fixed by policy; callers may still pass their own.
DEFAULT_WALL_HEIGHT_FT = 9.0

# A 2x2 ft tile covers 4 sq ft
DEFAULT_TILE_COVERAGE_SQFT = 4.0

# 10% extra tiles for cutting waste and breakage
DEFAULT_BREAKAGE_PCT = 0.10

# Guards the breakage ceiling against float noise (100 * 1.1 == 110.00000000000001)
_CEIL_PRECISION = 9


@dataclass(frozen=True)
class Dimensions:
    """Washroom dimensions in feet."""
    length: float
    width: float
    height: float = DEFAULT_WALL_HEIGHT_FT

    def validate(self) -> "Dimensions":
        """Raise InvalidGeometryError unless every side is a positive number."""
        for name in ("length", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidGeometryError(name, value)
            if math.isnan(value) or math.isinf(value) or value <= 0:
                raise InvalidGeometryError(name, value)
        if not math.isfinite(self.total_area):
            raise InvalidGeometryError("total_area", self.total_area, "Dimensions are too large to estimate")
        return self

    @property
    def floor_area(self) -> float:
        return self.length * self.width

    @property
    def perimeter(self) -> float:
        return 2 * (self.length + self.width)

    @property
    def wall_area(self) -> float:
        """Total wall area (4 walls)."""
        return self.perimeter * self.height

    @property
    def total_area(self) -> float:
        """Floor plus wall area, i.e. everything that gets tiled."""
        return self.floor_area + self.wall_area


@dataclass(frozen=True)
class TileQuantity:
    """Tile count before and after the breakage overage."""
    initial: int
    with_breakage: int
    coverage_per_unit: float
    breakage_pct: float
    area: float


class MaterialCalculator:
    """Calculate tile quantities for a washroom."""

    def __init__(
        self,
        tile_coverage_per_unit: float = DEFAULT_TILE_COVERAGE_SQFT,
        breakage_pct: float = DEFAULT_BREAKAGE_PCT,
    ):
        """
        Initialize the calculator.

        Args:
            tile_coverage_per_unit: Area covered by one tile (sq ft)
            breakage_pct: Fractional overage on top of the initial count (0.10 = 10%)
        """
        if not tile_coverage_per_unit or not math.isfinite(tile_coverage_per_unit) or tile_coverage_per_unit <= 0:
            raise ConfigurationError(
                f"Tile coverage per unit must be a finite number greater than 0 (got {tile_coverage_per_unit!r})"
            )
        if not math.isfinite(breakage_pct) or breakage_pct < 0:
            raise ConfigurationError(
                f"Breakage percentage must be a finite number of at least 0 (got {breakage_pct!r})"
            )
        self.tile_coverage_per_unit = tile_coverage_per_unit
        self.breakage_pct = breakage_pct

    def tiles_for_area(self, total_area: float) -> int:
        """Stage one: whole tiles needed to cover the raw area."""
        tiles = total_area / self.tile_coverage_per_unit
        if not math.isfinite(tiles):
            raise InvalidGeometryError("total_area", total_area, "Tiled area is too large to estimate")
        return math.ceil(tiles)

    def apply_breakage(self, initial: int) -> int:
        """
        Stage two: add the breakage overage to an already-rounded tile count.

        The overage is applied to the integer count from stage one, never
        to the raw area, so boundary areas can differ by a whole tile.
        """
        scaled = initial * (1 + self.breakage_pct)
        if not math.isfinite(scaled):
            raise InvalidGeometryError("total_area", initial, "Tile quantity is too large to estimate")
        return math.ceil(round(scaled, _CEIL_PRECISION))

    def calculate_tiles(self, dimensions: Dimensions) -> TileQuantity:
        """
        Calculate tile quantities for a washroom.

        Args:
            dimensions: Validated washroom dimensions

        Returns:
            TileQuantity with both the initial and the breakage-adjusted count
        """
        total_area = dimensions.validate().total_area
        initial = self.tiles_for_area(total_area)
        return TileQuantity(
            initial=initial,
            with_breakage=self.apply_breakage(initial),
            coverage_per_unit=self.tile_coverage_per_unit,
            breakage_pct=self.breakage_pct,
            area=total_area,
        )


def format_material_report(dimensions: Dimensions, tiles: TileQuantity) -> str:
    """Format areas and tile quantities as a readable report."""
    lines = [
        "=" * 60,
        "TILING QUANTITY REPORT",
        "=" * 60,
        "",
        f"Dimensions: {dimensions.length:g} x {dimensions.width:g} x {dimensions.height:g} ft",
        "-" * 40,
        f"  Floor area: {dimensions.floor_area:.2f} sq ft",
        f"  Wall area:  {dimensions.wall_area:.2f} sq ft",
        f"  Total area: {dimensions.total_area:.2f} sq ft",
        "",
        f"Tiles ({tiles.coverage_per_unit:g} sq ft each)",
        "-" * 40,
        f"  Initial quantity: {tiles.initial} tiles",
        f"  With {tiles.breakage_pct:.0%} breakage: {tiles.with_breakage} tiles",
        "",
        "=" * 60,
    ]
    return "\n".join(lines)
