"""
Washroom Quote - Cost Estimation Engine

This module turns the quote wizard's selections plus the configured rate
tables into a line-itemised washroom renovation estimate.
"""

import math
from dataclasses import dataclass, field, asdict, replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
from enum import Enum

from .errors import ConfigurationError, MissingSelectionError
from .material_calculator import (
    DEFAULT_BREAKAGE_PCT,
    DEFAULT_TILE_COVERAGE_SQFT,
    DEFAULT_WALL_HEIGHT_FT,
    Dimensions,
    MaterialCalculator,
)


class ProjectType(Enum):
    """Kind of washroom project."""
    NEW = "new"
    RENOVATION = "renovation"


class PlumbingRequirement(Enum):
    """Scope of plumbing work."""
    COMPLETE = "complete"          # Pipes, fixtures and connections
    FIXTURE_ONLY = "fixtureOnly"   # Fixtures on existing connections


class Timeline(Enum):
    """Project timeline options."""
    STANDARD = "standard"   # 4 weeks
    FLEXIBLE = "flexible"   # More than 4 weeks, discounted


class FixtureCategory(Enum):
    """Fixture catalogs. Ids are only meaningful inside their own catalog."""
    ELECTRICAL = "electrical"
    BATHROOM = "bathroom"


def _check_non_negative(name: str, value: float) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number (got {value!r})")
    if math.isnan(value) or math.isinf(value):
        raise ConfigurationError(f"{name} must be a finite number (got {value!r})")
    if value < 0:
        raise ConfigurationError(f"{name} cannot be negative (got {value!r})")
    return value


@dataclass(frozen=True)
class PlumbingFlatFee:
    """Fixed plumbing fee per requirement kind."""
    complete: float = 1500.0
    fixture_only: float = 800.0

    def for_requirement(self, requirement: PlumbingRequirement) -> float:
        if requirement is PlumbingRequirement.COMPLETE:
            return _check_non_negative("Complete plumbing fee", self.complete)
        return _check_non_negative("Fixture-only plumbing fee", self.fixture_only)


@dataclass(frozen=True)
class RateConfig:
    """Snapshot of the externally configurable rates."""
    plumbing_rate_per_area_unit: float = 50.0
    tile_cost_per_unit: float = 80.0
    tiling_labor_rate_per_area_unit: float = 85.0
    tile_coverage_per_unit: float = DEFAULT_TILE_COVERAGE_SQFT
    breakage_pct: float = DEFAULT_BREAKAGE_PCT
    plumbing_flat_fee: PlumbingFlatFee = field(default_factory=PlumbingFlatFee)
    timeline_discount_pct: float = 0.05
    wall_height: float = DEFAULT_WALL_HEIGHT_FT

    # Keys used by the settings table ("calculator" category)
    SETTINGS_KEYS = {
        "plumbingRatePerSqFt": "plumbing_rate_per_area_unit",
        "tileCostPerUnit": "tile_cost_per_unit",
        "tilingLaborRate": "tiling_labor_rate_per_area_unit",
        "tileSizeSqFt": "tile_coverage_per_unit",
        "breakagePct": "breakage_pct",
        "timelineDiscountPct": "timeline_discount_pct",
        "wallHeight": "wall_height",
    }

    def validate(self) -> "RateConfig":
        """Raise ConfigurationError if any rate is out of range."""
        _check_non_negative("Plumbing rate", self.plumbing_rate_per_area_unit)
        _check_non_negative("Tile cost", self.tile_cost_per_unit)
        _check_non_negative("Tiling labor rate", self.tiling_labor_rate_per_area_unit)
        _check_non_negative("Breakage percentage", self.breakage_pct)
        _check_non_negative("Wall height", self.wall_height)
        self.plumbing_flat_fee.for_requirement(PlumbingRequirement.COMPLETE)
        self.plumbing_flat_fee.for_requirement(PlumbingRequirement.FIXTURE_ONLY)
        if _check_non_negative("Tile coverage", self.tile_coverage_per_unit) == 0:
            raise ConfigurationError("Tile coverage must be greater than 0")
        if _check_non_negative("Timeline discount", self.timeline_discount_pct) > 1:
            raise ConfigurationError(
                f"Timeline discount must be between 0 and 1 (got {self.timeline_discount_pct!r})"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Optional[Dict]) -> "RateConfig":
        """
        Build a RateConfig from the stored settings JSON.

        Args:
            settings: Dict such as {"plumbingRatePerSqFt": 50, "tileCostPerUnit": 80,
                      "tilingLaborRate": 85}; missing keys keep their defaults

        Returns:
            RateConfig
        """
        settings = settings or {}
        values = {}
        for key, attr in cls.SETTINGS_KEYS.items():
            if settings.get(key) is not None:
                values[attr] = float(settings[key])

        fees = settings.get("plumbingRates") or {}
        defaults = PlumbingFlatFee()
        values["plumbing_flat_fee"] = PlumbingFlatFee(
            complete=float(fees.get("complete", defaults.complete)),
            fixture_only=float(fees.get("fixtureOnly", defaults.fixture_only)),
        )
        return cls(**values)

    def to_settings(self) -> Dict:
        """Inverse of from_settings."""
        data = {key: getattr(self, attr) for key, attr in self.SETTINGS_KEYS.items()}
        data["plumbingRates"] = {
            "complete": self.plumbing_flat_fee.complete,
            "fixtureOnly": self.plumbing_flat_fee.fixture_only,
        }
        return data


@dataclass(frozen=True)
class FixtureEntry:
    """A priced fixture."""
    id: str
    name: str
    price: float
    description: Optional[str] = None


class FixtureCatalog:
    """Lookup of fixture id to price for one fixture category."""

    def __init__(self, category: FixtureCategory, entries: Iterable[FixtureEntry] = ()):
        self.category = category
        self._entries: Dict[str, FixtureEntry] = {}
        for entry in entries:
            if entry.id in self._entries:
                raise ConfigurationError(
                    f"Duplicate fixture id '{entry.id}' in {category.value} catalog"
                )
            self._entries[entry.id] = entry

    def __contains__(self, fixture_id: str) -> bool:
        return fixture_id in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, fixture_id: str) -> Optional[FixtureEntry]:
        return self._entries.get(fixture_id)

    def price_of(self, fixture_id: str) -> float:
        """Price of a fixture; unknown ids cost nothing."""
        entry = self._entries.get(fixture_id)
        if entry is None:
            return 0.0
        return _check_non_negative(f"Price of fixture '{fixture_id}'", entry.price)

    def total_for(self, fixture_ids: Iterable[str]) -> float:
        return sum((self.price_of(fixture_id) for fixture_id in sorted(set(fixture_ids))), 0.0)

    def unknown_ids(self, fixture_ids: Iterable[str]) -> List[str]:
        return sorted(fid for fid in set(fixture_ids) if fid not in self._entries)

    def to_dict(self) -> Dict[str, Dict]:
        return {entry.id: asdict(entry) for entry in self}

    @classmethod
    def from_rows(cls, category: FixtureCategory, rows: Iterable[Dict]) -> "FixtureCatalog":
        """Build a catalog from `fixtures` table rows (fixture_id, name, price, description)."""
        entries = []
        for row in rows or []:
            entries.append(FixtureEntry(
                id=str(row["fixture_id"]),
                name=row.get("name") or str(row["fixture_id"]),
                price=float(row.get("price") or 0),
                description=row.get("description"),
            ))
        return cls(category, entries)


@dataclass(frozen=True)
class BrandEntry:
    """A fittings brand and its client-facing premium."""
    id: str
    name: str
    premium_price: float


class BrandCatalog:
    """Lookup of brand id to premium price."""

    def __init__(self, entries: Iterable[BrandEntry] = ()):
        self._entries: Dict[str, BrandEntry] = {}
        for entry in entries:
            if entry.id in self._entries:
                raise ConfigurationError(f"Duplicate brand id '{entry.id}'")
            self._entries[entry.id] = entry

    def __contains__(self, brand_id: str) -> bool:
        return brand_id in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, brand_id: Optional[str]) -> Optional[BrandEntry]:
        if not brand_id:
            return None
        return self._entries.get(brand_id)

    def premium_for(self, brand_id: Optional[str]) -> float:
        """Premium for the selected brand; no brand or an unknown brand costs nothing."""
        entry = self.get(brand_id)
        if entry is None:
            return 0.0
        return _check_non_negative(f"Premium of brand '{brand_id}'", entry.premium_price)

    def to_dict(self) -> Dict[str, Dict]:
        return {entry.id: asdict(entry) for entry in self}

    @classmethod
    def from_rows(cls, rows: Iterable[Dict]) -> "BrandCatalog":
        """Build a catalog from `brands` table rows (id, name, client_price)."""
        return cls(
            BrandEntry(
                id=str(row["id"]),
                name=row.get("name") or str(row["id"]),
                premium_price=float(row.get("client_price") or 0),
            )
            for row in rows or []
        )


@dataclass(frozen=True)
class PricingContext:
    """Everything the estimator needs, fetched once per wizard session."""
    rates: RateConfig
    electrical: FixtureCatalog
    additional: FixtureCatalog
    brands: BrandCatalog
    using_defaults: bool = False

    def to_dict(self) -> Dict:
        return {
            "rates": self.rates.to_settings(),
            "electrical_fixtures": self.electrical.to_dict(),
            "additional_fixtures": self.additional.to_dict(),
            "brands": self.brands.to_dict(),
            "using_defaults": self.using_defaults,
        }


class PricingDatabase:
    """
    Built-in pricing used when the settings store cannot be reached.

    Prices are in INR and match the values the quote wizard shipped with.
    """

    ELECTRICAL_FIXTURES: Tuple[FixtureEntry, ...] = (
        FixtureEntry("ledMirror", "LED Mirror", 150.0, "Energy-efficient LED mirror with anti-fog technology"),
        FixtureEntry("exhaustFan", "Exhaust Fan", 120.0, "Quiet operation with humidity sensor"),
        FixtureEntry("waterHeater", "Water Heater", 350.0, "Energy-efficient instant water heating"),
    )

    ADDITIONAL_FIXTURES: Tuple[FixtureEntry, ...] = (
        FixtureEntry("showerPartition", "Shower Partition", 450.0, "Glass shower partition"),
        FixtureEntry("vanity", "Vanity", 380.0, "Vanity unit with storage"),
        FixtureEntry("bathtub", "Bathtub", 650.0, "Acrylic alcove bathtub"),
        FixtureEntry("jacuzzi", "Jacuzzi", 1200.0, "Whirlpool jacuzzi tub"),
    )

    BRANDS: Tuple[BrandEntry, ...] = (
        BrandEntry("brand1", "Luxe Bathware", 1500.0),
        BrandEntry("brand2", "Modern Plumbing", 1200.0),
        BrandEntry("brand3", "Premium Fixtures", 2000.0),
        BrandEntry("brand4", "Elegant Washrooms", 1800.0),
        BrandEntry("brand5", "Eco Bath Solutions", 1350.0),
        BrandEntry("brand6", "Designer Washrooms", 2200.0),
    )

    @classmethod
    def default_rates(cls) -> RateConfig:
        return RateConfig()

    @classmethod
    def default_pricing_context(cls, using_defaults: bool = True) -> PricingContext:
        """The built-in snapshot, flagged so callers can tell the user."""
        return PricingContext(
            rates=cls.default_rates(),
            electrical=FixtureCatalog(FixtureCategory.ELECTRICAL, cls.ELECTRICAL_FIXTURES),
            additional=FixtureCatalog(FixtureCategory.BATHROOM, cls.ADDITIONAL_FIXTURES),
            brands=BrandCatalog(cls.BRANDS),
            using_defaults=using_defaults,
        )


@dataclass(frozen=True)
class CustomerDetails:
    """Contact details; validated by the wizard, not the estimator."""
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""


def _enum_or_none(enum_cls, value):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


@dataclass(frozen=True)
class SelectionSet:
    """The quote wizard's accumulated choices."""
    dimensions: Dimensions
    plumbing_requirement: Optional[PlumbingRequirement]
    project_type: Optional[ProjectType] = None
    electrical_fixture_ids: FrozenSet[str] = frozenset()
    additional_fixture_ids: FrozenSet[str] = frozenset()
    timeline: Optional[Timeline] = Timeline.STANDARD
    brand_id: Optional[str] = None
    customer: CustomerDetails = field(default_factory=CustomerDetails)

    def __post_init__(self):
        # Accept any iterable of ids but store an immutable set
        object.__setattr__(self, "electrical_fixture_ids", frozenset(self.electrical_fixture_ids))
        object.__setattr__(self, "additional_fixture_ids", frozenset(self.additional_fixture_ids))

    def to_dict(self) -> Dict:
        """JSON-serialisable form, stored as a submission's form_data."""
        return {
            "projectType": self.project_type.value if self.project_type else "",
            "dimensions": asdict(self.dimensions),
            "electricalFixtures": sorted(self.electrical_fixture_ids),
            "plumbingRequirements": self.plumbing_requirement.value if self.plumbing_requirement else "",
            "additionalFixtures": sorted(self.additional_fixture_ids),
            "projectTimeline": self.timeline.value if self.timeline else "",
            "brandSelection": self.brand_id or "",
            "customerDetails": asdict(self.customer),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "SelectionSet":
        """
        Inverse of to_dict.

        Fixture selections may be a list of ids or the wizard's
        {"ledMirror": true, "exhaustFan": false} checkbox mapping.
        """
        def selected(value) -> FrozenSet[str]:
            if isinstance(value, dict):
                return frozenset(k for k, is_selected in value.items() if is_selected)
            return frozenset(value or ())

        dims = data.get("dimensions") or {}
        return cls(
            project_type=_enum_or_none(ProjectType, data.get("projectType")),
            dimensions=Dimensions(
                length=dims.get("length", 0),
                width=dims.get("width", 0),
                height=dims.get("height", DEFAULT_WALL_HEIGHT_FT),
            ),
            electrical_fixture_ids=selected(data.get("electricalFixtures")),
            plumbing_requirement=_enum_or_none(PlumbingRequirement, data.get("plumbingRequirements")),
            additional_fixture_ids=selected(data.get("additionalFixtures")),
            timeline=_enum_or_none(Timeline, data.get("projectTimeline")),
            brand_id=data.get("brandSelection") or None,
            customer=CustomerDetails(**(data.get("customerDetails") or {})),
        )


@dataclass(frozen=True)
class EstimateBreakdown:
    """Every quantity computed for one estimate."""
    floor_area: float
    wall_area: float
    total_area: float
    tile_quantity_initial: int
    tile_quantity_with_breakage: int
    tile_material_cost: float
    tiling_labor_cost: float
    total_tiling_cost: float
    electrical_fixtures_price: float
    plumbing_price: float
    additional_fixtures_price: float
    brand_premium: float
    subtotal: float
    timeline_discount: float
    total: float
    base_price: float = 0.0

    # Stored breakdowns use the wizard's camelCase keys
    FIELD_KEYS = {
        "base_price": "basePrice",
        "electrical_fixtures_price": "electricalFixturesPrice",
        "plumbing_price": "plumbingPrice",
        "additional_fixtures_price": "additionalFixturesPrice",
        "brand_premium": "brandPremium",
        "timeline_discount": "timelineDiscount",
        "floor_area": "floorArea",
        "wall_area": "wallArea",
        "total_area": "totalArea",
        "tile_quantity_initial": "tileQuantityInitial",
        "tile_quantity_with_breakage": "tileQuantityWithBreakage",
        "tile_material_cost": "tileMaterialCost",
        "tiling_labor_cost": "tilingLaborCost",
        "total_tiling_cost": "totalTilingCost",
        "subtotal": "subtotal",
        "total": "total",
    }

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, attr) for attr, key in self.FIELD_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict) -> "EstimateBreakdown":
        values = {attr: data[key] for attr, key in cls.FIELD_KEYS.items() if key in data}
        if "subtotal" not in values:
            # Breakdowns saved before the subtotal was stored
            values["subtotal"] = values["total"] + values["timeline_discount"]
        return cls(**values)

    def line_items(self) -> List[Tuple[str, float]]:
        """Cost lines in display order, skipping zero-cost fixtures."""
        items = []
        if self.electrical_fixtures_price > 0:
            items.append(("Electrical Fixtures", self.electrical_fixtures_price))
        if self.plumbing_price > 0:
            items.append(("Plumbing", self.plumbing_price))
        if self.additional_fixtures_price > 0:
            items.append(("Additional Fixtures", self.additional_fixtures_price))
        items.append(("Tile Material", self.tile_material_cost))
        items.append(("Tiling Labor", self.tiling_labor_cost))
        if self.brand_premium > 0:
            items.append(("Brand Premium", self.brand_premium))
        if self.timeline_discount > 0:
            items.append(("Timeline Discount", -self.timeline_discount))
        return items


class CostEstimator:
    """
    Calculate a washroom estimate from a selection set and a pricing snapshot.

    Stateless apart from the snapshot it is built with: the same selections
    always produce the same breakdown, and the estimator never logs.
    """

    def __init__(self, context: Optional[PricingContext] = None):
        """
        Initialize the cost estimator.

        Args:
            context: Rates and catalogs for this session (built-in defaults if None)
        """
        self.context = context or PricingDatabase.default_pricing_context()

    @property
    def rates(self) -> RateConfig:
        return self.context.rates

    def plumbing_price(self, requirement: Optional[PlumbingRequirement], floor_area: float) -> float:
        """Flat fee for the requirement plus the per-area infrastructure rate."""
        if requirement is None:
            raise MissingSelectionError("plumbing_requirement")
        flat_fee = self.rates.plumbing_flat_fee.for_requirement(requirement)
        return flat_fee + floor_area * self.rates.plumbing_rate_per_area_unit

    def timeline_discount(self, timeline: Optional[Timeline], subtotal: float) -> float:
        if timeline is None:
            raise MissingSelectionError("timeline")
        if timeline is Timeline.FLEXIBLE:
            return subtotal * self.rates.timeline_discount_pct
        return 0.0

    def estimate(self, selections: SelectionSet) -> EstimateBreakdown:
        """
        Calculate the full breakdown for one set of selections.

        Args:
            selections: The wizard's choices

        Returns:
            EstimateBreakdown

        Raises:
            InvalidGeometryError: a dimension is not positive
            MissingSelectionError: no plumbing requirement or timeline was chosen
            ConfigurationError: a rate or selected price is negative or not finite
        """
        rates = self.rates.validate()
        dimensions = selections.dimensions.validate()

        # Areas
        floor_area = dimensions.floor_area
        wall_area = dimensions.wall_area
        total_area = floor_area + wall_area

        # Tiles, rounded up twice
        calculator = MaterialCalculator(rates.tile_coverage_per_unit, rates.breakage_pct)
        tile_quantity_initial = calculator.tiles_for_area(total_area)
        tile_quantity_with_breakage = calculator.apply_breakage(tile_quantity_initial)

        # Labor follows the continuous area, not the tile count
        tile_material_cost = tile_quantity_with_breakage * rates.tile_cost_per_unit
        tiling_labor_cost = total_area * rates.tiling_labor_rate_per_area_unit
        total_tiling_cost = tile_material_cost + tiling_labor_cost

        electrical_fixtures_price = self.context.electrical.total_for(selections.electrical_fixture_ids)
        plumbing_price = self.plumbing_price(selections.plumbing_requirement, floor_area)
        additional_fixtures_price = self.context.additional.total_for(selections.additional_fixture_ids)
        brand_premium = self.context.brands.premium_for(selections.brand_id)

        subtotal = (
            electrical_fixtures_price
            + plumbing_price
            + additional_fixtures_price
            + brand_premium
            + total_tiling_cost
        )
        if not math.isfinite(subtotal):
            raise ConfigurationError(f"Rates produce a non-finite subtotal ({subtotal!r})")
        timeline_discount = self.timeline_discount(selections.timeline, subtotal)
        total = max(subtotal - timeline_discount, 0.0)

        return EstimateBreakdown(
            floor_area=floor_area,
            wall_area=wall_area,
            total_area=total_area,
            tile_quantity_initial=tile_quantity_initial,
            tile_quantity_with_breakage=tile_quantity_with_breakage,
            tile_material_cost=tile_material_cost,
            tiling_labor_cost=tiling_labor_cost,
            total_tiling_cost=total_tiling_cost,
            electrical_fixtures_price=electrical_fixtures_price,
            plumbing_price=plumbing_price,
            additional_fixtures_price=additional_fixtures_price,
            brand_premium=brand_premium,
            subtotal=subtotal,
            timeline_discount=timeline_discount,
            total=total,
        )

    def unknown_selections(self, selections: SelectionSet) -> Dict[str, List[str]]:
        """Selected ids that no catalog knows about (they were priced at zero)."""
        unknown = {
            "electrical": self.context.electrical.unknown_ids(selections.electrical_fixture_ids),
            "additional": self.context.additional.unknown_ids(selections.additional_fixture_ids),
            "brand": [],
        }
        if selections.brand_id and selections.brand_id not in self.context.brands:
            unknown["brand"] = [selections.brand_id]
        return {k: v for k, v in unknown.items() if v}


def compare_timelines(context: PricingContext, selections: SelectionSet) -> Dict[str, float]:
    """
    Compare the estimate total for every timeline option.

    Returns:
        Dictionary mapping timeline value to total estimate
    """
    estimator = CostEstimator(context)
    return {
        timeline.value: estimator.estimate(replace(selections, timeline=timeline)).total
        for timeline in Timeline
    }


def format_cost_report(breakdown: EstimateBreakdown, currency: str = "INR") -> str:
    """Format a breakdown as a readable report."""
    lines = [
        "=" * 60,
        "WASHROOM ESTIMATE",
        "=" * 60,
        "",
        f"  Floor area: {breakdown.floor_area:,.2f} sq ft",
        f"  Wall area:  {breakdown.wall_area:,.2f} sq ft",
        f"  Tiles: {breakdown.tile_quantity_initial} (+ breakage = {breakdown.tile_quantity_with_breakage})",
        "",
        "-" * 40,
    ]
    for label, amount in breakdown.line_items():
        lines.append(f"  {label:<24}{currency} {amount:>14,.2f}")
    lines.append("-" * 40)
    lines.append(f"  {'TOTAL ESTIMATE':<24}{currency} {breakdown.total:>14,.2f}")
    lines.append("=" * 60)
    return "\n".join(lines)
