"""Custom table pricing.

Turns buyer dimensions (feet) and the chosen lumber into a bill of planks
and a selling price. Every function here is pure: no database, no clock.

Plank stock:
    3"x3"x10ft  legs and frame
    2"x12"x10ft tabletop, one plank is 1 ft wide
"""
import math
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from furnishop import config
from furnishop.errors import ValidationError

CENT = Decimal("0.01")


def to_decimal(value, field_name: str) -> Decimal:
    """Coerce a number coming from JSON/forms, rejecting NaN and infinities."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(field_name, "must be a number")
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(field_name, "must be a number")
    if not d.is_finite():
        raise ValidationError(field_name, "must be a finite number")
    return d


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Dimensions:
    length: Decimal
    width: Decimal
    height: Decimal

    @classmethod
    def of(cls, length, width, height) -> "Dimensions":
        return cls(
            length=to_decimal(length, "length"),
            width=to_decimal(width, "width"),
            height=to_decimal(height, "height"),
        )

    @property
    def volume(self) -> Decimal:
        return self.length * self.width * self.height


@dataclass(frozen=True)
class CostParameters:
    labor_cost_per_day: Decimal
    profit_margin: Decimal   # fraction, 0.5 == 50%
    overhead_cost: Decimal

    @classmethod
    def of(cls, labor_cost_per_day, profit_margin, overhead_cost) -> "CostParameters":
        params = cls(
            labor_cost_per_day=to_decimal(labor_cost_per_day, "labor_cost_per_day"),
            profit_margin=to_decimal(profit_margin, "profit_margin"),
            overhead_cost=to_decimal(overhead_cost, "overhead_cost"),
        )
        for name in ("labor_cost_per_day", "profit_margin", "overhead_cost"):
            if getattr(params, name) < 0:
                raise ValidationError(name, "must not be negative")
        return params

    @classmethod
    def for_item(cls, item) -> "CostParameters":
        return cls.of(item.labor_cost_per_day, item.profit_margin, item.overhead_cost)


@dataclass(frozen=True)
class MaterialCost:
    name: str
    plank_leg_cost: Decimal   # 3x3 stock
    plank_top_cost: Decimal   # 2x12 stock


class MaterialCostTable:
    """Read-only lookup of material name -> plank unit costs."""

    def __init__(self, materials: Iterable[MaterialCost] = ()):
        self._by_name: Dict[str, MaterialCost] = {}
        for m in materials:
            self._by_name[m.name] = m

    @classmethod
    def from_options(cls, options) -> "MaterialCostTable":
        """Build from catalog ``MaterialOption`` rows."""
        return cls(
            MaterialCost(
                name=o.name,
                plank_leg_cost=to_decimal(o.plank_3x3_cost, "plank_3x3_cost"),
                plank_top_cost=to_decimal(o.plank_2x12_cost, "plank_2x12_cost"),
            )
            for o in options
        )

    def names(self):
        return sorted(self._by_name)

    def resolve(self, name: Optional[str], field_name: str) -> MaterialCost:
        if not name:
            raise ValidationError(field_name, "material is required")
        material = self._by_name.get(name)
        if material is None:
            raise ValidationError(field_name, f"unknown material '{name}', choose one of: {', '.join(self.names())}")
        return material


@dataclass(frozen=True)
class PlankCounts:
    legs: int
    tabletop: int
    frame: int


@dataclass(frozen=True)
class PriceBreakdown:
    total_labor_cost: Decimal
    total_material_cost: Decimal
    overhead_cost: Decimal
    subtotal: Decimal
    profit_amount: Decimal
    final_selling_price: Decimal
    planks: PlankCounts
    volume: Decimal
    leg_material: Optional[str] = None
    top_material: Optional[str] = None
    leg_plank_unit_cost: Optional[Decimal] = None
    top_plank_unit_cost: Optional[Decimal] = None
    labor_days: Optional[Decimal] = None
    dimensions: Optional[Dimensions] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        """JSON-safe snapshot stored on the order line."""
        def s(v):
            return None if v is None else str(v)
        return {
            "total_labor_cost": s(self.total_labor_cost),
            "total_material_cost": s(self.total_material_cost),
            "overhead_cost": s(self.overhead_cost),
            "subtotal": s(self.subtotal),
            "profit_amount": s(self.profit_amount),
            "final_selling_price": s(self.final_selling_price),
            "planks": {
                "legs": self.planks.legs,
                "tabletop": self.planks.tabletop,
                "frame": self.planks.frame,
            },
            "volume": s(self.volume),
            "leg_material": self.leg_material,
            "top_material": self.top_material,
            "leg_plank_unit_cost": s(self.leg_plank_unit_cost),
            "top_plank_unit_cost": s(self.top_plank_unit_cost),
            "labor_days": s(self.labor_days),
        }


# ---------- plank counts ----------

def leg_planks(width) -> int:
    # wide tables take one extra leg plank; anything else is 2
    if to_decimal(width, "width") == Decimal("6.0"):
        return 3
    return 2


def tabletop_planks(length, width) -> int:
    length = to_decimal(length, "length")
    width = to_decimal(width, "width")
    strips_needed = math.ceil(width / Decimal("1.0"))
    sections_per_plank = 2 if length <= Decimal("5.0") else 1
    return math.ceil(Decimal(strips_needed) / sections_per_plank)


def frame_planks(length, width) -> int:
    length = to_decimal(length, "length")
    width = to_decimal(width, "width")
    count = 1 if length <= Decimal("5.0") else 2   # length pieces
    count += 1 if width <= Decimal("5.0") else 2   # width pieces
    return count


# ---------- validation ----------

def validate_dimensions(dimensions: Dimensions, bounds=None) -> None:
    bounds = bounds or config.DIMENSION_BOUNDS
    for name in ("length", "width", "height"):
        value = getattr(dimensions, name)
        low, high = bounds[name]
        if value <= 0:
            raise ValidationError(name, "must be positive")
        if value < low or value > high:
            raise ValidationError(name, f"must be between {low} and {high} ft, got {value}")


def validate_labor_days(labor_days) -> Decimal:
    days = to_decimal(labor_days, "labor_days")
    if days < 0:
        raise ValidationError("labor_days", "must not be negative")
    return days


# ---------- price ----------

def calculate_custom_price(
    dimensions: Dimensions,
    labor_days,
    costs: CostParameters,
    frame_unit_cost,
    top_unit_cost,
    include_frame_planks: Optional[bool] = None,
    bounds=None,
) -> PriceBreakdown:
    """Price one custom table.

    ``frame_unit_cost`` is the 3x3 plank cost of the legs/frame material,
    ``top_unit_cost`` the 2x12 plank cost of the tabletop material. Frame
    planks are listed in the bill but priced only when
    ``include_frame_planks`` (default: ``config.PRICE_FRAME_PLANKS``).
    """
    validate_dimensions(dimensions, bounds)
    days = validate_labor_days(labor_days)
    frame_unit_cost = to_decimal(frame_unit_cost, "frame_unit_cost")
    top_unit_cost = to_decimal(top_unit_cost, "top_unit_cost")
    if frame_unit_cost < 0:
        raise ValidationError("frame_unit_cost", "must not be negative")
    if top_unit_cost < 0:
        raise ValidationError("top_unit_cost", "must not be negative")
    if include_frame_planks is None:
        include_frame_planks = config.PRICE_FRAME_PLANKS

    planks = PlankCounts(
        legs=leg_planks(dimensions.width),
        tabletop=tabletop_planks(dimensions.length, dimensions.width),
        frame=frame_planks(dimensions.length, dimensions.width),
    )

    leg_frame_count = planks.legs + (planks.frame if include_frame_planks else 0)
    material_cost = leg_frame_count * frame_unit_cost + planks.tabletop * top_unit_cost
    labor_cost = days * costs.labor_cost_per_day
    subtotal = money(labor_cost + material_cost + costs.overhead_cost)
    profit = money(subtotal * costs.profit_margin)

    return PriceBreakdown(
        total_labor_cost=money(labor_cost),
        total_material_cost=money(material_cost),
        overhead_cost=money(costs.overhead_cost),
        subtotal=subtotal,
        profit_amount=profit,
        final_selling_price=subtotal + profit,
        planks=planks,
        volume=dimensions.volume,
        leg_plank_unit_cost=frame_unit_cost,
        top_plank_unit_cost=top_unit_cost,
        labor_days=days,
        dimensions=dimensions,
    )


def quote(
    dimensions: Dimensions,
    labor_days,
    costs: CostParameters,
    table: MaterialCostTable,
    leg_material_name: Optional[str],
    top_material_name: Optional[str],
    include_frame_planks: Optional[bool] = None,
) -> PriceBreakdown:
    """Resolve the two materials by name and price the table."""
    leg = table.resolve(leg_material_name, "leg_material_name")
    top = table.resolve(top_material_name, "top_material_name")
    breakdown = calculate_custom_price(
        dimensions,
        labor_days,
        costs,
        frame_unit_cost=leg.plank_leg_cost,
        top_unit_cost=top.plank_top_cost,
        include_frame_planks=include_frame_planks,
    )
    return replace(breakdown, leg_material=leg.name, top_material=top.name)


def quote_for_item(item, dimensions: Dimensions, labor_days, leg_material_name, top_material_name) -> PriceBreakdown:
    """Price a customizable catalog item. ``labor_days=None`` uses the item estimate."""
    if not item.is_customizable:
        raise ValidationError("item_id", f"item {item.id} is not customizable")
    if labor_days is None:
        labor_days = item.estimated_days
    return quote(
        dimensions,
        labor_days,
        CostParameters.for_item(item),
        MaterialCostTable.from_options(item.materials),
        leg_material_name,
        top_material_name,
    )
