"""Credit calculation engine - converts recycled material evidence into loyalty credits"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional

from recycle_ledger.domain.models import CreditCalculation, MaterialQuantity, MaterialType


@dataclass(frozen=True)
class MaterialRate:
    """Credits earned per kg of a material, scaled by its recyclability multiplier"""

    credits_per_kg: float
    multiplier: float


@dataclass(frozen=True)
class WeightBonus:
    threshold_kg: float
    multiplier: float


@dataclass(frozen=True)
class FixedBonus:
    threshold: int
    credits: int


@dataclass(frozen=True)
class CreditRules:
    """
    Rate table and bonus rules used by the engine.

    A simpler rule set is expressed by configuring fewer material types or
    disabling bonuses (set a rule to None), not by a separate code path.
    """

    rates: Mapping[MaterialType, MaterialRate]
    market_prices: Mapping[MaterialType, int]
    weight_bonus: Optional[WeightBonus] = None
    variety_bonus: Optional[FixedBonus] = None
    container_bonus: Optional[FixedBonus] = None


MATERIAL_RATES: Dict[MaterialType, MaterialRate] = {
    MaterialType.PLASTIC: MaterialRate(credits_per_kg=10, multiplier=1.0),
    MaterialType.PAPER: MaterialRate(credits_per_kg=8, multiplier=1.0),
    MaterialType.CARDBOARD: MaterialRate(credits_per_kg=12, multiplier=1.0),
    MaterialType.GLASS: MaterialRate(credits_per_kg=15, multiplier=1.2),
    MaterialType.METAL: MaterialRate(credits_per_kg=25, multiplier=1.5),
    MaterialType.ELECTRONIC: MaterialRate(credits_per_kg=50, multiplier=2.0),
    MaterialType.ORGANIC: MaterialRate(credits_per_kg=5, multiplier=0.8),
    MaterialType.TEXTILE: MaterialRate(credits_per_kg=18, multiplier=1.1),
    MaterialType.OTHER: MaterialRate(credits_per_kg=6, multiplier=0.9),
}

# Reference market prices per kg, in local currency units (display/audit only)
MARKET_PRICES: Dict[MaterialType, int] = {
    MaterialType.PLASTIC: 800,
    MaterialType.PAPER: 600,
    MaterialType.CARDBOARD: 400,
    MaterialType.GLASS: 200,
    MaterialType.METAL: 2000,
    MaterialType.ELECTRONIC: 5000,
    MaterialType.ORGANIC: 100,
    MaterialType.TEXTILE: 1200,
    MaterialType.OTHER: 300,
}

DEFAULT_RULES = CreditRules(
    rates=MATERIAL_RATES,
    market_prices=MARKET_PRICES,
    weight_bonus=WeightBonus(threshold_kg=50, multiplier=1.2),
    variety_bonus=FixedBonus(threshold=3, credits=50),
    container_bonus=FixedBonus(threshold=5, credits=30),
)


def _dec(value: float) -> Decimal:
    # str() keeps the declared decimal digits instead of the binary float expansion
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_base_credits(materials: List[MaterialQuantity], rules: CreditRules = DEFAULT_RULES) -> int:
    """Sum of qty * rate * multiplier per material, each entry rounded before summing"""
    base = 0
    for material in materials:
        rate = rules.rates.get(material.type)
        if rate is None:
            continue
        base += round_half_up(_dec(material.qty_kg) * _dec(rate.credits_per_kg) * _dec(rate.multiplier))
    return base


def calculate_monetary_value(materials: List[MaterialQuantity], rules: CreditRules = DEFAULT_RULES) -> int:
    """Estimated market value of the collected material"""
    total = Decimal(0)
    for material in materials:
        total += _dec(material.qty_kg) * _dec(rules.market_prices.get(material.type, 0))
    return round_half_up(total)


def calculate_average_credits_per_kg(materials: List[MaterialQuantity], rules: CreditRules = DEFAULT_RULES) -> int:
    total_credits = Decimal(0)
    total_weight = Decimal(0)
    for material in materials:
        rate = rules.rates.get(material.type)
        if rate is None:
            continue
        total_credits += _dec(material.qty_kg) * _dec(rate.credits_per_kg) * _dec(rate.multiplier)
        total_weight += _dec(material.qty_kg)

    if total_weight == 0:
        return 0
    return round_half_up(total_credits / total_weight)


def calculate_credits(
    materials: List[MaterialQuantity],
    total_weight_kg: float,
    container_count: int,
    rules: CreditRules = DEFAULT_RULES,
) -> CreditCalculation:
    """
    Map a material-evidence submission to a deterministic credit award.

    Steps:
    1. Base credits per material (rounded per entry)
    2. Weight bonus: base * (multiplier - 1) when total weight >= threshold
    3. Variety bonus: fixed credits when distinct types >= threshold
    4. Container bonus: fixed credits when containers >= threshold

    Bonuses are additive and independent. The function has no side effects,
    so it is safe to recompute inside a retried ledger transaction.

    Example:
        30kg metal + 20kg plastic + 10kg glass, 60kg, 6 containers
        base = 1125 + 200 + 180 = 1505
        weight bonus = round(1505 * 0.2) = 301, variety = 50, containers = 30
        total = 1886
    """
    base = calculate_base_credits(materials, rules)
    bonus = 0
    weight_multiplier = 1.0

    if rules.weight_bonus and total_weight_kg >= rules.weight_bonus.threshold_kg:
        weight_multiplier = rules.weight_bonus.multiplier
        bonus += round_half_up(Decimal(base) * (_dec(weight_multiplier) - 1))

    distinct_types = len({m.type for m in materials})
    if rules.variety_bonus and distinct_types >= rules.variety_bonus.threshold:
        bonus += rules.variety_bonus.credits

    if rules.container_bonus and container_count >= rules.container_bonus.threshold:
        bonus += rules.container_bonus.credits

    return CreditCalculation(
        base_credits=base,
        bonus_credits=bonus,
        total_credits=base + bonus,
        estimated_monetary_value=calculate_monetary_value(materials, rules),
        weight_multiplier=weight_multiplier,
        average_credits_per_kg=calculate_average_credits_per_kg(materials, rules),
    )
