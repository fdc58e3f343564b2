"""
Dish customization rules.

Each modifier group on a dish may be required and may bound how many of
its modifiers can be picked. Prices here are in dollars.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ModifierOption:
    id: int
    name: str
    price: float = 0.0


@dataclass
class ModifierGroupRule:
    id: int
    name: str
    is_required: bool = False
    min_selections: int = 0
    max_selections: Optional[int] = None
    modifiers: list[ModifierOption] = field(default_factory=list)


@dataclass
class SelectedModifier:
    group_id: int
    modifier_id: int
    name: str = ""
    price: float = 0.0


@dataclass
class ModifierValidationError:
    group_id: int
    group_name: str
    message: str
    type: str  # required | min_selections | max_selections


@dataclass
class ModifierValidationResult:
    is_valid: bool
    errors: list[ModifierValidationError]
    total_modifier_price: float

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": [e.__dict__ for e in self.errors],
            "total_modifier_price": round(self.total_modifier_price, 2),
        }


def validate_modifier_selections(
    groups: list[ModifierGroupRule],
    selected: list[SelectedModifier],
) -> ModifierValidationResult:
    """
    Check selections against every group's rules.

    A required group with nothing selected reports both the "required"
    error and, when its minimum is positive, the minimum error.
    """
    errors: list[ModifierValidationError] = []
    counts: dict[int, int] = {}
    total = 0.0

    for mod in selected:
        counts[mod.group_id] = counts.get(mod.group_id, 0) + 1
        total += mod.price

    for group in groups:
        count = counts.get(group.id, 0)
        name = group.name.lower()

        if group.is_required and count == 0:
            errors.append(ModifierValidationError(group.id, group.name, f"Please select a {name}", "required"))

        if count < group.min_selections:
            errors.append(ModifierValidationError(
                group.id, group.name, f"Select at least {group.min_selections} {name}", "min_selections",
            ))

        if group.max_selections is not None and count > group.max_selections:
            errors.append(ModifierValidationError(
                group.id, group.name, f"Select at most {group.max_selections} {name}", "max_selections",
            ))

    return ModifierValidationResult(is_valid=not errors, errors=errors, total_modifier_price=total)


def calculate_dish_price(
    base_price: float,
    selected: list[SelectedModifier],
    quantity: int = 1,
    size_price: Optional[float] = None,
) -> float:
    """(size price, or base price, + modifier prices) x quantity."""
    unit = size_price if size_price is not None else base_price
    unit += sum(mod.price for mod in selected)
    return round(unit * quantity, 2)
