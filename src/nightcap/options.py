"""Consumption options: what was consumed, and how much substance it carries.

Logged events tag what was consumed either with a stable system option id
(``"espresso"``) or, for older rows, a free-text label (``"Espresso"``,
``"my big mug"``).  Both forms are parsed once into a closed variant and
resolved through the single ``SYSTEM_OPTIONS`` table below.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from nightcap.errors import InvalidParameter


@dataclass(frozen=True)
class SystemOption:
    """A built-in consumption option, referenced by its stable id."""

    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class LegacyLabel:
    """A free-text drink tag that matched no system option."""

    text: str

    def __str__(self) -> str:
        return self.text


DrinkType = SystemOption | LegacyLabel


@dataclass(frozen=True)
class OptionSpec:
    """Substance content of one serving of a system option."""

    id: str
    name: str
    substance: str  # "caffeine" or "alcohol"
    drug_amount: float  # per serving, in drug_unit
    drug_unit: str
    default_volume: float | None = None
    serving_unit: str = "ml"


SYSTEM_OPTIONS: dict[str, OptionSpec] = {
    spec.id: spec
    for spec in (
        # Caffeine (mg per serving)
        OptionSpec("coffee", "Coffee", "caffeine", 95.0, "mg", 240.0),
        OptionSpec("espresso", "Espresso", "caffeine", 64.0, "mg", 30.0),
        OptionSpec("instant_coffee", "Instant Coffee", "caffeine", 30.0, "mg", 240.0),
        OptionSpec("black_tea", "Black Tea", "caffeine", 47.0, "mg", 240.0),
        OptionSpec("green_tea", "Green Tea", "caffeine", 29.0, "mg", 240.0),
        OptionSpec("energy_drink", "Energy Drink", "caffeine", 150.0, "mg", 250.0),
        OptionSpec("soft_drink", "Soft Drink", "caffeine", 34.0, "mg", 355.0),
        # Alcohol (standard drinks per serving)
        OptionSpec("beer", "Beer", "alcohol", 1.0, "drinks", 355.0),
        OptionSpec("wine", "Wine", "alcohol", 1.0, "drinks", 150.0),
        OptionSpec("liquor", "Liquor", "alcohol", 1.0, "drinks", 45.0),
        OptionSpec("cocktail", "Cocktail", "alcohol", 1.5, "drinks", 200.0),
    )
}

SERVING_MULTIPLIERS = (0.5, 1.0, 1.5, 2.0)

# Upper bound accepted for a custom serving volume (ml)
MAX_VOLUME = 10_000.0

_CAFFEINE_WORDS = ("coffee", "caffeine")
_ALCOHOL_WORDS = ("alcohol", "beer", "wine", "liquor")


def _normalize(text: str) -> str:
    return re.sub(r"[\s_\-]+", "_", text.strip().lower())


# Display names and ids both resolve to the id
_LOOKUP: dict[str, str] = {}
for _spec in SYSTEM_OPTIONS.values():
    _LOOKUP[_normalize(_spec.id)] = _spec.id
    _LOOKUP[_normalize(_spec.name)] = _spec.id


def parse_drink_type(raw: str | DrinkType | None) -> DrinkType | None:
    """Parse a stored drink tag into a :data:`DrinkType`.

    Empty or missing tags give None.  Tags naming a system option (by id or
    display name, ignoring case, spaces and underscores) become a
    :class:`SystemOption`; anything else is kept verbatim as a
    :class:`LegacyLabel`.
    """
    if raw is None:
        return None
    if isinstance(raw, (SystemOption, LegacyLabel)):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    option_id = _LOOKUP.get(_normalize(text))
    if option_id is not None:
        return SystemOption(option_id)
    return LegacyLabel(text)


def resolve_option(drink_type: DrinkType | None) -> OptionSpec | None:
    """Look up the table entry for a drink type, or None if it has none.

    Labels from :func:`parse_drink_type` never match the table (those become
    :class:`SystemOption`), but a :class:`LegacyLabel` constructed by the
    caller is still matched by name.
    """
    if isinstance(drink_type, SystemOption):
        return SYSTEM_OPTIONS.get(drink_type.id)
    if isinstance(drink_type, LegacyLabel):
        option_id = _LOOKUP.get(_normalize(drink_type.text))
        return SYSTEM_OPTIONS.get(option_id) if option_id else None
    return None


def serving_dose(
    drug_amount: float,
    servings: float = 1.0,
    volume: float | None = None,
    default_volume: float | None = None,
) -> float:
    """Substance amount for a logged serving.

    Args:
        drug_amount: Substance per standard serving (mg, drinks, ...).
        servings: Serving multiplier, e.g. 0.5 for half a cup.
        volume: Custom volume actually consumed, in serving units.
        default_volume: Volume of one standard serving.  Required when
            *volume* is given.

    Returns:
        ``drug_amount * servings``, rescaled by ``volume / default_volume``
        when a custom volume was entered.
    """
    if not (drug_amount > 0 and math.isfinite(drug_amount)):
        raise InvalidParameter(f"drug_amount must be positive, got {drug_amount!r}")
    if not (servings > 0 and math.isfinite(servings)):
        raise InvalidParameter(f"servings must be positive, got {servings!r}")

    dose = drug_amount * servings
    if volume is None:
        return dose

    if not (0 < volume <= MAX_VOLUME):
        raise InvalidParameter(f"volume must be in (0, {MAX_VOLUME:g}], got {volume!r}")
    if default_volume is None or not default_volume > 0:
        raise InvalidParameter("a positive default_volume is required to rescale a custom volume")
    return dose * (volume / default_volume)


def option_dose(
    drink_type: DrinkType | str,
    servings: float = 1.0,
    volume: float | None = None,
) -> float:
    """Dose for a serving of a system option (see :func:`serving_dose`)."""
    spec = resolve_option(parse_drink_type(drink_type))
    if spec is None:
        raise InvalidParameter(f"no system option matches {str(drink_type)!r}")
    return serving_dose(spec.drug_amount, servings, volume, spec.default_volume)


def substance_for_habit_name(name: str) -> str | None:
    """Guess the substance tracked by a habit from its name."""
    lowered = name.lower()
    if any(word in lowered for word in _CAFFEINE_WORDS):
        return "caffeine"
    if any(word in lowered for word in _ALCOHOL_WORDS):
        return "alcohol"
    return None


def options_for_substance(substance: str) -> list[OptionSpec]:
    """System options carrying *substance*, in table order."""
    return [spec for spec in SYSTEM_OPTIONS.values() if spec.substance == substance]
