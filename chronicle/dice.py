"""Server-side dice expression engine.

Expressions combine dice notation, character attribute placeholders and
arithmetic:

    3d6+2
    1d20+{character.strength}
    (2d8+1d6)*2-{character.level}

Evaluation never raises. Unknown attributes resolve to 0 and malformed
arithmetic yields a total of 0.
"""

from __future__ import annotations

import logging
import math
import random
import re
from collections.abc import Callable, Mapping
from decimal import Decimal

from pydantic import BaseModel, ValidationError

from chronicle.arithmetic import ExpressionError, evaluate_arithmetic
from chronicle.config import settings

logger = logging.getLogger(__name__)

_ATTRIBUTE_RE = re.compile(r"\{character\.([a-zA-Z0-9_]+)\}", re.IGNORECASE)
_DICE_RE = re.compile(r"([1-9][0-9]*)d([1-9][0-9]*)", re.IGNORECASE)
_MODIFIER_RE = re.compile(r"[+-][0-9]+")

DICE_SYSTEMS: tuple[str, ...] = ("d20", "d100", "custom")

Roller = Callable[[int], int]
AttributeValue = int | float | str


class DiceError(ValueError):
    """Raised when a dice term is outside the supported range."""


class RollDetail(BaseModel):
    type: str
    value: int
    sides: int | None = None


class RollResult(BaseModel):
    expression: str
    substituted: str
    rolls: list[RollDetail]
    total: int
    breakdown: str


class DiceValidation(BaseModel):
    valid: bool
    parts: list[str]
    error: str | None = None


def _default_roller(sides: int) -> int:
    return random.randint(1, sides)


def _format_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _to_number(value: AttributeValue) -> float | None:
    """Return value as a finite float, or None if it is not numeric."""
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def substitute_attributes(
    expression: str, attributes: Mapping[str, AttributeValue] | None = None
) -> str:
    """Replace ``{character.<name>}`` placeholders with attribute values.

    Lookup uses the lower-cased name. Missing or non-numeric attributes
    become "0".
    """
    bindings = {str(k).lower(): v for k, v in (attributes or {}).items()}

    def _replace(m: re.Match[str]) -> str:
        value = bindings.get(m.group(1).lower())
        if value is None:
            return "0"
        number = _to_number(value)
        return "0" if number is None else _format_number(number)

    return _ATTRIBUTE_RE.sub(_replace, expression)


def _roll_terms(expression: str, roller: Roller, rolls: list[RollDetail]) -> str:
    """Roll every dice term, appending records and replacing each with its sum."""

    def _replace(m: re.Match[str]) -> str:
        count = int(m.group(1))
        sides = int(m.group(2))
        if count > settings.dice_max_count:
            raise DiceError(f"Too many dice: {count} (max {settings.dice_max_count})")
        if sides > settings.dice_max_sides:
            raise DiceError(f"Too many sides: {sides} (max {settings.dice_max_sides})")
        subtotal = 0
        for _ in range(count):
            value = roller(sides)
            subtotal += value
            rolls.append(RollDetail(type=f"d{sides}", value=value, sides=sides))
        return str(subtotal)

    return _DICE_RE.sub(_replace, expression)


def build_breakdown(rolls: list[RollDetail], final_expression: str) -> str:
    """Group rolls by die type, e.g. "d6: [3, 4] = 7 | d20: [15] = 15"."""
    if not rolls:
        return final_expression

    grouped: dict[str, list[int]] = {}
    for r in rolls:
        grouped.setdefault(r.type, []).append(r.value)

    return " | ".join(
        f"{die}: [{', '.join(str(v) for v in values)}] = {sum(values)}"
        for die, values in grouped.items()
    )


def evaluate(
    expression: str,
    attributes: Mapping[str, AttributeValue] | None = None,
    *,
    roller: Roller | None = None,
) -> RollResult:
    """Evaluate a dice expression.

    Args:
        expression: Dice expression, e.g. "1d20+{character.strength}".
        attributes: Lower-cased attribute name to numeric (or numeric string)
            value.
        roller: Returns a die face in [1, sides]. Defaults to random.randint.

    Returns:
        The roll result. Failures produce a total of 0 rather than raising.
        A term with more than ``settings.dice_max_count`` dice or more than
        ``settings.dice_max_sides`` sides yields total 0 and the breakdown
        "Error rolling dice".
    """
    roller = roller or _default_roller
    try:
        substituted = substitute_attributes(expression, attributes)
        rolls: list[RollDetail] = []
        working = _roll_terms(substituted, roller, rolls)

        try:
            total = evaluate_arithmetic(working)
        except ExpressionError as exc:
            logger.debug("Could not evaluate %r: %s", working, exc)
            total = 0

        return RollResult(
            expression=expression,
            substituted=substituted,
            rolls=rolls,
            total=total,
            breakdown=build_breakdown(rolls, working),
        )
    except Exception:
        logger.exception("Dice rolling error for expression %r", expression)
        return RollResult(
            expression=expression,
            substituted=expression,
            rolls=[],
            total=0,
            breakdown="Error rolling dice",
        )


def quick_roll(
    sides: int, count: int = 1, modifier: int = 0, *, roller: Roller | None = None
) -> RollResult:
    """Roll ``count`` dice of ``sides`` plus a flat modifier, e.g. 2d6+3."""
    expression = f"{count}d{sides}"
    if modifier > 0:
        expression += f"+{modifier}"
    elif modifier < 0:
        expression += str(modifier)
    return evaluate(expression, roller=roller)


def _modifier_suffix(modifier: int) -> str:
    if modifier == 0:
        return ""
    return f" +{modifier}" if modifier > 0 else f" {modifier}"


def _two_d20(mode: str, modifier: int, roller: Roller | None) -> RollResult:
    roller = roller or _default_roller
    label = "advantage" if mode == "higher" else "disadvantage"
    expression = f"2d20 ({label}){_modifier_suffix(modifier)}"
    try:
        first = roller(20)
        second = roller(20)
    except Exception:
        logger.exception("Dice rolling error for %s roll", label)
        return RollResult(
            expression=expression,
            substituted=expression,
            rolls=[],
            total=0,
            breakdown="Error rolling dice",
        )

    kept = max(first, second) if mode == "higher" else min(first, second)
    breakdown = f"Rolls: [{first}, {second}] → {kept} ({mode})"
    if modifier > 0:
        breakdown += f" + {modifier}"
    elif modifier < 0:
        breakdown += f" - {-modifier}"

    return RollResult(
        expression=expression,
        substituted=expression,
        rolls=[
            RollDetail(type="d20", value=first, sides=20),
            RollDetail(type="d20", value=second, sides=20),
        ],
        total=kept + modifier,
        breakdown=breakdown,
    )


def roll_with_advantage(modifier: int = 0, *, roller: Roller | None = None) -> RollResult:
    """Roll two d20, keep the higher, and add the modifier."""
    return _two_d20("higher", modifier, roller)


def roll_with_disadvantage(modifier: int = 0, *, roller: Roller | None = None) -> RollResult:
    """Roll two d20, keep the lower, and add the modifier."""
    return _two_d20("lower", modifier, roller)


def parse_dice_expression(expression: str) -> DiceValidation:
    """Check that an expression contains at least one recognizable part.

    Parts are reported as attribute placeholders, then dice terms, then
    signed modifiers. This is a shape check for stored definitions, not a
    full evaluation.
    """
    normalized = re.sub(r"\s+", "", expression).lower()
    parts: list[str] = []
    parts.extend(m.group(0) for m in _ATTRIBUTE_RE.finditer(normalized))
    parts.extend(m.group(0) for m in _DICE_RE.finditer(normalized))
    parts.extend(_MODIFIER_RE.findall(normalized))

    if not parts and normalized:
        return DiceValidation(valid=False, parts=[], error="Invalid dice expression format")
    return DiceValidation(valid=True, parts=parts)


def format_roll_result(result: RollResult) -> str:
    """Return a one-line summary, e.g. "2d6+1 = 8 (d6: [3, 4] = 7)"."""
    return f"{result.expression} = {result.total} ({result.breakdown})"


def load_roll_details(raw: str) -> RollResult:
    """Decode a stored roll result, tolerating corrupt data."""
    try:
        return RollResult.model_validate_json(raw)
    except ValidationError:
        return RollResult(
            expression="Error",
            substituted="Error",
            rolls=[],
            total=0,
            breakdown="Invalid roll data",
        )
