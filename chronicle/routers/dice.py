"""Ad-hoc rolls that are evaluated but not stored."""

from __future__ import annotations

from fastapi import APIRouter

from chronicle.dice import (
    DiceValidation,
    RollResult,
    evaluate,
    parse_dice_expression,
    quick_roll,
    roll_with_advantage,
    roll_with_disadvantage,
)
from chronicle.schemas import ExpressionRequest, ModifierRequest, QuickRollRequest

router = APIRouter(prefix="/dice")


@router.post("/roll")
async def roll_expression(body: ExpressionRequest) -> RollResult:
    return evaluate(body.expression, body.attributes)


@router.post("/quick")
async def roll_quick(body: QuickRollRequest) -> RollResult:
    return quick_roll(body.sides, body.count, body.modifier)


@router.post("/advantage")
async def roll_advantage(body: ModifierRequest) -> RollResult:
    return roll_with_advantage(body.modifier)


@router.post("/disadvantage")
async def roll_disadvantage(body: ModifierRequest) -> RollResult:
    return roll_with_disadvantage(body.modifier)


@router.post("/validate")
async def validate_expression(body: ExpressionRequest) -> DiceValidation:
    return parse_dice_expression(body.expression)
