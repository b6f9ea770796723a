"""Saved dice roll definitions and their executed results."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from chronicle.attributes import attribute_bindings
from chronicle.config import settings
from chronicle.database import get_db
from chronicle.dice import evaluate, parse_dice_expression
from chronicle.models import Attribute, Campaign, Character, DiceRoll, DiceRollResult
from chronicle.schemas import (
    CharacterRef,
    DiceRollCreate,
    DiceRollDetailOut,
    DiceRollOut,
    DiceRollRef,
    DiceRollResultCreate,
    DiceRollResultOut,
    DiceRollUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_parameters(parameters: str) -> None:
    validation = parse_dice_expression(parameters)
    if not validation.valid:
        raise HTTPException(status_code=400, detail=validation.error)


async def _check_character(character_id: int, campaign_id: int, db: AsyncSession) -> None:
    """Raise unless the character exists in the given campaign."""
    character = await db.get(Character, character_id)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")
    if character.campaign_id != campaign_id:
        raise HTTPException(status_code=400, detail="Character belongs to another campaign")


async def _load_dice_roll(roll_id: int, db: AsyncSession) -> DiceRoll | None:
    result = await db.execute(
        select(DiceRoll)
        .where(DiceRoll.id == roll_id)
        .options(selectinload(DiceRoll.character), selectinload(DiceRoll.results))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _load_result(result_id: int, db: AsyncSession) -> DiceRollResult | None:
    result = await db.execute(
        select(DiceRollResult)
        .where(DiceRollResult.id == result_id)
        .options(selectinload(DiceRollResult.dice_roll).selectinload(DiceRoll.character))
    )
    return result.scalar_one_or_none()


def _dice_roll_out(dice_roll: DiceRoll, result_count: int) -> DiceRollOut:
    return DiceRollOut(
        id=dice_roll.id,
        campaign_id=dice_roll.campaign_id,
        name=dice_roll.name,
        system=dice_roll.system,
        parameters=dice_roll.parameters,
        is_private=dice_roll.is_private,
        character=CharacterRef.model_validate(dice_roll.character) if dice_roll.character else None,
        result_count=result_count,
        created_at=dice_roll.created_at,
    )


def _result_out(result: DiceRollResult, dice_roll: DiceRoll) -> DiceRollResultOut:
    return DiceRollResultOut(
        id=result.id,
        dice_roll_id=result.dice_roll_id,
        is_private=result.is_private,
        details=result.details,
        dice_roll=DiceRollRef(
            id=dice_roll.id,
            name=dice_roll.name,
            parameters=dice_roll.parameters,
            character=(
                CharacterRef.model_validate(dice_roll.character) if dice_roll.character else None
            ),
        ),
        created_at=result.created_at,
    )


def _newest_first(results: list[DiceRollResult]) -> list[DiceRollResult]:
    return sorted(results, key=lambda r: (r.created_at, r.id), reverse=True)


# ---------------------------------------------------------------------------
# Dice roll definitions
# ---------------------------------------------------------------------------


@router.get("/dice-rolls")
async def list_dice_rolls(
    campaign_id: int,
    character_id: int | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[DiceRollOut]:
    """List a campaign's dice rolls ordered by name."""
    counts = (
        select(DiceRollResult.dice_roll_id, func.count(DiceRollResult.id).label("n"))
        .group_by(DiceRollResult.dice_roll_id)
        .subquery()
    )
    query = (
        select(DiceRoll, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.dice_roll_id == DiceRoll.id)
        .where(DiceRoll.campaign_id == campaign_id)
        .options(selectinload(DiceRoll.character))
        .order_by(DiceRoll.name)
    )
    if character_id is not None:
        query = query.where(DiceRoll.character_id == character_id)
    if search:
        query = query.where(DiceRoll.name.ilike(f"%{search}%"))

    rows = (await db.execute(query)).all()
    return [_dice_roll_out(dice_roll, count) for dice_roll, count in rows]


@router.post("/dice-rolls", status_code=201)
async def create_dice_roll(
    body: DiceRollCreate,
    db: AsyncSession = Depends(get_db),
) -> DiceRollOut:
    _check_parameters(body.parameters)

    campaign = await db.get(Campaign, body.campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    if body.character_id is not None:
        await _check_character(body.character_id, body.campaign_id, db)

    dice_roll = DiceRoll(
        campaign_id=body.campaign_id,
        name=body.name.strip(),
        system=body.system or None,
        parameters=body.parameters,
        character_id=body.character_id,
        is_private=body.is_private,
    )
    db.add(dice_roll)
    await db.commit()

    dice_roll = await _load_dice_roll(dice_roll.id, db)
    return _dice_roll_out(dice_roll, 0)


@router.get("/dice-rolls/{roll_id}")
async def get_dice_roll(
    roll_id: int,
    db: AsyncSession = Depends(get_db),
) -> DiceRollDetailOut:
    """Return a dice roll with its most recent results."""
    dice_roll = await _load_dice_roll(roll_id, db)
    if dice_roll is None:
        raise HTTPException(status_code=404, detail="Dice roll not found")

    recent = _newest_first(dice_roll.results)[: settings.dice_roll_recent_results]
    summary = _dice_roll_out(dice_roll, len(dice_roll.results))
    return DiceRollDetailOut(
        **summary.model_dump(),
        results=[_result_out(r, dice_roll) for r in recent],
    )


@router.patch("/dice-rolls/{roll_id}")
async def update_dice_roll(
    roll_id: int,
    body: DiceRollUpdate,
    db: AsyncSession = Depends(get_db),
) -> DiceRollOut:
    dice_roll = await _load_dice_roll(roll_id, db)
    if dice_roll is None:
        raise HTTPException(status_code=404, detail="Dice roll not found")

    fields = body.model_dump(exclude_unset=True)
    if fields.get("parameters") is not None:
        _check_parameters(fields["parameters"])
    if fields.get("character_id") is not None:
        await _check_character(fields["character_id"], dice_roll.campaign_id, db)

    for field in ("name", "parameters", "is_private"):
        if fields.get(field) is not None:
            setattr(dice_roll, field, fields[field])
    if "system" in fields:
        dice_roll.system = fields["system"] or None
    if "character_id" in fields:
        dice_roll.character_id = fields["character_id"] or None

    await db.commit()

    # Re-fetch so the character relationship reflects a changed character_id.
    dice_roll = await _load_dice_roll(roll_id, db)
    return _dice_roll_out(dice_roll, len(dice_roll.results))


@router.delete("/dice-rolls/{roll_id}")
async def delete_dice_roll(
    roll_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    dice_roll = await _load_dice_roll(roll_id, db)
    if dice_roll is None:
        raise HTTPException(status_code=404, detail="Dice roll not found")
    await db.delete(dice_roll)
    await db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@router.get("/dice-roll-results")
async def list_dice_roll_results(
    dice_roll_id: int | None = None,
    campaign_id: int | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[DiceRollResultOut]:
    """List results for one dice roll or a whole campaign, newest first."""
    if dice_roll_id is None and campaign_id is None:
        raise HTTPException(status_code=400, detail="Either dice_roll_id or campaign_id required")

    query = select(DiceRollResult).options(
        selectinload(DiceRollResult.dice_roll).selectinload(DiceRoll.character)
    )
    if dice_roll_id is not None:
        if await db.get(DiceRoll, dice_roll_id) is None:
            raise HTTPException(status_code=404, detail="Dice roll not found")
        query = query.where(DiceRollResult.dice_roll_id == dice_roll_id)
    else:
        query = query.join(DiceRollResult.dice_roll).where(DiceRoll.campaign_id == campaign_id)

    query = query.order_by(DiceRollResult.created_at.desc(), DiceRollResult.id.desc()).limit(
        settings.dice_roll_result_list_limit
    )
    results = (await db.execute(query)).scalars().all()
    return [_result_out(r, r.dice_roll) for r in results]


@router.post("/dice-roll-results", status_code=201)
async def create_dice_roll_result(
    body: DiceRollResultCreate,
    db: AsyncSession = Depends(get_db),
) -> DiceRollResultOut:
    """Execute a saved dice roll against its character's attributes and store the result."""
    dice_roll = await _load_dice_roll(body.dice_roll_id, db)
    if dice_roll is None:
        raise HTTPException(status_code=404, detail="Dice roll not found")

    bindings: dict[str, str] = {}
    if dice_roll.character_id is not None:
        attrs = await db.execute(
            select(Attribute).where(Attribute.character_id == dice_roll.character_id)
        )
        bindings = attribute_bindings(attrs.scalars().all())

    details = evaluate(dice_roll.parameters, bindings)

    result = DiceRollResult(
        dice_roll_id=dice_roll.id,
        results=details.model_dump_json(),
        is_private=body.is_private,
    )
    db.add(result)
    await db.commit()
    await db.refresh(result)
    logger.info(
        "Dice roll %d (%r) rolled %d: %s",
        dice_roll.id,
        dice_roll.parameters,
        details.total,
        details.breakdown,
    )
    return _result_out(result, dice_roll)


@router.get("/dice-roll-results/{result_id}")
async def get_dice_roll_result(
    result_id: int,
    db: AsyncSession = Depends(get_db),
) -> DiceRollResultOut:
    result = await _load_result(result_id, db)
    if result is None:
        raise HTTPException(status_code=404, detail="Result not found")
    return _result_out(result, result.dice_roll)


@router.delete("/dice-roll-results/{result_id}")
async def delete_dice_roll_result(
    result_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    result = await db.get(DiceRollResult, result_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Result not found")
    await db.delete(result)
    await db.commit()
    return {"success": True}
