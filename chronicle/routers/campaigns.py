"""Campaign, character and attribute routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from chronicle.attributes import group_attributes_by_category
from chronicle.database import get_db
from chronicle.models import Attribute, Campaign, Character
from chronicle.schemas import (
    AttributeCreate,
    AttributeGroupOut,
    AttributeOut,
    AttributeUpdate,
    CampaignCreate,
    CampaignOut,
    CharacterCreate,
    CharacterDetailOut,
    CharacterOut,
)

router = APIRouter()


async def _load_character(char_id: int, db: AsyncSession) -> Character | None:
    result = await db.execute(
        select(Character).where(Character.id == char_id).options(selectinload(Character.attributes))
    )
    return result.scalar_one_or_none()


def _character_detail(character: Character) -> CharacterDetailOut:
    groups = group_attributes_by_category(character.attributes)
    return CharacterDetailOut(
        id=character.id,
        campaign_id=character.campaign_id,
        name=character.name,
        description=character.description,
        attribute_groups=[
            AttributeGroupOut(
                category=category,
                attributes=[AttributeOut.model_validate(a) for a in attrs],
            )
            for category, attrs in groups
        ],
    )


@router.post("/campaigns", status_code=201)
async def create_campaign(
    body: CampaignCreate,
    db: AsyncSession = Depends(get_db),
) -> CampaignOut:
    campaign = Campaign(name=body.name.strip(), description=body.description or None)
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    return CampaignOut.model_validate(campaign)


@router.get("/campaigns/{campaign_id}")
async def get_campaign(
    campaign_id: int,
    db: AsyncSession = Depends(get_db),
) -> CampaignOut:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return CampaignOut.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/characters", status_code=201)
async def create_character(
    campaign_id: int,
    body: CharacterCreate,
    db: AsyncSession = Depends(get_db),
) -> CharacterOut:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")

    character = Character(
        campaign_id=campaign_id,
        name=body.name.strip(),
        description=body.description or None,
    )
    db.add(character)
    await db.commit()
    await db.refresh(character)
    return CharacterOut.model_validate(character)


@router.get("/characters/{char_id}")
async def get_character(
    char_id: int,
    db: AsyncSession = Depends(get_db),
) -> CharacterDetailOut:
    """Return a character with its attributes grouped by category."""
    character = await _load_character(char_id, db)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return _character_detail(character)


@router.post("/characters/{char_id}/attributes", status_code=201)
async def create_attribute(
    char_id: int,
    body: AttributeCreate,
    db: AsyncSession = Depends(get_db),
) -> AttributeOut:
    character = await db.get(Character, char_id)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")

    # Dice placeholders match keys case-insensitively.
    existing = await db.execute(
        select(Attribute.id).where(
            Attribute.character_id == char_id, func.lower(Attribute.key) == body.key.lower()
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=409, detail=f"Attribute {body.key!r} already exists on this character"
        )

    attribute = Attribute(character_id=char_id, **body.model_dump())
    db.add(attribute)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409, detail=f"Attribute {body.key!r} already exists on this character"
        ) from None
    await db.refresh(attribute)
    return AttributeOut.model_validate(attribute)


@router.patch("/attributes/{attr_id}")
async def update_attribute(
    attr_id: int,
    body: AttributeUpdate,
    db: AsyncSession = Depends(get_db),
) -> AttributeOut:
    attribute = await db.get(Attribute, attr_id)
    if attribute is None:
        raise HTTPException(status_code=404, detail="Attribute not found")

    for field, value in body.model_dump(exclude_unset=True).items():
        if field in ("value", "type", "order", "is_private") and value is None:
            continue
        setattr(attribute, field, value)
    await db.commit()
    await db.refresh(attribute)
    return AttributeOut.model_validate(attribute)


@router.delete("/attributes/{attr_id}")
async def delete_attribute(
    attr_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    attribute = await db.get(Attribute, attr_id)
    if attribute is None:
        raise HTTPException(status_code=404, detail="Attribute not found")
    await db.delete(attribute)
    await db.commit()
    return {"success": True}
