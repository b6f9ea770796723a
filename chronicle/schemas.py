"""Pydantic request and response models for the JSON API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chronicle.attributes import AttributeType
from chronicle.dice import RollResult

# ---------------------------------------------------------------------------
# Campaigns and characters
# ---------------------------------------------------------------------------


class CampaignCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    created_at: datetime


class CharacterCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class AttributeCreate(BaseModel):
    key: str = Field(min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_]+$")
    value: str = ""
    type: AttributeType = AttributeType.text
    category: str | None = None
    order: int = 0
    is_private: bool = False


class AttributeUpdate(BaseModel):
    value: str | None = None
    type: AttributeType | None = None
    category: str | None = None
    order: int | None = None
    is_private: bool | None = None


class AttributeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    character_id: int
    key: str
    value: str
    type: AttributeType
    category: str | None
    order: int
    is_private: bool


class AttributeGroupOut(BaseModel):
    category: str
    attributes: list[AttributeOut]


class CharacterOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    campaign_id: int
    name: str
    description: str | None


class CharacterDetailOut(CharacterOut):
    attribute_groups: list[AttributeGroupOut]


class CharacterRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


# ---------------------------------------------------------------------------
# Dice rolls
# ---------------------------------------------------------------------------


class DiceRollCreate(BaseModel):
    campaign_id: int
    name: str = Field(min_length=1, max_length=200)
    parameters: str = Field(min_length=1)
    system: str | None = None
    character_id: int | None = None
    is_private: bool = False


class DiceRollUpdate(BaseModel):
    """Partial update. Empty ``system`` or a null ``character_id`` clears the field."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    parameters: str | None = Field(default=None, min_length=1)
    system: str | None = None
    character_id: int | None = None
    is_private: bool | None = None


class DiceRollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    campaign_id: int
    name: str
    system: str | None
    parameters: str
    is_private: bool
    character: CharacterRef | None
    result_count: int = 0
    created_at: datetime


class DiceRollRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    parameters: str
    character: CharacterRef | None


class DiceRollResultCreate(BaseModel):
    dice_roll_id: int
    is_private: bool = False


class DiceRollResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dice_roll_id: int
    is_private: bool
    details: RollResult
    dice_roll: DiceRollRef
    created_at: datetime


class DiceRollDetailOut(DiceRollOut):
    results: list[DiceRollResultOut]


# ---------------------------------------------------------------------------
# Ad-hoc rolls
# ---------------------------------------------------------------------------


class ExpressionRequest(BaseModel):
    expression: str
    attributes: dict[str, int | float | str] = Field(default_factory=dict)


class QuickRollRequest(BaseModel):
    sides: int = Field(ge=1)
    count: int = Field(default=1, ge=1)
    modifier: int = 0


class ModifierRequest(BaseModel):
    modifier: int = 0
