"""SQLAlchemy ORM models for campaigns, characters and dice rolls."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chronicle.attributes import AttributeType
from chronicle.database import Base
from chronicle.dice import RollResult, load_roll_details

# ---------------------------------------------------------------------------
# Timestamp mixin
# ---------------------------------------------------------------------------


class TimestampMixin:
    """Adds created_at and updated_at columns to any model."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Campaign(TimestampMixin, Base):
    """A campaign grouping characters and dice rolls."""

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    characters: Mapped[list[Character]] = relationship(
        back_populates="campaign", cascade="all, delete-orphan"
    )
    dice_rolls: Mapped[list[DiceRoll]] = relationship(
        back_populates="campaign", cascade="all, delete-orphan"
    )


class Character(TimestampMixin, Base):
    """A character whose attributes can feed dice expressions."""

    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    campaign: Mapped[Campaign] = relationship(back_populates="characters")
    attributes: Mapped[list[Attribute]] = relationship(
        back_populates="character",
        cascade="all, delete-orphan",
        order_by="Attribute.order",
    )
    dice_rolls: Mapped[list[DiceRoll]] = relationship(back_populates="character")


class Attribute(TimestampMixin, Base):
    """A typed key/value pair on a character, e.g. strength = 3."""

    __tablename__ = "attributes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    character_id: Mapped[int] = mapped_column(
        ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[AttributeType] = mapped_column(
        Enum(AttributeType, native_enum=False), nullable=False, default=AttributeType.text
    )
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    character: Mapped[Character] = relationship(back_populates="attributes")

    __table_args__ = (UniqueConstraint("character_id", "key", name="uq_attribute_key"),)


class DiceRoll(TimestampMixin, Base):
    """A saved dice expression, optionally linked to a character."""

    __tablename__ = "dice_rolls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    character_id: Mapped[int | None] = mapped_column(
        ForeignKey("characters.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    system: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Dice expression, e.g. "1d20+{character.strength}"
    parameters: Mapped[str] = mapped_column(Text, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    campaign: Mapped[Campaign] = relationship(back_populates="dice_rolls")
    character: Mapped[Character | None] = relationship(back_populates="dice_rolls")
    results: Mapped[list[DiceRollResult]] = relationship(
        back_populates="dice_roll", cascade="all, delete-orphan"
    )


class DiceRollResult(TimestampMixin, Base):
    """One execution of a DiceRoll."""

    __tablename__ = "dice_roll_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dice_roll_id: Mapped[int] = mapped_column(
        ForeignKey("dice_rolls.id", ondelete="CASCADE"), nullable=False
    )
    # JSON-encoded RollResult
    results: Mapped[str] = mapped_column(Text, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    dice_roll: Mapped[DiceRoll] = relationship(back_populates="results")

    @property
    def details(self) -> RollResult:
        return load_roll_details(self.results)
