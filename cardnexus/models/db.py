"""
SQLAlchemy ORM models for persistent storage.

Structured card sub-records (attacks, abilities, ...) are stored as JSON
documents rather than normalized into their own tables.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from cardnexus.models.enums import ListingStatus, TransactionStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    # Fetch server-generated timestamps on INSERT/UPDATE; async sessions
    # cannot lazy-load expired attributes afterwards.
    __mapper_args__ = {"eager_defaults": True}


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# --- Catalog ---


class CardSetDB(Base):
    """
    An expansion set.

    Keyed by the source's own set id (e.g. "sv1"), so imports upsert by it.
    """

    __tablename__ = "card_sets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    series: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    total_cards: Mapped[int | None] = mapped_column(Integer, nullable=True)
    printed_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    legalities: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    images: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    ptcgo_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    cards: Mapped[list["CardDB"]] = relationship(back_populates="card_set")

    def __repr__(self) -> str:
        return f"<CardSetDB(id={self.id}, name={self.name})>"


class CardDB(TimestampMixin, Base):
    """
    A catalog card.

    api_id is the external natural key. (card_number, expansion, game_title)
    is the reconciliation key used by imports that carry no api_id.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    api_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)

    name: Mapped[str] = mapped_column(String(255), index=True)
    name_ja: Mapped[str | None] = mapped_column(String(255), nullable=True)
    game_title: Mapped[str] = mapped_column(String(100), index=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rarity: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    effect_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    effect_text_ja: Mapped[str | None] = mapped_column(Text, nullable=True)
    flavor_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    card_number: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    expansion: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    expansion_ja: Mapped[str | None] = mapped_column(String(255), nullable=True)
    regulation_mark: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)
    card_type: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    card_type_ja: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hp: Mapped[int | None] = mapped_column(Integer, nullable=True)
    types: Mapped[str | None] = mapped_column(String(255), nullable=True)
    types_ja: Mapped[str | None] = mapped_column(String(255), nullable=True)
    evolve_from: Mapped[str | None] = mapped_column(String(255), nullable=True)
    evolve_from_ja: Mapped[str | None] = mapped_column(String(255), nullable=True)
    artist: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subtypes: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subtypes_ja: Mapped[str | None] = mapped_column(String(255), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)

    set_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("card_sets.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Opaque structured documents
    abilities: Mapped[list[Any]] = mapped_column(JSON, default=list)
    attacks: Mapped[list[Any]] = mapped_column(JSON, default=list)
    weaknesses: Mapped[list[Any]] = mapped_column(JSON, default=list)
    resistances: Mapped[list[Any]] = mapped_column(JSON, default=list)
    retreat_cost: Mapped[list[Any]] = mapped_column(JSON, default=list)
    legalities: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    rules: Mapped[list[Any]] = mapped_column(JSON, default=list)
    national_pokedex_numbers: Mapped[list[Any]] = mapped_column(JSON, default=list)
    extra: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    card_set: Mapped["CardSetDB | None"] = relationship(back_populates="cards")
    prices: Mapped[list["PriceHistoryDB"]] = relationship(
        back_populates="card", cascade="all, delete-orphan"
    )
    listings: Mapped[list["ListingDB"]] = relationship(back_populates="card")

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, name={self.name}, number={self.card_number})>"


class PriceHistoryDB(Base):
    """One observed price for a card."""

    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    price: Mapped[int] = mapped_column(Integer)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(50), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    card: Mapped["CardDB"] = relationship(back_populates="prices")


# --- Users & marketplace ---


class UserDB(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, default=0)

    listings: Mapped[list["ListingDB"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<UserDB(id={self.id}, username={self.username})>"


class ListingDB(TimestampMixin, Base):
    """A SELL / BUY / TRADE offer for a card."""

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    listing_type: Mapped[str] = mapped_column(String(10), index=True)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    condition: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=ListingStatus.ACTIVE.value, index=True)

    user: Mapped["UserDB"] = relationship(back_populates="listings")
    card: Mapped["CardDB"] = relationship(back_populates="listings")
    transactions: Mapped[list["TransactionDB"]] = relationship(back_populates="listing")


class TransactionDB(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), index=True
    )
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    seller_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=TransactionStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    listing: Mapped["ListingDB"] = relationship(back_populates="transactions")
    buyer: Mapped["UserDB"] = relationship(foreign_keys=[buyer_id])
    seller: Mapped["UserDB"] = relationship(foreign_keys=[seller_id])


class ReviewDB(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("transaction_id", "reviewer_id", name="uq_review_transaction_reviewer"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), index=True
    )
    reviewer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    reviewee_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    transaction: Mapped["TransactionDB"] = relationship()
    reviewer: Mapped["UserDB"] = relationship(foreign_keys=[reviewer_id])


# --- Decks ---


class DeckDB(TimestampMixin, Base):
    """
    A user-built deck.

    external_id holds the id of decks imported from a static dump so
    re-imports upsert instead of duplicating.
    """

    __tablename__ = "decks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    game_title: Mapped[str] = mapped_column(String(100), index=True)
    format: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    types: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["UserDB"] = relationship()
    deck_cards: Mapped[list["DeckCardDB"]] = relationship(
        back_populates="deck", cascade="all, delete-orphan"
    )
    tags: Mapped[list["DeckTagDB"]] = relationship(cascade="all, delete-orphan")
    likes: Mapped[list["DeckLikeDB"]] = relationship(cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<DeckDB(id={self.id}, name={self.name})>"


class DeckCardDB(Base):
    __tablename__ = "deck_cards"
    __table_args__ = (UniqueConstraint("deck_id", "card_id", name="uq_deck_card"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    deck: Mapped["DeckDB"] = relationship(back_populates="deck_cards")
    card: Mapped["CardDB"] = relationship()


class DeckTagDB(Base):
    __tablename__ = "deck_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    tag_name: Mapped[str] = mapped_column(String(50))


class DeckLikeDB(Base):
    __tablename__ = "deck_likes"
    __table_args__ = (UniqueConstraint("deck_id", "user_id", name="uq_deck_like"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["UserDB"] = relationship()


# --- Board ---


class PostDB(TimestampMixin, Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(100))
    content: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(20), index=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)

    author: Mapped["UserDB"] = relationship()
    card: Mapped["CardDB | None"] = relationship()
    tags: Mapped[list["PostTagDB"]] = relationship(cascade="all, delete-orphan")
    comments: Mapped[list["CommentDB"]] = relationship(
        back_populates="post", cascade="all, delete-orphan"
    )


class PostTagDB(Base):
    __tablename__ = "post_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), index=True
    )
    tag_name: Mapped[str] = mapped_column(String(50), index=True)


class CommentDB(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    post: Mapped["PostDB"] = relationship(back_populates="comments")
    author: Mapped["UserDB"] = relationship()
