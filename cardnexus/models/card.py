from dataclasses import dataclass, field, fields
from typing import Any


@dataclass(frozen=True)
class CanonicalCard:
    """
    A card record in the single shape every import source is mapped into.

    Field names match the columns of CardDB, so a record can be written to
    storage field by field.

    Attributes:
        name: English (or primary) card name. Always present.
        game_title: Game the card belongs to.
        api_id: External natural key, when the source has one.
        card_number: Collector number within the expansion.
        expansion: Expansion (set) name.
        types / subtypes: Delimited text, see normalize.LIST_DELIMITER.
        extra: Verbatim copy of the source object.
    """

    name: str
    game_title: str
    api_id: str | None = None
    name_ja: str | None = None
    image_url: str | None = None
    rarity: str | None = None
    effect_text: str | None = None
    effect_text_ja: str | None = None
    flavor_text: str | None = None
    card_number: str | None = None
    expansion: str | None = None
    expansion_ja: str | None = None
    regulation_mark: str | None = None
    card_type: str | None = None
    card_type_ja: str | None = None
    hp: int | None = None
    types: str | None = None
    types_ja: str | None = None
    evolve_from: str | None = None
    evolve_from_ja: str | None = None
    artist: str | None = None
    subtypes: str | None = None
    subtypes_ja: str | None = None
    release_date: str | None = None
    set_id: str | None = None
    source: str | None = None
    abilities: list[Any] = field(default_factory=list)
    attacks: list[Any] = field(default_factory=list)
    weaknesses: list[Any] = field(default_factory=list)
    resistances: list[Any] = field(default_factory=list)
    retreat_cost: list[Any] = field(default_factory=list)
    legalities: dict[str, Any] = field(default_factory=dict)
    rules: list[Any] = field(default_factory=list)
    national_pokedex_numbers: list[Any] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Human-readable identifier used in logs: name plus card number."""
        return f"{self.name} ({self.card_number or '-'})"

    def column_values(self, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
        """Field values keyed by column name."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in exclude}
