"""
Card normalization.

Maps card JSON of several shapes onto one CanonicalCard:

- raw third-party API payloads (``id``, ``supertype``, ``set.name``, ...)
- partially-localized records (``apiId``, ``cardNumber``, ``nameJa``, ...)
- legacy flat exports (``setCode``, ``regulation``, ``imageUrl``, ...)

Every destination field has an ordered list of source keys. The first key
whose value is present and non-empty wins. Dotted keys address nested
objects. The whole source object is also kept verbatim in ``extra``.
"""

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from cardnexus.config import settings
from cardnexus.models.card import CanonicalCard

LIST_DELIMITER = ", "


class RecordValidationError(ValueError):
    """Raised when a source record lacks the fields needed to store it."""

    def __init__(self, message: str, label: str) -> None:
        self.label = label
        super().__init__(message)


# =============================================================================
# VALUE TRANSFORMS
# =============================================================================


def join_list_field(value: Any) -> str | None:
    """Sequence -> delimited string; strings pass through unchanged."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Sequence):
        return LIST_DELIMITER.join(str(item) for item in value)
    return str(value)


def split_list_field(value: str | None) -> list[str]:
    """Inverse of join_list_field."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_int(value: Any) -> int | None:
    """Parse "120", 120 or 120.0; anything else becomes None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _passthrough(value: Any) -> Any:
    return value


# =============================================================================
# FIELD RULES
# =============================================================================


@dataclass(frozen=True)
class FieldRule:
    """
    How one CanonicalCard field is filled.

    Attributes:
        dest: CanonicalCard field name
        sources: Source keys in priority order (dotted for nested)
        transform: Applied to the winning value
        default: Factory for the value when no source key resolves
    """

    dest: str
    sources: tuple[str, ...]
    transform: Callable[[Any], Any] = to_text
    default: Callable[[], Any] | None = None


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("api_id", ("id", "apiId")),
    FieldRule("name", ("name",)),
    FieldRule("name_ja", ("nameJa",)),
    FieldRule("game_title", ("gameTitle",)),
    FieldRule("image_url", ("images.large", "imageUrl", "images.small")),
    FieldRule("rarity", ("rarity",)),
    FieldRule("effect_text", ("effectText",)),
    FieldRule("effect_text_ja", ("effectTextJa",)),
    FieldRule("flavor_text", ("flavorText",)),
    FieldRule("card_number", ("number", "cardNumber")),
    FieldRule("expansion", ("set.name", "expansion", "setCode")),
    FieldRule("expansion_ja", ("expansionJa",)),
    FieldRule("regulation_mark", ("regulationMark", "regulation")),
    FieldRule("card_type", ("supertype", "cardType")),
    FieldRule("card_type_ja", ("cardTypeJa",)),
    FieldRule("hp", ("hp",), parse_int),
    FieldRule("types", ("types",), join_list_field),
    FieldRule("types_ja", ("typesJa",), join_list_field),
    FieldRule("evolve_from", ("evolvesFrom", "evolveFrom")),
    FieldRule("evolve_from_ja", ("evolveFromJa",)),
    FieldRule("artist", ("artist",)),
    FieldRule("subtypes", ("subtypes",), join_list_field),
    FieldRule("subtypes_ja", ("subtypesJa",), join_list_field),
    FieldRule("release_date", ("set.releaseDate", "releaseDate")),
    FieldRule("set_id", ("set.id", "setId")),
    FieldRule("source", ("source",)),
    FieldRule("abilities", ("abilities",), _passthrough, list),
    FieldRule("attacks", ("attacks",), _passthrough, list),
    FieldRule("weaknesses", ("weaknesses",), _passthrough, list),
    FieldRule("resistances", ("resistances",), _passthrough, list),
    FieldRule("retreat_cost", ("retreatCost",), _passthrough, list),
    FieldRule("legalities", ("legalities",), _passthrough, dict),
    FieldRule("rules", ("rules",), _passthrough, list),
    FieldRule("national_pokedex_numbers", ("nationalPokedexNumbers",), _passthrough, list),
)


def lookup(record: Mapping[str, Any], key: str) -> Any:
    """Read a possibly dotted key; missing segments give None."""
    value: Any = record
    for part in key.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str | list | tuple | dict):
        return len(value) > 0
    return True


def resolve_field(record: Mapping[str, Any], rule: FieldRule) -> Any:
    """Apply one rule: first present source wins, else the rule default."""
    for key in rule.sources:
        value = lookup(record, key)
        if _is_present(value):
            return rule.transform(value)
    return rule.default() if rule.default else None


# =============================================================================
# EFFECT TEXT
# =============================================================================


def compose_effect_text(record: Mapping[str, Any]) -> str | None:
    """
    Build a readable rules text from structured fields.

    Used when the source carries no effectText of its own.
    """
    parts: list[str] = []

    for ability in _entries(record.get("abilities")):
        if isinstance(ability, Mapping):
            kind = ability.get("type") or "Ability"
            parts.append(f"[{kind}] {ability.get('name', '')}\n{ability.get('text', '')}".strip())

    for attack in _entries(record.get("attacks")):
        if isinstance(attack, Mapping):
            cost = "".join(str(c) for c in _entries(attack.get("cost")))
            header = " ".join(
                str(p) for p in (cost, attack.get("name"), attack.get("damage")) if p
            )
            parts.append(f"[Attack] {header}\n{attack.get('text') or ''}".strip())

    footer: list[str] = []
    weaknesses = _type_values(record.get("weaknesses"))
    if weaknesses:
        footer.append(f"Weakness: {weaknesses}")
    resistances = _type_values(record.get("resistances"))
    if resistances:
        footer.append(f"Resistance: {resistances}")
    retreat = record.get("retreatCost")
    if retreat:
        footer.append(f"Retreat: {len(retreat) if isinstance(retreat, list) else retreat}")
    if footer:
        parts.append(" / ".join(footer))

    flavor = record.get("flavorText")
    if flavor:
        parts.append(str(flavor))

    return "\n\n".join(parts) if parts else None


def _entries(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _type_values(entries: Any) -> str:
    return ", ".join(
        f"{e.get('type', '')}{e.get('value', '')}"
        for e in _entries(entries)
        if isinstance(e, Mapping)
    )


# =============================================================================
# NORMALIZATION
# =============================================================================


def record_label(record: Mapping[str, Any]) -> str:
    name = lookup(record, "name") or "<unnamed>"
    number = lookup(record, "number") or lookup(record, "cardNumber") or "-"
    return f"{name} ({number})"


def normalize_card(
    record: Mapping[str, Any],
    defaults: Mapping[str, Any] | None = None,
    rules: Sequence[FieldRule] = FIELD_RULES,
) -> CanonicalCard:
    """
    Normalize one source record.

    Args:
        record: Source JSON object
        defaults: Values for fields no source key resolved (e.g. the
            regulation mark of the file partition)
        rules: Field rules, FIELD_RULES unless testing

    Returns:
        CanonicalCard with ``extra`` holding a deep copy of ``record``

    Raises:
        RecordValidationError: If name is missing, or the record has neither
            an api id nor both card number and expansion.
    """
    if not isinstance(record, Mapping):
        raise RecordValidationError(
            f"Expected a JSON object, got {type(record).__name__}", label="<invalid>"
        )

    label = record_label(record)
    values: dict[str, Any] = {rule.dest: resolve_field(record, rule) for rule in rules}

    for dest, value in (defaults or {}).items():
        if values.get(dest) is None:
            values[dest] = value

    if values.get("game_title") is None:
        values["game_title"] = settings.default_game_title
    if values.get("effect_text") is None:
        values["effect_text"] = compose_effect_text(record)

    if not values.get("name"):
        raise RecordValidationError("Record has no name", label=label)
    if not values.get("api_id") and not (values.get("card_number") and values.get("expansion")):
        raise RecordValidationError(
            "Record has neither an api id nor a card number and expansion", label=label
        )

    values["extra"] = copy.deepcopy(dict(record))
    return CanonicalCard(**values)
