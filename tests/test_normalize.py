"""Tests for card normalization."""

from typing import Any

import pytest

from cardnexus.config import settings
from cardnexus.importer.normalize import (
    RecordValidationError,
    compose_effect_text,
    join_list_field,
    lookup,
    normalize_card,
    parse_int,
    split_list_field,
)


class TestValueTransforms:
    def test_join_list(self) -> None:
        assert join_list_field(["Fire", "Flying"]) == "Fire, Flying"

    def test_join_passes_strings_through(self) -> None:
        assert join_list_field("Fire") == "Fire"

    def test_join_none(self) -> None:
        assert join_list_field(None) is None

    def test_split_recovers_elements(self) -> None:
        assert split_list_field(join_list_field(["Fire", "Flying"])) == ["Fire", "Flying"]

    def test_split_empty(self) -> None:
        assert split_list_field(None) == []
        assert split_list_field("") == []

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("120", 120), (" 60 ", 60), (70, 70), (80.0, 80), ("abc", None), (None, None)],
    )
    def test_parse_int(self, value: Any, expected: int | None) -> None:
        assert parse_int(value) == expected

    def test_parse_int_rejects_bool(self) -> None:
        assert parse_int(True) is None

    def test_lookup_dotted(self) -> None:
        record = {"set": {"name": "Base"}}
        assert lookup(record, "set.name") == "Base"
        assert lookup(record, "set.missing") is None
        assert lookup(record, "name.first") is None


class TestNormalizeApiRecord:
    def test_maps_api_fields(self, api_card_record: dict[str, Any]) -> None:
        card = normalize_card(api_card_record)

        assert card.api_id == "sv1-25"
        assert card.name == "Charmander"
        assert card.card_number == "25"
        assert card.expansion == "Scarlet & Violet"
        assert card.set_id == "sv1"
        assert card.release_date == "2023/03/31"
        assert card.card_type == "Pokémon"
        assert card.subtypes == "Basic"
        assert card.regulation_mark == "G"
        assert card.hp == 70
        assert card.image_url == "https://img/large.png"

    def test_extra_keeps_every_source_key(self, api_card_record: dict[str, Any]) -> None:
        api_card_record["somethingNew"] = {"nested": [1, 2]}

        card = normalize_card(api_card_record)

        assert set(api_card_record) <= set(card.extra)
        assert card.extra["somethingNew"] == {"nested": [1, 2]}

    def test_extra_is_a_copy(self, api_card_record: dict[str, Any]) -> None:
        card = normalize_card(api_card_record)
        api_card_record["attacks"][0]["name"] = "Changed"

        assert card.extra["attacks"][0]["name"] == "Ember"

    def test_multiple_types_joined(self, api_card_record: dict[str, Any]) -> None:
        api_card_record["types"] = ["Fire", "Flying"]

        card = normalize_card(api_card_record)

        assert card.types == "Fire, Flying"
        assert split_list_field(card.types) == ["Fire", "Flying"]

    def test_missing_hp_is_none(self, api_card_record: dict[str, Any]) -> None:
        del api_card_record["hp"]

        assert normalize_card(api_card_record).hp is None

    def test_non_numeric_hp_is_none(self, api_card_record: dict[str, Any]) -> None:
        api_card_record["hp"] = "??"

        assert normalize_card(api_card_record).hp is None

    def test_structured_fields_kept(self, api_card_record: dict[str, Any]) -> None:
        card = normalize_card(api_card_record)

        assert card.attacks[0]["name"] == "Ember"
        assert card.weaknesses == [{"type": "Water", "value": "×2"}]
        assert card.retreat_cost == ["Colorless"]
        assert card.legalities == {"standard": "Legal"}
        assert card.abilities == []
        assert card.rules == []

    def test_effect_text_composed_from_attacks(self, api_card_record: dict[str, Any]) -> None:
        card = normalize_card(api_card_record)

        assert card.effect_text is not None
        assert "Ember" in card.effect_text
        assert "Weakness: Water×2" in card.effect_text
        assert "Retreat: 1" in card.effect_text


class TestFieldPriority:
    def test_api_key_wins_over_alternate(self) -> None:
        record = {"name": "Pikachu", "number": "1", "cardNumber": "999", "expansion": "Base"}

        assert normalize_card(record).card_number == "1"

    def test_alternate_used_when_primary_empty(self) -> None:
        record = {"name": "Pikachu", "number": "", "cardNumber": "58", "expansion": "Base"}

        assert normalize_card(record).card_number == "58"

    def test_nested_set_name_wins_over_expansion(self) -> None:
        record = {"id": "x-1", "name": "Eevee", "set": {"name": "Jungle"}, "expansion": "Other"}

        assert normalize_card(record).expansion == "Jungle"

    def test_legacy_flat_record(self) -> None:
        record = {
            "name": "Pikachu",
            "nameJa": "ピカチュウ",
            "cardNumber": "058/102",
            "setCode": "BS",
            "regulation": "D",
            "imageUrl": "https://img/pikachu.png",
            "cardType": "Pokémon",
        }

        card = normalize_card(record)

        assert card.api_id is None
        assert card.name_ja == "ピカチュウ"
        assert card.expansion == "BS"
        assert card.regulation_mark == "D"
        assert card.image_url == "https://img/pikachu.png"
        assert card.card_type == "Pokémon"

    def test_source_effect_text_not_overwritten(self, api_card_record: dict[str, Any]) -> None:
        api_card_record["effectText"] = "Given text"

        assert normalize_card(api_card_record).effect_text == "Given text"


class TestDefaults:
    def test_game_title_default(self, api_card_record: dict[str, Any]) -> None:
        assert normalize_card(api_card_record).game_title == settings.default_game_title

    def test_game_title_from_record(self, api_card_record: dict[str, Any]) -> None:
        api_card_record["gameTitle"] = "Other Game"

        assert normalize_card(api_card_record).game_title == "Other Game"

    def test_defaults_fill_missing_fields(self, api_card_record: dict[str, Any]) -> None:
        del api_card_record["regulationMark"]

        card = normalize_card(api_card_record, {"regulation_mark": "H"})

        assert card.regulation_mark == "H"

    def test_defaults_do_not_override_record(self, api_card_record: dict[str, Any]) -> None:
        card = normalize_card(api_card_record, {"regulation_mark": "H"})

        assert card.regulation_mark == "G"


class TestValidation:
    def test_missing_name_rejected(self, api_card_record: dict[str, Any]) -> None:
        del api_card_record["name"]

        with pytest.raises(RecordValidationError, match="no name"):
            normalize_card(api_card_record)

    def test_no_identity_rejected(self) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            normalize_card({"name": "Pikachu", "number": "1"})

        assert exc_info.value.label == "Pikachu (1)"

    def test_natural_key_without_api_id_accepted(self) -> None:
        card = normalize_card({"name": "Pikachu", "cardNumber": "1", "expansion": "Base"})

        assert card.label == "Pikachu (1)"

    def test_non_object_rejected(self) -> None:
        with pytest.raises(RecordValidationError):
            normalize_card(["not", "an", "object"])  # type: ignore[arg-type]


class TestComposeEffectText:
    def test_empty_record(self) -> None:
        assert compose_effect_text({}) is None

    def test_ability_and_flavor(self) -> None:
        text = compose_effect_text(
            {
                "abilities": [{"type": "Ability", "name": "Fluffy", "text": "Heal 10."}],
                "flavorText": "It sleeps a lot.",
            }
        )

        assert text == "[Ability] Fluffy\nHeal 10.\n\nIt sleeps a lot."

    def test_numeric_damage_and_retreat(self) -> None:
        text = compose_effect_text(
            {
                "attacks": [{"cost": ["Fire"], "name": "Ember", "damage": 30, "text": ""}],
                "retreatCost": 2,
            }
        )

        assert text == "[Attack] Fire Ember 30\n\nRetreat: 2"

    def test_retreat_cost_list_counted(self) -> None:
        assert compose_effect_text({"retreatCost": ["Colorless", "Colorless"]}) == "Retreat: 2"

    def test_non_list_documents_ignored(self) -> None:
        record = {"abilities": {"name": "X"}, "attacks": 5, "weaknesses": "Water"}

        assert compose_effect_text(record) is None
