import json
from typing import Any, Dict, List, Mapping, Optional

from exceptions import InvalidCardError
from schemas import USER_PLACEHOLDER, CharacterProfile, SourceFormat
from logging_config import get_logger

logger = get_logger(__name__)

UNNAMED_CHARACTER = "Unnamed Character"

V3_SPEC = "chara_card_v3"
V3_SPEC_VERSION = "3.0"


def _coalesce(fields: Mapping[str, Any], *keys: str) -> Any:
    """Returns the first value that is not None, in key order."""
    for key in keys:
        value = fields.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def card_fields(card: Any) -> Dict[str, Any]:
    """
    Returns the object holding the character fields.
    V2/V3 cards wrap them inside `data`; V1 cards keep them at the top level.
    Any `data` other than null takes the place of the root, and one that is
    not an object holds no fields.
    """
    if not isinstance(card, dict):
        raise InvalidCardError(type(card).__name__)

    data = card.get("data")
    if data is None:
        return card
    if isinstance(data, dict):
        return data
    return {}


def resolve_name(fields: Mapping[str, Any]) -> str:
    name = _coalesce(fields, "name", "char_name")
    if name is None:
        return UNNAMED_CHARACTER
    if isinstance(name, str):
        return name
    return json.dumps(name, ensure_ascii=False)


def build_persona(fields: Mapping[str, Any]) -> str:
    """
    Builds the persona from the card's prompt fields, in a fixed order.
    Missing or empty fields drop their whole section.
    """
    sections: List[str] = []

    system_prompt = _text(fields.get("system_prompt"))
    if system_prompt:
        sections.append(system_prompt)

    description = _text(_coalesce(fields, "description", "char_persona"))
    if description:
        sections.append(description)

    personality = _text(fields.get("personality"))
    if personality:
        sections.append(f"Personality: {personality}")

    scenario = _text(_coalesce(fields, "scenario", "world_scenario"))
    if scenario:
        sections.append(f"Scenario: {scenario}")

    greeting = _text(_coalesce(fields, "first_mes", "char_greeting"))
    if greeting:
        sections.append(f"First greeting: {greeting}")

    examples = _text(_coalesce(fields, "mes_example", "example_dialogue"))
    if examples:
        sections.append(f"Example dialogue:\n{examples}")

    return "\n\n".join(sections)


def detect_source_format(card: Mapping[str, Any], fields: Mapping[str, Any]) -> SourceFormat:
    # V1 cards have no marker and land on TAVERN_V2 as well
    if card.get("spec") == V3_SPEC or fields.get("spec_version") == V3_SPEC_VERSION:
        return SourceFormat.TAVERN_V3
    return SourceFormat.TAVERN_V2


def normalize_card(card: Any) -> CharacterProfile:
    """
    Maps a character card of any dialect (flat V1, or V2/V3 nested under
    `data`) to a CharacterProfile.

    Raises:
        InvalidCardError: The card is not a JSON object.
    """
    fields = card_fields(card)
    profile = CharacterProfile(
        name=resolve_name(fields),
        persona=build_persona(fields),
        userNickname=USER_PLACEHOLDER,
        sourceFormat=detect_source_format(card, fields),
    )
    logger.debug(
        f"Normalized card '{profile.name}' as {profile.source_format.value} "
        f"({len(profile.persona)} persona chars)"
    )
    return profile
