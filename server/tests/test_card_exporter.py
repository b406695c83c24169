import pytest

from schemas import CharacterProfile, SourceFormat
from services.card_exporter import build_card_document, export_character_card_png
from services.card_normalizer import normalize_card
from services.character_card_processor import load_card_document, load_png_document
from services.text_chunks import extract_text_chunks


@pytest.mark.parametrize("source_format", [SourceFormat.TAVERN_V2, SourceFormat.TAVERN_V3])
def test_exported_card_imports_back(source_format):
    profile = CharacterProfile(
        name="アリア",
        persona="A cat girl.\n\nPersonality: playful ☕",
        sourceFormat=source_format,
    )

    imported = normalize_card(load_png_document(export_character_card_png(profile)))

    assert imported == profile


def test_build_card_document_spec():
    v2 = build_card_document(CharacterProfile(name="A", persona="p", sourceFormat="tavern-v2"))
    v3 = build_card_document(CharacterProfile(name="A", persona="p", sourceFormat="tavern-v3"))

    assert (v2["spec"], v2["spec_version"]) == ("chara_card_v2", "2.0")
    assert (v3["spec"], v3["spec_version"]) == ("chara_card_v3", "3.0")
    assert v2["data"]["name"] == "A"
    assert v2["data"]["description"] == "p"


def test_export_into_existing_image_replaces_card(card_png, encoded):
    original = card_png(
        [
            ("text", "Comment", "drawn by hand"),
            ("text", "chara", encoded({"name": "Old"})),
        ]
    )
    profile = CharacterProfile(name="New", persona="Fresh.", sourceFormat="tavern-v2")

    exported = export_character_card_png(profile, original)

    keywords = extract_text_chunks(exported)
    assert keywords["Comment"] == "drawn by hand"
    assert load_card_document("new.png", exported)["data"]["name"] == "New"
