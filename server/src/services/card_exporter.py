import base64
import io
import json
from typing import Any, Dict, Optional

from PIL import Image, PngImagePlugin

from schemas import CharacterProfile, SourceFormat
from services.card_payload import CHARA_KEYWORD
from logging_config import get_logger

logger = get_logger(__name__)

CANVAS_SIZE = (400, 600)


def build_card_document(profile: CharacterProfile) -> Dict[str, Any]:
    """Formats a profile as a nested v2 or v3 card, keeping its source format."""
    if profile.source_format == SourceFormat.TAVERN_V3:
        spec, spec_version = "chara_card_v3", "3.0"
    else:
        spec, spec_version = "chara_card_v2", "2.0"

    return {
        "spec": spec,
        "spec_version": spec_version,
        "data": {
            "name": profile.name,
            # The persona already folds every prompt section together
            "description": profile.persona,
            "personality": "",
            "scenario": "",
            "first_mes": "",
            "mes_example": "",
            "creator_notes": "",
            "system_prompt": "",
            "post_history_instructions": "",
            "alternate_greetings": [],
            "tags": [],
            "creator": "",
            "character_version": "1.0",
            "extensions": {},
        },
    }


def export_character_card_png(
    profile: CharacterProfile, image: Optional[bytes] = None
) -> bytes:
    """
    Embeds the profile as a base64 'chara' tEXt chunk.

    With `image`, its existing text chunks are kept and any old 'chara' entry
    is replaced. Without one, a blank canvas is used.
    """
    json_data = json.dumps(build_card_document(profile), ensure_ascii=False)
    encoded_data = base64.b64encode(json_data.encode("utf-8")).decode("ascii")

    png_info = PngImagePlugin.PngInfo()
    if image is not None:
        source = Image.open(io.BytesIO(image))
        for key, value in getattr(source, "text", {}).items():
            if key != CHARA_KEYWORD:
                png_info.add_text(key, value)
    else:
        source = Image.new("RGB", CANVAS_SIZE, "black")
    png_info.add_text(CHARA_KEYWORD, encoded_data)

    byte_io = io.BytesIO()
    source.save(byte_io, "PNG", pnginfo=png_info)
    logger.info(f"Exported character card '{profile.name}' ({profile.source_format.value})")
    return byte_io.getvalue()
