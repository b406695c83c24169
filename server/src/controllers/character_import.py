from typing import Annotated, Any, Dict
from litestar import Controller, post
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.params import Body
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK

from schemas import CharacterProfile, ImportFromUrlPayload
from services.card_exporter import export_character_card_png
from services.character_card_parser import fetch_and_parse_character_card
from services.character_card_processor import load_character_card_from_content
from logging_config import get_logger

logger = get_logger(__name__)


def _profile_response(profile: CharacterProfile) -> Response[Dict[str, Any]]:
    return Response(content={"data": profile.to_record()}, status_code=HTTP_200_OK)


class CharacterImportController(Controller):
    path = "/characters"

    @post("/import", status_code=HTTP_200_OK)
    async def import_character(
        self,
        data: Annotated[UploadFile, Body(media_type=RequestEncodingType.MULTI_PART)],
    ) -> Response[Dict[str, Any]]:
        """Import an uploaded .png or .json character card."""
        content = await data.read()
        logger.info(f"Received character card upload {data.filename} ({len(content)} bytes)")
        profile = load_character_card_from_content(data.filename or "", content)
        return _profile_response(profile)

    @post("/import-url", status_code=HTTP_200_OK)
    async def import_character_from_url(
        self, data: ImportFromUrlPayload
    ) -> Response[Dict[str, Any]]:
        """Import a character card from a local path or a remote URL."""
        profile = await fetch_and_parse_character_card(data.url)
        return _profile_response(profile)

    @post("/export", status_code=HTTP_200_OK)
    async def export_character(self, data: CharacterProfile) -> Response[bytes]:
        """Export a profile as a PNG character card."""
        png_bytes = export_character_card_png(data)

        safe_filename = (
            "".join(c for c in data.name if c.isalnum() or c in " ._-").rstrip()
            or "character"
        )
        return Response(
            content=png_bytes,
            media_type="image/png",
            headers={
                "Content-Disposition": f'attachment; filename="{safe_filename}.png"'
            },
        )
