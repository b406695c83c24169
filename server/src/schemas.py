from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict
from enum import Enum

USER_PLACEHOLDER = "{{user}}"


class SourceFormat(str, Enum):
    """
    The card dialect a profile was imported from.
    Legacy flat (v1) cards carry no version marker and resolve to TAVERN_V2.
    """

    TAVERN_V2 = "tavern-v2"
    TAVERN_V3 = "tavern-v3"


class CharacterProfile(BaseModel):
    """
    The canonical character record produced by a successful card import.
    Identity and timestamps are assigned by whoever stores it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="The character's display name.")
    persona: str = Field(
        ...,
        description="All persona sections of the card joined with blank lines.",
    )
    user_nickname: str = Field(
        default=USER_PLACEHOLDER,
        alias="userNickname",
        description="Template variable for the user's name, resolved at chat time.",
    )
    source_format: SourceFormat = Field(
        ..., alias="sourceFormat", description="The card dialect it came from."
    )

    def to_record(self) -> Dict[str, Any]:
        """Returns the profile keyed by its camelCase record names."""
        return self.model_dump(mode="json", by_alias=True)


class ImportFromUrlPayload(BaseModel):
    url: str = Field(
        ..., description="A local path, file:// URL or http(s) URL of a card."
    )
