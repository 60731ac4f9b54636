from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from reportlab.lib.utils import ImageReader


# Text shown in place of a missing field. Applied at render time; the record
# itself keeps None so callers can still tell "absent" from "defaulted".
FIELD_DEFAULTS: dict[str, str] = {
    'name': 'Unknown Citizen',
    'mobile': 'N/A',
    'date': 'N/A',
    'zone_name': 'N/A',
    'operator_name': 'N/A',
    'operator_mobile': '',
    'coordinator_name': 'N/A',
    'coordinator_mobile': '',
}


def _text_field(*aliases: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(*aliases))


@dataclass(frozen=True)
class TeamMember:
    name: str | None
    mobile: str | None
    image_url: str | None

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.mobile or self.image_url)


class SurveyRecord(BaseModel):
    """One survey row as returned by the backend.

    Every field is optional. Keys are accepted in the backend's camelCase
    spelling as well as snake_case; unknown keys are ignored.
    """

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    name: str | None = _text_field('name')
    mobile: str | None = _text_field('mobile')
    date: str | None = _text_field('date')
    zone_name: str | None = _text_field('zoneName', 'zone_name', 'zone')
    citizen_image: str | None = _text_field('citizen_image', 'citizenImage')

    operator_name: str | None = _text_field('otName', 'ot_name', 'operator_name')
    operator_mobile: str | None = _text_field('otMobile', 'ot_mobile', 'operator_mobile')
    operator_image: str | None = _text_field('otProfile', 'ot_profile', 'operator_image')

    coordinator_name: str | None = _text_field('zcName', 'zc_name', 'coordinator_name')
    coordinator_mobile: str | None = _text_field('zcMobile', 'zc_mobile', 'coordinator_mobile')
    coordinator_image: str | None = _text_field('zcProfile', 'zc_profile', 'coordinator_image')

    # Alternate coordinator set: the operator's parent in the team hierarchy.
    parent_name: str | None = _text_field('ot_parent_name', 'otParentName', 'parent_name')
    parent_mobile: str | None = _text_field('ot_parent_mobile', 'otParentMobile', 'parent_mobile')
    parent_image: str | None = _text_field('ot_parent_profile', 'otParentProfile', 'parent_image')

    @field_validator('*', mode='before')
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        # Upstream data is not validated: containers count as absent and any
        # other scalar is shown as text.
        if value is None or isinstance(value, (dict, list, tuple, set)):
            return None
        value = str(value).strip()
        return value or None

    def operator(self) -> TeamMember:
        return TeamMember(
            name=self.operator_name,
            mobile=self.operator_mobile,
            image_url=self.operator_image,
        )

    def coordinator(self) -> TeamMember:
        """Primary coordinator set, or the alternate set when the primary one is wholly absent."""
        primary = TeamMember(
            name=self.coordinator_name,
            mobile=self.coordinator_mobile,
            image_url=self.coordinator_image,
        )
        if not primary.is_empty:
            return primary
        return TeamMember(
            name=self.parent_name,
            mobile=self.parent_mobile,
            image_url=self.parent_image,
        )

    def display(self, field: str) -> str:
        value = getattr(self, field)
        return value if value else FIELD_DEFAULTS[field]


class ImageStatus(str, Enum):
    loaded = 'loaded'
    absent = 'absent'


@dataclass(frozen=True)
class ImageAsset:
    """Outcome of one image load: an embeddable JPEG bitmap, or absent."""

    status: ImageStatus
    url: str | None = None
    reason: str | None = None
    data: bytes | None = None
    width: int = 0
    height: int = 0

    @classmethod
    def absent(cls, url: str | None, reason: str) -> ImageAsset:
        return cls(status=ImageStatus.absent, url=url, reason=reason)

    @classmethod
    def loaded(cls, url: str, data: bytes, width: int, height: int) -> ImageAsset:
        return cls(status=ImageStatus.loaded, url=url, data=data, width=width, height=height)

    @property
    def is_loaded(self) -> bool:
        return self.status == ImageStatus.loaded and bool(self.data)

    def reader(self) -> ImageReader:
        if not self.is_loaded:
            raise ValueError(f'image is absent: {self.reason}')
        return ImageReader(io.BytesIO(self.data))
