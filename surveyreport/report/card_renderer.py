from __future__ import annotations

import logging
from dataclasses import dataclass

from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from surveyreport.report import styles
from surveyreport.report.layout import (
    CARD_FRAME_HEIGHT_MM,
    CARD_RADIUS_MM,
    MARGIN_X_MM,
    PAGE_WIDTH_MM,
    pt_x,
    pt_y,
)
from surveyreport.report.styles import DrawStyle
from surveyreport.types import FIELD_DEFAULTS, ImageAsset, SurveyRecord, TeamMember


logger = logging.getLogger(__name__)

NO_IMAGE_LABEL = 'No Image'
OPERATOR_LABEL = 'FIELD OPERATOR (OT)'
COORDINATOR_LABEL = 'ZONAL COORDINATOR (ZC)'

# Offsets in mm. x is from the page's left edge, y from the card's top edge.
CITIZEN_IMAGE_X = 20.0
CITIZEN_IMAGE_Y = 10.0
CITIZEN_IMAGE_SIZE = 30.0
NO_IMAGE_LABEL_X = 25.0
NO_IMAGE_LABEL_Y = 25.0

CITIZEN_TEXT_X = 55.0
CITIZEN_NAME_Y = 15.0
CITIZEN_MOBILE_Y = 22.0
CITIZEN_DATE_Y = 28.0
CITIZEN_ZONE_Y = 34.0
ZONE_COLUMN_WIDTH = 60.0
ZONE_LINE_HEIGHT = 3.65
ZONE_MAX_LINES = 6

DIVIDER_X = 120.0
DIVIDER_TOP = 5.0
DIVIDER_BOTTOM = 55.0

TEAM_X = 125.0
TEAM_TEXT_X = 140.0
TEAM_IMAGE_SIZE = 12.0


@dataclass(frozen=True)
class RoleBlock:
    label: str
    label_y: float
    image_y: float
    name_y: float
    mobile_y: float
    name_field: str
    mobile_field: str


OPERATOR_BLOCK = RoleBlock(
    OPERATOR_LABEL, label_y=12.0, image_y=15.0, name_y=20.0, mobile_y=25.0,
    name_field='operator_name', mobile_field='operator_mobile',
)
COORDINATOR_BLOCK = RoleBlock(
    COORDINATOR_LABEL, label_y=38.0, image_y=41.0, name_y=46.0, mobile_y=51.0,
    name_field='coordinator_name', mobile_field='coordinator_mobile',
)


@dataclass(frozen=True)
class CardImages:
    citizen: ImageAsset
    operator: ImageAsset
    coordinator: ImageAsset


ELLIPSIS = '...'


def _break_long_line(line: str, style: DrawStyle, limit: float) -> list[str]:
    """Split a line that has no usable spaces character by character."""
    pieces: list[str] = []
    current = ''
    for char in line:
        if current and stringWidth(current + char, style.font_name, style.font_size) > limit:
            pieces.append(current)
            current = char
        else:
            current += char
    if current:
        pieces.append(current)
    return pieces


def wrap_zone(text: str, *, style: DrawStyle = styles.CITIZEN_DETAIL) -> list[str]:
    limit = ZONE_COLUMN_WIDTH * mm
    lines: list[str] = []
    for line in simpleSplit(text, style.font_name, style.font_size, limit):
        if stringWidth(line, style.font_name, style.font_size) > limit:
            lines.extend(_break_long_line(line, style, limit))
        else:
            lines.append(line)
    if len(lines) <= ZONE_MAX_LINES:
        return lines

    last = lines[ZONE_MAX_LINES - 1].rstrip()
    while last and stringWidth(last + ELLIPSIS, style.font_name, style.font_size) > limit:
        last = last[:-1].rstrip()
    return lines[:ZONE_MAX_LINES - 1] + [last + ELLIPSIS]


class CardRenderer:
    """Draws one fixed-size survey card onto a reportlab canvas.

    Every primitive is preceded by the full ``DrawStyle`` it needs, and the
    canvas graphics state is saved and restored around the whole card.
    """

    def __init__(self, canvas):
        self.canvas = canvas

    def draw(self, record: SurveyRecord, images: CardImages, top: float) -> None:
        self.canvas.saveState()
        try:
            self._draw_frame(top)
            self._draw_citizen_column(record, images.citizen, top)
            self._draw_divider(top)
            self._draw_role(OPERATOR_BLOCK, record.operator(), images.operator, top)
            self._draw_role(COORDINATOR_BLOCK, record.coordinator(), images.coordinator, top)
        finally:
            self.canvas.restoreState()

    def _text(self, style: DrawStyle, x: float, y: float, text: str) -> None:
        style.apply(self.canvas)
        self.canvas.drawString(pt_x(x), pt_y(y), text)

    def _box(self, x: float, y: float, size: float) -> None:
        styles.PLACEHOLDER_BOX.apply(self.canvas)
        self.canvas.rect(pt_x(x), pt_y(y + size), size * mm, size * mm, stroke=1, fill=0)

    def _image(self, asset: ImageAsset, x: float, y: float, size: float, *, slot: str) -> bool:
        if not asset.is_loaded:
            return False
        try:
            self.canvas.drawImage(
                asset.reader(),
                pt_x(x),
                pt_y(y + size),
                width=size * mm,
                height=size * mm,
            )
        except Exception as exc:
            logger.warning('Failed to embed %s image from %s: %s', slot, asset.url, exc)
            return False
        return True

    def _draw_frame(self, top: float) -> None:
        styles.CARD_FRAME.apply(self.canvas)
        self.canvas.roundRect(
            pt_x(MARGIN_X_MM),
            pt_y(top + CARD_FRAME_HEIGHT_MM),
            (PAGE_WIDTH_MM - 2 * MARGIN_X_MM) * mm,
            CARD_FRAME_HEIGHT_MM * mm,
            CARD_RADIUS_MM * mm,
            stroke=1,
            fill=1,
        )

    def _draw_citizen_column(self, record: SurveyRecord, image: ImageAsset, top: float) -> None:
        image_top = top + CITIZEN_IMAGE_Y
        if not self._image(image, CITIZEN_IMAGE_X, image_top, CITIZEN_IMAGE_SIZE, slot='citizen'):
            self._box(CITIZEN_IMAGE_X, image_top, CITIZEN_IMAGE_SIZE)
            self._text(styles.PLACEHOLDER_LABEL, NO_IMAGE_LABEL_X, top + NO_IMAGE_LABEL_Y, NO_IMAGE_LABEL)

        self._text(styles.CITIZEN_NAME, CITIZEN_TEXT_X, top + CITIZEN_NAME_Y, record.display('name'))
        self._text(styles.CITIZEN_DETAIL, CITIZEN_TEXT_X, top + CITIZEN_MOBILE_Y,
                   f"Mobile: {record.display('mobile')}")
        self._text(styles.CITIZEN_DETAIL, CITIZEN_TEXT_X, top + CITIZEN_DATE_Y,
                   f"Date: {record.display('date')}")

        zone_lines = wrap_zone(f"Zone: {record.display('zone_name')}")
        for index, line in enumerate(zone_lines):
            self._text(styles.CITIZEN_DETAIL, CITIZEN_TEXT_X, top + CITIZEN_ZONE_Y + index * ZONE_LINE_HEIGHT, line)

    def _draw_divider(self, top: float) -> None:
        styles.COLUMN_DIVIDER.apply(self.canvas)
        self.canvas.line(pt_x(DIVIDER_X), pt_y(top + DIVIDER_TOP), pt_x(DIVIDER_X), pt_y(top + DIVIDER_BOTTOM))

    def _draw_role(
        self,
        block: RoleBlock,
        member: TeamMember,
        image: ImageAsset,
        top: float,
    ) -> None:
        self._text(styles.ROLE_LABEL, TEAM_X, top + block.label_y, block.label)

        image_top = top + block.image_y
        if not self._image(image, TEAM_X, image_top, TEAM_IMAGE_SIZE, slot=block.label.lower()):
            self._box(TEAM_X, image_top, TEAM_IMAGE_SIZE)

        self._text(styles.MEMBER_NAME, TEAM_TEXT_X, top + block.name_y, member.name or FIELD_DEFAULTS[block.name_field])
        mobile = member.mobile or FIELD_DEFAULTS[block.mobile_field]
        if mobile:
            self._text(styles.MEMBER_DETAIL, TEAM_TEXT_X, top + block.mobile_y, mobile)
