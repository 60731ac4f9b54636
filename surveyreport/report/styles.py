from __future__ import annotations

from dataclasses import dataclass

from reportlab.lib import colors
from reportlab.lib.colors import Color


BRAND_VIOLET = colors.Color(109 / 255, 40 / 255, 217 / 255)
ROLE_VIOLET = colors.Color(124 / 255, 58 / 255, 237 / 255)
CARD_BORDER = colors.Color(220 / 255, 220 / 255, 220 / 255)
CARD_FILL = colors.Color(249 / 255, 250 / 255, 251 / 255)
DIVIDER = colors.Color(200 / 255, 200 / 255, 200 / 255)


def gray(level: int) -> Color:
    return colors.Color(level / 255, level / 255, level / 255)


@dataclass(frozen=True)
class DrawStyle:
    """Complete drawing state for one primitive.

    ``apply`` sets every attribute on the canvas, so nothing drawn with a
    style depends on what was drawn before it.
    """

    font_name: str = 'Helvetica'
    font_size: float = 10
    fill: Color = colors.black
    stroke: Color = colors.black
    line_width: float = 0.57

    def apply(self, canvas) -> None:
        canvas.setFont(self.font_name, self.font_size)
        canvas.setFillColor(self.fill)
        canvas.setStrokeColor(self.stroke)
        canvas.setLineWidth(self.line_width)


TITLE = DrawStyle(font_size=18, fill=BRAND_VIOLET)
GENERATED_ON = DrawStyle(font_size=10, fill=gray(100))
HEADER_RULE = DrawStyle(stroke=colors.black)

CARD_FRAME = DrawStyle(fill=CARD_FILL, stroke=CARD_BORDER)
PLACEHOLDER_BOX = DrawStyle(stroke=gray(160))
PLACEHOLDER_LABEL = DrawStyle(font_size=8, fill=gray(120))

CITIZEN_NAME = DrawStyle(font_name='Helvetica-Bold', font_size=12, fill=colors.black)
CITIZEN_DETAIL = DrawStyle(font_size=9, fill=gray(80))
COLUMN_DIVIDER = DrawStyle(stroke=DIVIDER)

ROLE_LABEL = DrawStyle(font_name='Helvetica-Bold', font_size=8, fill=ROLE_VIOLET)
MEMBER_NAME = DrawStyle(font_name='Helvetica-Bold', font_size=8, fill=gray(60))
MEMBER_DETAIL = DrawStyle(font_size=8, fill=gray(60))
