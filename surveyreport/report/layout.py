from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm


# Layout is expressed in millimetres measured from the top-left corner of the
# page; conversion to PDF points (bottom-left origin) happens in ``pt_x``/``pt_y``.
PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_WIDTH_MM = PAGE_WIDTH / mm
PAGE_HEIGHT_MM = PAGE_HEIGHT / mm

MARGIN_X_MM = 14.0

HEADER_TITLE_Y_MM = 20.0
HEADER_DATE_Y_MM = 26.0
HEADER_RULE_Y_MM = 30.0

FIRST_CARD_TOP_MM = 40.0
TOP_MARGIN_MM = 20.0
USABLE_HEIGHT_MM = 280.0

# Reserved footprint of a card; the drawn frame is shorter, the rest is padding
# below it that still has to fit on the page.
CARD_HEIGHT_MM = 65.0
CARD_FRAME_HEIGHT_MM = 60.0
CARD_GAP_MM = 5.0
CARD_RADIUS_MM = 3.0


def pt_x(x_mm: float) -> float:
    return x_mm * mm


def pt_y(y_mm: float) -> float:
    return PAGE_HEIGHT - y_mm * mm


@dataclass(frozen=True)
class PageGeometry:
    first_offset: float = FIRST_CARD_TOP_MM
    top_margin: float = TOP_MARGIN_MM
    usable_height: float = USABLE_HEIGHT_MM
    card_height: float = CARD_HEIGHT_MM
    card_gap: float = CARD_GAP_MM

    def __post_init__(self) -> None:
        if self.card_height <= 0 or self.card_gap < 0:
            raise ValueError('card height must be positive and gap non-negative')
        if self.top_margin + self.card_height > self.usable_height:
            raise ValueError('a card does not fit on an empty page')

    @property
    def stride(self) -> float:
        return self.card_height + self.card_gap

    def capacity(self, start: float) -> int:
        """Number of cards that fit on a page whose first card starts at ``start``."""
        room = self.usable_height - self.card_height - start
        if room < 0:
            return 0
        return int(math.floor(room / self.stride)) + 1

    def pages_needed(self, card_count: int) -> int:
        if card_count <= 0:
            return 1
        first = self.capacity(self.first_offset)
        if card_count <= first:
            return 1
        per_page = self.capacity(self.top_margin)
        return 1 + math.ceil((card_count - first) / per_page)


@dataclass(frozen=True)
class Slot:
    page: int
    offset: float


@dataclass
class PaginationController:
    """Vertical cursor and page-break decisions for one document.

    ``reserve_slot`` decides whether the next card still fits and, if not,
    calls ``on_page_break`` and resets the cursor to the top margin. The
    caller draws at the returned offset and then calls ``advance``.
    """

    geometry: PageGeometry = field(default_factory=PageGeometry)
    on_page_break: Callable[[], None] | None = None
    page: int = field(default=1, init=False)
    cursor: float = field(init=False)

    def __post_init__(self) -> None:
        self.cursor = self.geometry.first_offset

    def reserve_slot(self) -> Slot:
        # Break on the card's full height; the trailing gap is not content.
        if self.cursor + self.geometry.card_height > self.geometry.usable_height:
            if self.on_page_break is not None:
                self.on_page_break()
            self.page += 1
            self.cursor = self.geometry.top_margin
        return Slot(page=self.page, offset=self.cursor)

    def advance(self) -> None:
        self.cursor += self.geometry.stride

    @property
    def page_count(self) -> int:
        return self.page


def plan_pages(card_count: int, geometry: PageGeometry | None = None) -> list[Slot]:
    controller = PaginationController(geometry=geometry or PageGeometry())
    slots: list[Slot] = []
    for _ in range(max(0, card_count)):
        slots.append(controller.reserve_slot())
        controller.advance()
    return slots
