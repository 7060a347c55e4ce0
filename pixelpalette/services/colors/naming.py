"""
Nearest named color lookup.

Matches a color against a reference table by CIE76 distance in L*a*b*.
"""

from dataclasses import dataclass
from typing import Sequence

from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color
from pixelpalette.services.colors.distance import delta_e_76


@dataclass(frozen=True)
class NamedColor:
    name: str
    color: Color

    @property
    def hex(self) -> str:
        return self.color.hex


# HTML 4.01 basic colors
BASIC_COLORS = tuple(
    NamedColor(name, Color.from_hex(hex_code))
    for name, hex_code in (
        ("black", "#000000"),
        ("silver", "#C0C0C0"),
        ("gray", "#808080"),
        ("white", "#FFFFFF"),
        ("maroon", "#800000"),
        ("red", "#FF0000"),
        ("purple", "#800080"),
        ("fuchsia", "#FF00FF"),
        ("green", "#008000"),
        ("lime", "#00FF00"),
        ("olive", "#808000"),
        ("yellow", "#FFFF00"),
        ("navy", "#000080"),
        ("blue", "#0000FF"),
        ("teal", "#008080"),
        ("aqua", "#00FFFF"),
    )
)


def nearest_named_color(color: Color, table: Sequence[NamedColor] = BASIC_COLORS) -> NamedColor:
    """Closest entry of ``table``; the earlier entry wins ties."""
    if not table:
        raise InvalidParameterError("Named color table is empty")
    return min(table, key=lambda entry: delta_e_76(color, entry.color))
