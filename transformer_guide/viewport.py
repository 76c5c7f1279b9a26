"""
Viewport Layout Model

This module is a tiny stand-in for a browser's layout engine: rectangles laid
out in document coordinates, a scrollable viewport, and visibility observers
that report how much of each observed region is on screen.

It exists so that the scroll-spy can be driven (and taught) without a
browser. The observers follow the shape of the browser's IntersectionObserver:
    - observe(region) / unobserve(region) / disconnect()
    - a callback receiving a list of entries, each carrying the fraction of
      the region's area that is visible inside the (margin-adjusted) boundary

Coordinates:
    Regions live in DOCUMENT coordinates (y grows downwards from the top of
    the page). The viewport shows the slice [scroll_top, scroll_top + height).
    An explicit boundary rectangle is given in SCREEN coordinates, i.e.
    relative to the top-left corner of the viewport.

Classes:
    Rect: Axis-aligned rectangle
    ViewportRegion: A rectangle that belongs to one rendered element
    VisibilityEntry: One visibility measurement delivered to a callback
    Viewport: Scrollable window onto the document
    ViewportObserver: Reports visibility changes of observed regions

Functions:
    parse_margin: Parse a CSS-style margin string
    apply_margin: Grow or shrink a rectangle by a parsed margin
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# (value, unit) for one side; unit is "px" or "%"
MarginValue = Tuple[float, str]
# top, right, bottom, left - the CSS order
Margin = Tuple[MarginValue, MarginValue, MarginValue, MarginValue]

_MARGIN_VALUE_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?|-?\.\d+)(px|%)$")


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle.

    Attributes:
        top: y coordinate of the top edge
        left: x coordinate of the left edge
        width: Horizontal extent (>= 0)
        height: Vertical extent (>= 0)
    """

    top: float
    left: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def translate(self, dy: float = 0.0, dx: float = 0.0) -> "Rect":
        """Return a copy moved by (dx, dy)."""
        return Rect(self.top + dy, self.left + dx, self.width, self.height)

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """
        Return the overlapping rectangle, or None if the two do not overlap.

        Rectangles that only touch along an edge do not overlap.
        """
        top = max(self.top, other.top)
        left = max(self.left, other.left)
        bottom = min(self.bottom, other.bottom)
        right = min(self.right, other.right)

        if bottom <= top or right <= left:
            return None

        return Rect(top, left, right - left, bottom - top)


@dataclass(eq=False)
class ViewportRegion:
    """
    The on-page rectangle of one rendered element.

    Regions compare by identity, like DOM elements: two regions with equal
    rectangles are still different elements. The rectangle may be replaced
    when the page re-flows; observers pick up the change on the next scroll
    or resize.

    Attributes:
        rect: Position and size in document coordinates
        name: Optional label for debugging
    """

    rect: Rect
    name: str = ""


@dataclass(frozen=True)
class VisibilityEntry:
    """
    One visibility measurement.

    Attributes:
        region: The observed region
        visible_fraction: Fraction of the region's area inside the boundary,
                          in [0, 1]
    """

    region: ViewportRegion
    visible_fraction: float


def parse_margin(margin: str) -> Margin:
    """
    Parse a CSS-style margin such as "10px", "0px -20%" or "5px 0px 10% 0px".

    Like CSS, one value applies to all sides, two values are
    (vertical, horizontal), three are (top, horizontal, bottom) and four are
    (top, right, bottom, left). Each value must have a "px" or "%" unit;
    a bare "0" is also accepted.

    Args:
        margin: Margin string

    Returns:
        Tuple of four (value, unit) pairs in top, right, bottom, left order

    Raises:
        ValueError: If the string is not a valid margin
    """
    if not isinstance(margin, str):
        raise ValueError(f"Margin must be a string, got {margin!r}")

    parts = margin.split()
    if not 1 <= len(parts) <= 4:
        raise ValueError(f"Margin must have 1 to 4 values, got {margin!r}")

    values: List[MarginValue] = []
    for part in parts:
        if part == "0":
            values.append((0.0, "px"))
            continue
        match = _MARGIN_VALUE_PATTERN.match(part)
        if match is None:
            raise ValueError(f"Invalid margin value {part!r} in {margin!r}")
        values.append((float(match.group(1)), match.group(2)))

    if len(values) == 1:
        top = right = bottom = left = values[0]
    elif len(values) == 2:
        top = bottom = values[0]
        right = left = values[1]
    elif len(values) == 3:
        top, right, bottom = values
        left = right
    else:
        top, right, bottom, left = values

    return (top, right, bottom, left)


def _resolve(value: MarginValue, reference: float) -> float:
    amount, unit = value
    if unit == "%":
        return amount * reference / 100.0
    return amount


def apply_margin(rect: Rect, margin: Margin) -> Rect:
    """
    Grow (positive values) or shrink (negative values) a rectangle.

    Percentages of the top and bottom margins refer to the rectangle's height,
    those of left and right to its width. A rectangle shrunk past zero size
    collapses to zero width/height.
    """
    top_value, right_value, bottom_value, left_value = margin
    top = _resolve(top_value, rect.height)
    right = _resolve(right_value, rect.width)
    bottom = _resolve(bottom_value, rect.height)
    left = _resolve(left_value, rect.width)

    return Rect(
        rect.top - top,
        rect.left - left,
        max(rect.width + left + right, 0.0),
        max(rect.height + top + bottom, 0.0),
    )


def visible_fraction(region_rect: Rect, boundary: Rect) -> float:
    """
    Fraction of region_rect's area that lies inside boundary.

    Both rectangles must be in the same coordinate system. Zero-area regions
    are never visible.
    """
    if region_rect.area <= 0:
        return 0.0

    overlap = region_rect.intersection(boundary)
    if overlap is None:
        return 0.0

    return min(overlap.area / region_rect.area, 1.0)


class ViewportObserver:
    """
    Reports visibility changes of observed regions.

    Created by Viewport.create_observer. Whenever the viewport scrolls or
    resizes, the observer measures every observed region and delivers the
    entries whose visible fraction changed. A newly observed region gets an
    initial entry straight away.

    Attributes:
        boundary: Reference rectangle in screen coordinates, or None for the
                  whole viewport
        margin: Parsed margin applied to the boundary
        connected: False once disconnect() has been called
    """

    def __init__(
        self,
        viewport: "Viewport",
        callback: Callable[[List[VisibilityEntry]], None],
        boundary: Optional[Rect] = None,
        margin: str = "0px",
    ):
        self._viewport = viewport
        self._callback = callback
        self.boundary = boundary
        self.margin = parse_margin(margin)
        self.connected = True
        # Last delivered fraction per observed region
        self._fractions: Dict[ViewportRegion, float] = {}

    @property
    def observed_regions(self) -> List[ViewportRegion]:
        return list(self._fractions)

    def observe(self, region: ViewportRegion) -> None:
        """Start observing a region and deliver its initial entry."""
        if not self.connected:
            raise RuntimeError("Cannot observe with a disconnected observer")
        if region in self._fractions:
            return

        fraction = self._measure(region)
        self._fractions[region] = fraction
        self._callback([VisibilityEntry(region, fraction)])

    def unobserve(self, region: ViewportRegion) -> None:
        """Stop observing a region. Unknown regions are ignored."""
        self._fractions.pop(region, None)

    def disconnect(self) -> None:
        """Stop observing everything. Safe to call more than once."""
        if not self.connected:
            return
        self.connected = False
        self._fractions.clear()
        self._viewport._remove_observer(self)

    def take_snapshot(self) -> List[VisibilityEntry]:
        """Measure every observed region now, without notifying."""
        return [
            VisibilityEntry(region, self._measure(region)) for region in self._fractions
        ]

    def check(self) -> None:
        """Re-measure observed regions and deliver the ones that changed."""
        if not self.connected:
            return

        changed = []
        for region, previous in list(self._fractions.items()):
            fraction = self._measure(region)
            if fraction != previous:
                self._fractions[region] = fraction
                changed.append(VisibilityEntry(region, fraction))

        if changed:
            self._callback(changed)

    def _measure(self, region: ViewportRegion) -> float:
        root = self._viewport.screen_rect
        if self.boundary is not None:
            root = root.intersection(self.boundary) or Rect(0.0, 0.0, 0.0, 0.0)
        root = apply_margin(root, self.margin)

        on_screen = region.rect.translate(dy=-self._viewport.scroll_top)
        return visible_fraction(on_screen, root)


class Viewport:
    """
    Scrollable window onto a document.

    The viewport is the host environment of the scroll-spy: scrolling and
    resizing are the "visibility-change events" that make its observers
    deliver new entries.

    Attributes:
        width: Viewport width
        height: Viewport height
        scroll_top: Current vertical scroll offset (document y shown at the
                    top of the screen)
        document_height: Total height of the document, or None for unbounded
                         scrolling

    Example:
        >>> viewport = Viewport(width=800, height=600, document_height=3000)
        >>> region = ViewportRegion(Rect(top=1000, left=0, width=800, height=500))
        >>> observer = viewport.create_observer(print)
        >>> observer.observe(region)   # prints the initial entry (fraction 0.0)
        >>> viewport.scroll_to(900)    # prints the changed entry (fraction 1.0)
    """

    def __init__(
        self,
        width: float,
        height: float,
        document_height: Optional[float] = None,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport size must be positive, got {width}x{height}")

        self.width = float(width)
        self.height = float(height)
        self.document_height = document_height
        self.scroll_top = 0.0
        self._observers: List[ViewportObserver] = []

    @property
    def screen_rect(self) -> Rect:
        """The viewport in screen coordinates."""
        return Rect(0.0, 0.0, self.width, self.height)

    @property
    def max_scroll_top(self) -> Optional[float]:
        if self.document_height is None:
            return None
        return max(self.document_height - self.height, 0.0)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def create_observer(
        self,
        callback: Callable[[List[VisibilityEntry]], None],
        boundary: Optional[Rect] = None,
        margin: str = "0px",
    ) -> ViewportObserver:
        """
        Create a visibility observer attached to this viewport.

        Args:
            callback: Called with a list of VisibilityEntry on every change
            boundary: Reference rectangle in screen coordinates (None for the
                      whole viewport)
            margin: CSS-style margin applied to the boundary

        Returns:
            A connected ViewportObserver
        """
        observer = ViewportObserver(self, callback, boundary=boundary, margin=margin)
        self._observers.append(observer)
        return observer

    def observer_factory(self, callback, options) -> ViewportObserver:
        """Observer factory for ScrollSpy: reads boundary and margin from options."""
        return self.create_observer(
            callback, boundary=options.boundary, margin=options.margin
        )

    def scroll_to(self, scroll_top: float) -> None:
        """Scroll so that document y = scroll_top is at the top of the screen."""
        scroll_top = max(float(scroll_top), 0.0)
        if self.max_scroll_top is not None:
            scroll_top = min(scroll_top, self.max_scroll_top)

        if scroll_top == self.scroll_top:
            return

        self.scroll_top = scroll_top
        self._notify()

    def scroll_by(self, delta: float) -> None:
        """Scroll by delta (positive scrolls down)."""
        self.scroll_to(self.scroll_top + delta)

    def scroll_into_view(self, region: ViewportRegion) -> None:
        """Scroll so that the top of region is at the top of the screen."""
        self.scroll_to(region.rect.top)

    def resize(self, width: float, height: float) -> None:
        """Change the viewport size and notify observers."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport size must be positive, got {width}x{height}")

        self.width = float(width)
        self.height = float(height)
        if self.max_scroll_top is not None and self.scroll_top > self.max_scroll_top:
            self.scroll_top = self.max_scroll_top
        self._notify()

    def _notify(self) -> None:
        logger.debug(
            "Viewport changed: scroll_top=%.1f size=%.0fx%.0f, %d observer(s)",
            self.scroll_top,
            self.width,
            self.height,
            len(self._observers),
        )
        # Observers may disconnect from inside their callbacks
        for observer in list(self._observers):
            observer.check()

    def _remove_observer(self, observer: ViewportObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
