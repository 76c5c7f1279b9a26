"""
Scroll Spy - Which Section Is the Reader Looking At?

The course page is one long document split into sections ("introduction",
"architecture", "embeddings", ...). The navigation highlights the section the
reader is currently looking at, and the URL fragment (#architecture) follows
along. The scroll-spy decides which section that is.

Rule:
    1. A section is VISIBLE when at least `visibility_threshold` of its area
       (default 20%) lies inside the boundary.
    2. The ACTIVE section is the visible section registered first, i.e. the
       earliest in document order. It is NOT the most visible one.
    3. When nothing is visible, the previous active section is kept, so the
       highlight never flickers to "none".

The spy never polls. It hands a callback to a visibility observer supplied by
the host environment (a browser, the Viewport layout model in
transformer_guide.viewport, or a test harness) and recomputes whenever that
observer reports changes.

An observer factory is any callable
    factory(callback, options) -> observer
where the observer has observe(region) and disconnect() methods and calls
callback(entries) with a list of VisibilityEntry whenever visibility changes.

Classes:
    ScrollSpyOptions: Boundary, margin and visibility threshold
    SectionRef: Section id paired with its on-page region
    ScrollSpyHandle: Returned by register(); detaches the spy
    ScrollSpy: Tracks the active section

Functions:
    select_active_section: The selection rule as a pure function
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from transformer_guide.viewport import (
    Rect,
    ViewportRegion,
    VisibilityEntry,
    parse_margin,
)

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_THRESHOLD = 0.2


@dataclass(frozen=True)
class ScrollSpyOptions:
    """
    Observation settings.

    Attributes:
        boundary: Scroll container used as the reference frame, in screen
                  coordinates. None means the whole viewport.
        margin: CSS-style adjustment applied to the boundary before testing
                visibility ("0px" = none, "-10% 0px" shrinks top and bottom)
        visibility_threshold: Fraction of a section's area that must be
                              visible, in [0, 1]. Out-of-range values are
                              clamped.
    """

    boundary: Optional[Rect] = None
    margin: str = "0px"
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD

    def __post_init__(self):
        threshold = self.visibility_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real):
            raise ValueError(
                f"visibility_threshold must be a number, got {threshold!r}"
            )
        if threshold != threshold:  # NaN
            raise ValueError("visibility_threshold must not be NaN")

        clamped = min(max(float(threshold), 0.0), 1.0)
        if clamped != threshold:
            logger.warning(
                "visibility_threshold %s outside [0, 1], clamped to %s",
                threshold,
                clamped,
            )
        # Frozen dataclass: bypass __setattr__ to store the clamped value
        object.__setattr__(self, "visibility_threshold", clamped)

        # Fail at setup, not on the first scroll
        parse_margin(self.margin)


@dataclass
class SectionRef:
    """
    A page section as seen by the scroll-spy.

    Attributes:
        id: Stable section identifier (also the URL fragment)
        region: The section's on-page region, or None while it is not
                rendered. Sections without a region are skipped.
    """

    id: str
    region: Optional[ViewportRegion] = None


def select_active_section(
    section_ids: Iterable[str],
    visible_fractions: Mapping[str, float],
    threshold: float,
    previous: Optional[str] = None,
) -> Optional[str]:
    """
    Pick the active section from one visibility snapshot.

    Args:
        section_ids: Section ids in registration (document) order
        visible_fractions: Latest visible fraction per section id. Sections
                           missing from the mapping count as not visible.
        threshold: Minimum visible fraction
        previous: Active section before this snapshot

    Returns:
        The first section id (in registration order) whose fraction is at
        least the threshold, or `previous` when no section qualifies.
        A fraction of exactly 0 never counts as visible, even with a
        threshold of 0.
    """
    for section_id in section_ids:
        fraction = visible_fractions.get(section_id)
        if fraction is None:
            continue
        if fraction > 0 and fraction >= threshold:
            return section_id
    return previous


class ScrollSpyHandle:
    """
    Handle returned by ScrollSpy.register().

    Detaching releases the observer. After detach() no further visibility
    notifications reach the spy; calling detach() again does nothing.

    The handle stays valid across configure(), which only swaps the
    observer. A later register() or detach() invalidates it.
    """

    def __init__(self, spy: "ScrollSpy", registration: int):
        self._spy = spy
        self._registration = registration

    @property
    def attached(self) -> bool:
        return self._spy._holds_registration(self._registration)

    @property
    def active_id(self) -> Optional[str]:
        return self._spy.active_id

    def detach(self) -> None:
        """Stop observing. Idempotent."""
        if self.attached:
            self._spy.detach()

    def __enter__(self) -> "ScrollSpyHandle":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.detach()


class ScrollSpy:
    """
    Tracks which registered section is active.

    Example usage:
        viewport = Viewport(width=800, height=600)
        spy = ScrollSpy(viewport.observer_factory)
        handle = spy.register([
            SectionRef("introduction", intro_region),
            SectionRef("architecture", architecture_region),
        ])

        viewport.scroll_to(1200)
        spy.active_id     # e.g. "architecture"
        spy.fragment      # "#architecture"

        handle.detach()

    Attributes:
        options: Current ScrollSpyOptions
        sections: Registered sections in registration order
        active_id: Currently active section id (None before anything was
                   visible, unless initial_active was given)
    """

    def __init__(
        self,
        observer_factory: Callable,
        options: Optional[ScrollSpyOptions] = None,
        initial_active: Optional[str] = None,
    ):
        """
        Initialize the spy. Nothing is observed until register() is called.

        Args:
            observer_factory: factory(callback, options) -> observer
            options: Observation settings (defaults: whole viewport, no
                     margin, 20% threshold)
            initial_active: Section id to report before the first snapshot
        """
        self._observer_factory = observer_factory
        self.options = options if options is not None else ScrollSpyOptions()
        self.sections: List[SectionRef] = []
        self.active_id: Optional[str] = initial_active

        self._observer = None
        # Bumped whenever the observer is replaced; stale callbacks are dropped
        self._generation = 0
        # Bumped by register() and detach(); handles hold the value they got
        self._registration = 0
        self._attached = False
        self._visible_fractions: Dict[str, float] = {}
        self._listeners: List[Callable[[str], None]] = []

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def fragment(self) -> str:
        """URL fragment for the active section ("#id"), or "" if none."""
        return f"#{self.active_id}" if self.active_id else ""

    def register(self, sections: Iterable[SectionRef]) -> ScrollSpyHandle:
        """
        Register the sections to track, replacing any previous list.

        The current active id survives re-registration; it only changes at
        the next recomputation.

        Args:
            sections: Sections in document order

        Returns:
            Handle that detaches the spy
        """
        self.sections = list(sections)
        known_ids = {section.id for section in self.sections}
        self._visible_fractions = {
            section_id: fraction
            for section_id, fraction in self._visible_fractions.items()
            if section_id in known_ids
        }

        logger.debug("Registered %d sections", len(self.sections))
        self._registration += 1
        self._reconnect()
        return ScrollSpyHandle(self, self._registration)

    def configure(self, options: ScrollSpyOptions) -> Optional[ScrollSpyHandle]:
        """
        Replace the observation settings.

        The old observer is discarded and a new one is created from scratch;
        nothing measured under the old settings is kept.

        Handles returned by register() stay valid.

        Returns:
            A handle for the current registration if the spy was attached,
            else None
        """
        self.options = options
        self._visible_fractions = {}
        if not self._attached:
            return None
        self._reconnect()
        return ScrollSpyHandle(self, self._registration)

    def detach(self) -> None:
        """Release the observer. Idempotent."""
        if not self._attached:
            return

        self._attached = False
        self._generation += 1
        self._registration += 1
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.disconnect()
        logger.debug("Scroll spy detached")

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """
        Call listener(active_id) whenever the active section changes.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def activate(self, section_id: str) -> bool:
        """
        Make a section active directly (e.g. a navigation click).

        Returns:
            True if section_id is registered and is now active
        """
        if section_id not in {section.id for section in self.sections}:
            return False
        self._set_active(section_id)
        return True

    def sync_from_fragment(self, fragment: str) -> bool:
        """Activate the section named by a URL fragment such as "#attention"."""
        section_id = fragment[1:] if fragment.startswith("#") else fragment
        if not section_id:
            return False
        return self.activate(section_id)

    def handle_visibility_change(self, entries: Iterable[VisibilityEntry]) -> None:
        """
        Record a batch of visibility entries and recompute the active id.

        This is the observer callback. Entries for regions that belong to no
        registered section are ignored. Feeding the same snapshot twice yields
        the same active id.
        """
        section_by_region = {
            section.region: section.id
            for section in self.sections
            if section.region is not None
        }
        for entry in entries:
            section_id = section_by_region.get(entry.region)
            if section_id is not None:
                self._visible_fractions[section_id] = entry.visible_fraction

        self._recompute()

    def _recompute(self) -> None:
        active = select_active_section(
            (section.id for section in self.sections if section.region is not None),
            self._visible_fractions,
            self.options.visibility_threshold,
            previous=self.active_id,
        )
        if active is not None:
            self._set_active(active)

    def _set_active(self, section_id: str) -> None:
        if section_id == self.active_id:
            return
        logger.debug("Active section: %s -> %s", self.active_id, section_id)
        self.active_id = section_id
        for listener in list(self._listeners):
            listener(section_id)

    def _reconnect(self) -> None:
        # Tear down the previous observer before building the new one
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None

        self._generation += 1
        generation = self._generation
        self._attached = True

        def callback(entries: List[VisibilityEntry]) -> None:
            if self._is_current(generation):
                self.handle_visibility_change(entries)

        self._observer = self._observer_factory(callback, self.options)
        for section in self.sections:
            if section.region is None:
                continue
            self._observer.observe(section.region)

    def _is_current(self, generation: int) -> bool:
        return self._attached and generation == self._generation

    def _holds_registration(self, registration: int) -> bool:
        return self._attached and registration == self._registration


if __name__ == "__main__":
    from transformer_guide.viewport import Viewport

    print("=" * 70)
    print("SCROLL SPY DEMO - Following the Reader")
    print("=" * 70)

    # Step 1: Lay out three 500px sections on a 400px tall screen
    viewport = Viewport(width=800, height=400, document_height=1500)
    demo_sections = [
        SectionRef(name, ViewportRegion(Rect(i * 500, 0, 800, 500), name=name))
        for i, name in enumerate(["introduction", "architecture", "attention"])
    ]

    # Step 2: Attach the spy
    spy = ScrollSpy(viewport.observer_factory)
    handle = spy.register(demo_sections)
    print(f"\nThreshold: {spy.options.visibility_threshold:.0%}")
    print(f"Initial active section: {spy.active_id}")

    # Step 3: Scroll and watch the active section follow
    print("\n" + "-" * 70)
    for scroll_top in (200, 450, 700, 1100):
        viewport.scroll_to(scroll_top)
        print(f"scroll_top={scroll_top:>5}  active={spy.active_id:<14} fragment={spy.fragment}")

    # Step 4: Detach; later scrolling no longer reaches the spy
    handle.detach()
    viewport.scroll_to(0)
    print("-" * 70)
    print(f"After detach and scrolling back to the top: active={spy.active_id}")
    print("=" * 70)
