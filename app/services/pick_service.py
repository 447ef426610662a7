"""Roaster's Choice pick engine and request orchestration."""
import logging
import random
import re
from typing import List, Optional, Tuple

from app.config import Settings, settings as default_settings
from app.errors import conflict
from app.schemas import Candidate, NoteResponse, PickResponse, PickSummary, SizeGrind
from app.services.shopify_service import ShopifyService, option_value

LOG = logging.getLogger(__name__)

SIZE_OPTION = "Size"
# Order-side grind option names, in lookup order
GRIND_OPTIONS = ("Grind Size", "Whole Bean or Ground")

PICKED_TAG = "RC_PICKED"
NOTE_SET_TAG = "RC_NOTE_SET"
TAG_PREFIX = "RC_"
TAG_MAX_LENGTH = 50

_UNSAFE_TAG_CHARS = re.compile(r"[^a-z0-9\-_]+")


def find_size_and_grind(line_items: Optional[List[dict]]) -> Tuple[Optional[SizeGrind], Optional[dict]]:
    """Return the first line item's (size, grind) selection, or ``(None, None)``."""
    for line_item in line_items or []:
        options = ((line_item or {}).get("variant") or {}).get("selectedOptions") or []
        size = option_value(options, SIZE_OPTION)
        grind = None
        for name in GRIND_OPTIONS:
            grind = option_value(options, name)
            if grind:
                break
        if size and grind:
            return SizeGrind(size=size, grind=grind), line_item
    return None, None


def exclude_last_pick(candidates: List[Candidate], last_product_id: Optional[str]) -> List[Candidate]:
    """Drop the previous pick when at least one other candidate remains."""
    if not last_product_id or len(candidates) <= 1:
        return candidates
    filtered = [c for c in candidates if c.product_id != last_product_id]
    return filtered or candidates


def choose(candidates: List[Candidate], rng=random) -> Candidate:
    return rng.choice(candidates)


def make_safe_tag(value: Optional[str]) -> str:
    """Build an ``RC_`` tag of at most 50 characters from free text."""
    slug = _UNSAFE_TAG_CHARS.sub("-", str(value or "").lower()).strip("-")
    return TAG_PREFIX + slug[:TAG_MAX_LENGTH - len(TAG_PREFIX)].strip("-")


def format_pick_text(pick: Candidate, selection: SizeGrind) -> str:
    return f"{pick.product_title} — {selection.size} / {selection.grind}"


class RoastersChoiceService:
    """Runs the pick and note flows against a Shopify client."""

    def __init__(self, shopify: ShopifyService, settings: Optional[Settings] = None, rng=random):
        self.shopify = shopify
        self.settings = settings or default_settings
        self.rng = rng

    def run_note_mode(self, order_id: str) -> dict:
        """
        Re-append the saved pick to the order note.

        Called by a delayed Flow after the subscription app has rewritten the
        note. RC_NOTE_SET is added afterwards but not consulted here, so each
        call appends the text again.
        """
        pick_text = self.shopify.get_order_pick_text(order_id)
        if not pick_text:
            LOG.info("Note mode for %s: no pick saved yet", order_id)
            return NoteResponse(message="No pick saved yet").model_dump(exclude_none=True)

        self.shopify.append_order_note(order_id, pick_text)
        self.shopify.add_order_tags(order_id, [NOTE_SET_TAG])
        LOG.info("Note mode for %s: note re-applied", order_id)
        return NoteResponse().model_dump(exclude_none=True)

    def select_pick(self, selection: SizeGrind, last_product_id: Optional[str]) -> Candidate:
        candidates = self.shopify.get_eligible_from_collection(
            self.settings.collection_handle, selection.size, selection.grind
        )
        if not candidates:
            raise conflict("No eligible coffees found", size=selection.size, grind=selection.grind)
        return choose(exclude_last_pick(candidates, last_product_id), self.rng)

    def run_pick_mode(self, order_id: str) -> dict:
        order = self.shopify.get_order(order_id)
        customer_id = (order.get("customer") or {}).get("id")
        if not customer_id:
            raise conflict("Order has no customer; cannot enforce repeat protection")

        line_items = (order.get("lineItems") or {}).get("nodes") or []
        selection, _ = find_size_and_grind(line_items)
        if selection is None:
            raise conflict(
                "Could not determine Size and Grind Size from order line items",
                order_name=order.get("name"),
            )

        last_map = self.shopify.get_customer_last_pick_map(customer_id)
        pick = self.select_pick(selection, last_map.get(selection.key))

        pick_text = format_pick_text(pick, selection)
        self.shopify.set_order_pick(order_id, pick_text)
        self.shopify.add_order_tags(order_id, [PICKED_TAG, make_safe_tag(pick.product_handle)])
        self.shopify.append_order_note(order_id, pick_text)

        last_map[selection.key] = pick.product_id
        self.shopify.set_customer_last_pick_map(customer_id, last_map)

        LOG.info("Picked %s for %s (%s)", pick.product_handle, order.get("name"), selection.key)
        return PickResponse(
            order=order.get("name") or "",
            pick=PickSummary(
                product_title=pick.product_title,
                product_handle=pick.product_handle,
                size=selection.size,
                grind=selection.grind,
            ),
        ).model_dump()

    def handle(self, order_id: str, mode: Optional[str] = None) -> dict:
        if mode == "note":
            return self.run_note_mode(order_id)
        return self.run_pick_mode(order_id)
