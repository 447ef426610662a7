from __future__ import annotations

import os

# Settings are read at import time.
os.environ["RC_SHARED_SECRET"] = "test-shared-secret"
os.environ["SHOPIFY_SHOP"] = "test-roastery"
os.environ["SHOPIFY_CLIENT_ID"] = "client_1"
os.environ["SHOPIFY_CLIENT_SECRET"] = "secret_1"

import random
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

import app.main as main_module
from app.routers.roasters_choice import get_roasters_choice_service
from app.schemas import Candidate
from app.services.pick_service import RoastersChoiceService

ORDER_ID = "gid://shopify/Order/1"
CUSTOMER_ID = "gid://shopify/Customer/9"


def make_line_item(options: dict[str, str], title: str = "Roaster's Choice Subscription") -> dict:
    return {
        "id": "gid://shopify/LineItem/1",
        "title": title,
        "quantity": 1,
        "variant": {
            "id": "gid://shopify/ProductVariant/100",
            "title": " / ".join(options.values()),
            "selectedOptions": [{"name": k, "value": v} for k, v in options.items()],
            "product": {"id": "gid://shopify/Product/100", "title": title, "handle": "roasters-choice"},
        },
    }


def make_order(
    order_id: str = ORDER_ID,
    name: str = "#1001",
    customer_id: str | None = CUSTOMER_ID,
    line_items: list[dict] | None = None,
) -> dict:
    return {
        "id": order_id,
        "name": name,
        "customer": {"id": customer_id, "email": "sam@example.com"} if customer_id else None,
        "lineItems": {"nodes": line_items if line_items is not None else []},
    }


def make_candidate(product_id: str, title: str, handle: str) -> Candidate:
    return Candidate(
        product_id=product_id,
        product_title=title,
        product_handle=handle,
        variant_id=f"{product_id}/variant",
    )


class FakeShopify:
    """In-memory stand-in for ShopifyService that records every call."""

    def __init__(self):
        self.orders: dict[str, dict] = {}
        self.notes: dict[str, str] = {}
        self.tags: dict[str, list[str]] = defaultdict(list)
        self.order_picks: dict[str, str] = {}
        self.customer_maps: dict[str, dict] = {}
        self.catalog: dict[tuple[str, str], list[Candidate]] = {}
        self.calls: list[tuple] = []

    @property
    def mutations(self) -> list[tuple]:
        writes = {"set_order_pick", "add_order_tags", "append_order_note", "set_customer_last_pick_map"}
        return [c for c in self.calls if c[0] in writes]

    def get_order(self, order_id):
        self.calls.append(("get_order", order_id))
        return self.orders[order_id]

    def get_order_pick_text(self, order_id):
        self.calls.append(("get_order_pick_text", order_id))
        return self.order_picks.get(order_id)

    def set_order_pick(self, order_id, pick_text):
        self.calls.append(("set_order_pick", order_id, pick_text))
        self.order_picks[order_id] = pick_text

    def add_order_tags(self, order_id, tags):
        self.calls.append(("add_order_tags", order_id, list(tags)))
        for tag in tags:
            if tag not in self.tags[order_id]:
                self.tags[order_id].append(tag)

    def append_order_note(self, order_id, note_text):
        self.calls.append(("append_order_note", order_id, note_text))
        current = self.notes.get(order_id) or ""
        self.notes[order_id] = f"{current}\n\n{note_text}" if current else note_text

    def get_customer_last_pick_map(self, customer_id):
        self.calls.append(("get_customer_last_pick_map", customer_id))
        return dict(self.customer_maps.get(customer_id, {}))

    def set_customer_last_pick_map(self, customer_id, mapping):
        self.calls.append(("set_customer_last_pick_map", customer_id, dict(mapping)))
        self.customer_maps[customer_id] = dict(mapping)

    def get_eligible_from_collection(self, collection_handle, size, grind):
        self.calls.append(("get_eligible_from_collection", collection_handle, size, grind))
        return list(self.catalog.get((size, grind), []))


@pytest.fixture()
def fake_shopify():
    return FakeShopify()


@pytest.fixture()
def rc_service(fake_shopify):
    return RoastersChoiceService(shopify=fake_shopify, rng=random.Random(1234))


@pytest.fixture()
def api_client(rc_service):
    main_module.app.dependency_overrides[get_roasters_choice_service] = lambda: rc_service
    try:
        with TestClient(main_module.app) as client:
            yield client
    finally:
        main_module.app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    return {"x-rc-token": "test-shared-secret"}
