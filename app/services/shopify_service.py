"""Shopify service layer - handles Shopify Admin GraphQL operations."""
import json
import logging
from typing import Dict, List, Optional

import requests

from app.config import Settings, settings as default_settings
from app.errors import ErrorKind, RoastersChoiceError, vendor_error
from app.schemas import Candidate
from app.services.token_cache import TokenCache

LOG = logging.getLogger(__name__)

PICK_NAMESPACE = "custom"
PICK_KEY = "roasters_choice_pick"
LAST_PICK_NAMESPACE = "roasters_choice"
LAST_PICK_KEY = "last_pick_map"

SIZE_OPTION = "Size"
CATALOG_GRIND_OPTION = "Whole Bean or Ground"


METAFIELDS_SET_MUTATION = """
mutation($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    userErrors { field message }
  }
}
"""

ORDER_QUERY = """
query($id: ID!) {
  order(id: $id) {
    id
    name
    customer { id email }
    lineItems(first: 50) {
      nodes {
        id
        title
        quantity
        variant {
          id
          title
          selectedOptions { name value }
          product { id title handle }
        }
      }
    }
  }
}
"""

CUSTOMER_LAST_PICK_QUERY = """
query($id: ID!) {
  customer(id: $id) {
    id
    metafield(namespace: "roasters_choice", key: "last_pick_map") { value }
  }
}
"""

ORDER_PICK_QUERY = """
query($id: ID!) {
  order(id: $id) {
    metafield(namespace: "custom", key: "roasters_choice_pick") {
      value
    }
  }
}
"""

ORDER_NOTE_QUERY = """
query($id: ID!) {
  order(id: $id) {
    id
    note
  }
}
"""

ORDER_UPDATE_MUTATION = """
mutation($input: OrderInput!) {
  orderUpdate(input: $input) {
    order { id note }
    userErrors { field message }
  }
}
"""

TAGS_ADD_MUTATION = """
mutation($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    userErrors { field message }
  }
}
"""

COLLECTION_PRODUCTS_QUERY = """
query($handle: String!, $cursor: String) {
  collectionByHandle(handle: $handle) {
    id
    title
    products(first: 100, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      nodes {
        id
        title
        handle
        status
        tags
        variants(first: 100) {
          nodes {
            id
            title
            availableForSale
            selectedOptions { name value }
          }
        }
      }
    }
  }
}
"""


def option_value(selected_options: Optional[List[dict]], name: str) -> Optional[str]:
    """Return the value of the named option, or None."""
    for opt in selected_options or []:
        if opt.get("name") == name:
            return opt.get("value")
    return None


def _raise_for_user_errors(label: str, errors: Optional[List[dict]]) -> None:
    if errors:
        raise vendor_error(f"{label} errors: {json.dumps(errors)}", user_errors=errors)


class ShopifyService:
    """Service for interacting with the Shopify Admin GraphQL API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        token_cache: Optional[TokenCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or default_settings
        self.token_cache = token_cache or TokenCache(
            margin_seconds=self.settings.token_refresh_margin_seconds
        )
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _require_credentials(self):
        shop = self.settings.shop_domain()
        client_id = self.settings.shopify_client_id
        client_secret = self.settings.shopify_client_secret
        if not shop or not client_id or not client_secret:
            raise RoastersChoiceError(
                ErrorKind.CONFIG,
                "Missing SHOPIFY_SHOP / SHOPIFY_CLIENT_ID / SHOPIFY_CLIENT_SECRET env vars",
            )
        return shop, client_id, client_secret

    def _fetch_admin_token(self):
        shop, client_id, client_secret = self._require_credentials()
        response = self.session.post(
            f"https://{shop}/admin/oauth/access_token",
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.settings.shopify_http_timeout,
        )
        if not response.ok:
            raise vendor_error(
                f"Token request failed: {response.status_code} {response.text}",
                status=response.status_code,
            )
        token_response = response.json()
        LOG.info("Fetched new Shopify admin token for %s", shop)
        return token_response["access_token"], token_response.get("expires_in", 0)

    def get_admin_token(self) -> str:
        """Return a cached admin token, exchanging client credentials when stale."""
        self._require_credentials()
        return self.token_cache.get_or_refresh(self._fetch_admin_token)

    def graphql(self, query: str, variables: dict = None) -> dict:
        """Make an authenticated GraphQL request and return its ``data``."""
        shop = self.settings.shop_domain()
        graphql_url = f"https://{shop}/admin/api/{self.settings.shopify_api_version}/graphql.json"
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.get_admin_token(),
        }
        response = self.session.post(
            graphql_url,
            json={"query": query, "variables": variables or {}},
            headers=headers,
            timeout=self.settings.shopify_http_timeout,
        )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            body = {"body": response.text}
            raise vendor_error(
                f"GraphQL error: {response.status_code} {json.dumps(body)}",
                status=response.status_code,
                errors=body,
            )

        errors = payload.get("errors")
        if not response.ok or errors:
            shown = errors or payload
            raise vendor_error(
                f"GraphQL error: {response.status_code} {json.dumps(shown)}",
                status=response.status_code,
                errors=shown,
            )
        return payload.get("data") or {}

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> dict:
        """Fetch an order with its customer and line item options."""
        data = self.graphql(ORDER_QUERY, {"id": order_id})
        order = data.get("order")
        if not order:
            raise vendor_error("Order not found", order_id=order_id)
        return order

    def set_order_pick(self, order_id: str, pick_text: str) -> None:
        data = self.graphql(METAFIELDS_SET_MUTATION, {
            "metafields": [{
                "ownerId": order_id,
                "namespace": PICK_NAMESPACE,
                "key": PICK_KEY,
                "type": "single_line_text_field",
                "value": pick_text,
            }]
        })
        _raise_for_user_errors("Order metafieldsSet", (data.get("metafieldsSet") or {}).get("userErrors"))

    def get_order_pick_text(self, order_id: str) -> Optional[str]:
        """Return the stored pick text, or None if nothing has been saved."""
        data = self.graphql(ORDER_PICK_QUERY, {"id": order_id})
        metafield = (data.get("order") or {}).get("metafield") or {}
        return metafield.get("value") or None

    def add_order_tags(self, order_id: str, tags: List[str]) -> None:
        data = self.graphql(TAGS_ADD_MUTATION, {"id": order_id, "tags": list(tags)})
        _raise_for_user_errors("tagsAdd", (data.get("tagsAdd") or {}).get("userErrors"))

    def append_order_note(self, order_id: str, note_text: str) -> None:
        """
        Append text to the order note.

        Reads the current note and writes it back with the text added, so a
        concurrent writer between the two calls loses its update.
        """
        existing = self.graphql(ORDER_NOTE_QUERY, {"id": order_id})
        current_note = (existing.get("order") or {}).get("note") or ""
        updated_note = f"{current_note}\n\n{note_text}" if current_note else note_text

        result = self.graphql(ORDER_UPDATE_MUTATION, {
            "input": {"id": order_id, "note": updated_note}
        })
        _raise_for_user_errors("orderUpdate", (result.get("orderUpdate") or {}).get("userErrors"))

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def get_customer_last_pick_map(self, customer_id: str) -> Dict[str, str]:
        """Return the customer's ``"size|grind" -> product id`` map."""
        data = self.graphql(CUSTOMER_LAST_PICK_QUERY, {"id": customer_id})
        raw = ((data.get("customer") or {}).get("metafield") or {}).get("value")
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except ValueError:
            LOG.warning("Ignoring unparseable last_pick_map on %s", customer_id)
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def set_customer_last_pick_map(self, customer_id: str, mapping: Dict[str, str]) -> None:
        data = self.graphql(METAFIELDS_SET_MUTATION, {
            "metafields": [{
                "ownerId": customer_id,
                "namespace": LAST_PICK_NAMESPACE,
                "key": LAST_PICK_KEY,
                "type": "single_line_text_field",
                "value": json.dumps(mapping),
            }]
        })
        _raise_for_user_errors("Customer metafieldsSet", (data.get("metafieldsSet") or {}).get("userErrors"))

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_eligible_from_collection(self, collection_handle: str, size: str, grind: str) -> List[Candidate]:
        """
        Return active, non-excluded products in a collection that have an
        available variant matching ``size`` and ``grind``.

        Catalog variants carry the grind under "Whole Bean or Ground"
        regardless of which option name the order used.
        """
        exclude_tag = self.settings.exclude_tag
        candidates: List[Candidate] = []
        cursor = None

        while True:
            data = self.graphql(COLLECTION_PRODUCTS_QUERY, {"handle": collection_handle, "cursor": cursor})
            collection = data.get("collectionByHandle")
            if not collection:
                raise vendor_error(f"Collection not found: {collection_handle}", handle=collection_handle)

            page = collection["products"]
            for product in page.get("nodes", []):
                if product.get("status") != "ACTIVE":
                    continue
                if exclude_tag in (product.get("tags") or []):
                    continue

                variant = next(
                    (
                        v for v in (product.get("variants") or {}).get("nodes", [])
                        if v.get("availableForSale")
                        and option_value(v.get("selectedOptions"), SIZE_OPTION) == size
                        and option_value(v.get("selectedOptions"), CATALOG_GRIND_OPTION) == grind
                    ),
                    None,
                )
                if variant:
                    candidates.append(Candidate(
                        product_id=product["id"],
                        product_title=product["title"],
                        product_handle=product["handle"],
                        variant_id=variant.get("id"),
                    ))

            page_info = page.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

        return candidates


# Singleton instance
shopify_service = ShopifyService()
