from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from restaurant_sim.app.errors import (
    AuthenticationError,
    GatewayError,
    GatewayValidationError,
    NotFoundError,
    RateLimitError,
    TransientGatewayError,
)
from restaurant_sim.app.integrations.base import EntityType, Record, check_entity_type, parent_id

logger = logging.getLogger(__name__)


COLLECTIONS: dict[EntityType, str] = {
    "tax_rate": "tax_rates",
    "category": "categories",
    "modifier_group": "modifier_groups",
    "menu_item": "items",
    "role": "roles",
    "employee": "employees",
    "shift": "shifts",
    "discount": "discounts",
    "table": "tables",
    "reservation": "reservations",
    "customer": "customers",
    "order": "orders",
    "payment": "payments",
    "refund": "refunds",
}

# entity type -> (parent key, parent collection, child segment)
NESTED: dict[EntityType, tuple[str, str, str]] = {
    "modifier": ("modifierGroup", "modifier_groups", "modifiers"),
    "shift": ("employee", "employees", "shifts"),
    "line_item": ("order", "orders", "line_items"),
    "order_discount": ("order", "orders", "discounts"),
    "service_charge": ("order", "orders", "service_charge"),
    "payment": ("order", "orders", "payments"),
    "refund": ("payment", "payments", "refunds"),
}


def _build_httpx_client(base_url: str, api_token: str) -> httpx.Client:
    return httpx.Client(
        base_url=base_url,
        timeout=20.0,
        headers={
            "Authorization": f"Bearer {api_token}",
            "Accept": "application/json",
        },
    )


def _error_for_status(status_code: int, message: str, body: Any) -> GatewayError:
    if status_code == 404:
        return NotFoundError(message, status_code=status_code, body=body)
    if status_code in (400, 422):
        return GatewayValidationError(message, status_code=status_code, body=body)
    if status_code in (401, 403):
        return AuthenticationError(message, status_code=status_code, body=body)
    if status_code == 429:
        return RateLimitError(message, status_code=status_code, body=body)
    if status_code >= 500:
        return TransientGatewayError(message, status_code=status_code, body=body)
    return GatewayError(message, status_code=status_code, body=body)


class CloverClient:
    """Thin HTTP wrapper around the merchant-scoped v3 REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        merchant_id: str,
        api_token: str,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url
        self.merchant_id = merchant_id
        self._client = client or _build_httpx_client(base_url, api_token)

    def merchant_path(self, relative: str) -> str:
        return f"v3/merchants/{self.merchant_id}/{relative.lstrip('/')}"

    def request(
        self,
        method: str,
        relative: str,
        *,
        params: Any = None,
        json: Optional[dict] = None,
    ) -> Any:
        path = self.merchant_path(relative)
        logger.debug("clover request %s %s", method, path)
        try:
            resp = self._client.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            raise TransientGatewayError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            message = f"{method} {path} returned {resp.status_code}"
            logger.warning("clover error: %s body=%s", message, body)
            raise _error_for_status(resp.status_code, message, body)

        if not resp.content:
            return {}
        return resp.json()

    def close(self) -> None:
        self._client.close()


class CloverGateway:
    """RemoteEntityGateway over the Clover REST API."""

    def __init__(self, client: CloverClient):
        self.client = client

    def _collection_path(self, entity_type: EntityType, ref: Optional[dict]) -> str:
        nested = NESTED.get(entity_type)
        if nested:
            key, parent_collection, segment = nested
            pid = parent_id(ref, key)
            if pid:
                return f"{parent_collection}/{pid}/{segment}"
        if entity_type == "modification":
            order_id = parent_id(ref, "order")
            line_item_id = parent_id(ref, "lineItem")
            if not order_id or not line_item_id:
                raise ValueError("modification requires order.id and lineItem.id")
            return f"orders/{order_id}/line_items/{line_item_id}/modifications"
        if entity_type == "tip":
            payment_ref = parent_id(ref, "payment")
            if not payment_ref:
                raise ValueError("tip requires payment.id")
            return f"payments/{payment_ref}"
        collection = COLLECTIONS.get(entity_type)
        if not collection:
            raise ValueError(f"{entity_type} requires a parent reference")
        return collection

    def _item_path(self, entity_type: EntityType, entity_id: str, ref: Optional[dict] = None) -> str:
        if entity_type in NESTED and parent_id(ref, NESTED[entity_type][0]):
            return f"{self._collection_path(entity_type, ref)}/{entity_id}"
        if entity_type == "modification":
            return f"{self._collection_path(entity_type, ref)}/{entity_id}"
        collection = COLLECTIONS.get(entity_type)
        if not collection:
            raise ValueError(f"{entity_type} requires a parent reference")
        return f"{collection}/{entity_id}"

    @staticmethod
    def _filter_params(entity_type: EntityType, filter: Optional[dict]) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        parent_key = NESTED.get(entity_type, ("",))[0]
        for key, value in (filter or {}).items():
            if parent_key and key in (parent_key, f"{parent_key}.id"):
                continue
            params.append(("filter", f"{key}={value}"))
        return params

    def list(
        self,
        entity_type: EntityType,
        *,
        limit: int = 100,
        offset: int = 0,
        filter: Optional[dict] = None,
    ) -> dict:
        check_entity_type(entity_type)
        params = [("limit", str(limit)), ("offset", str(offset))]
        params.extend(self._filter_params(entity_type, filter))
        body = self.client.request("GET", self._collection_path(entity_type, filter), params=params)
        elements = body.get("elements", []) if isinstance(body, dict) else []
        return {"elements": list(elements)}

    def get(self, entity_type: EntityType, entity_id: str) -> Record:
        check_entity_type(entity_type)
        return self.client.request("GET", self._item_path(entity_type, entity_id))

    def create(self, entity_type: EntityType, payload: dict) -> Record:
        check_entity_type(entity_type)
        record = self.client.request("POST", self._collection_path(entity_type, payload), json=payload)
        if not isinstance(record, dict) or not record.get("id"):
            raise GatewayValidationError(f"create {entity_type} returned no id", body=record)
        return record

    def update(self, entity_type: EntityType, entity_id: str, payload: dict) -> Record:
        check_entity_type(entity_type)
        record = self.client.request("POST", self._item_path(entity_type, entity_id, payload), json=payload)
        if isinstance(record, dict) and not record.get("id"):
            record = {**record, "id": entity_id}
        return record

    def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        check_entity_type(entity_type)
        self.client.request("DELETE", self._item_path(entity_type, entity_id))
        return True
