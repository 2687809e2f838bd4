"""
REST passthroughs for the ``/items`` endpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote

from .auth import AuthHeaderResolver
from .transport.base import Transport

logger = logging.getLogger(__name__)

ItemId = Union[str, int]


class ItemsClient:
    """Create, update and delete items through a transport."""

    def __init__(
        self,
        transport: Transport,
        resolver: AuthHeaderResolver,
        items_path: str = "/items",
    ) -> None:
        self.transport = transport
        self.resolver = resolver
        self.items_path = items_path.rstrip("/")

    def _path(self, table: str, item_id: Optional[ItemId] = None) -> str:
        if not table:
            raise ValueError("Table name is required")
        path = f"{self.items_path}/{quote(str(table), safe='')}"
        if item_id is not None:
            path = f"{path}/{quote(str(item_id), safe='')}"
        return path

    async def create(
        self,
        table: str,
        payload: Any,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """``POST /items/<table>``."""
        logger.debug("Creating item in %s", table)
        return await self.transport.request(
            "POST", self._path(table), payload, self.resolver(existing_headers)
        )

    async def update(
        self,
        table: str,
        item_id: ItemId,
        payload: Any,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """``PATCH /items/<table>/<id>``."""
        logger.debug("Updating item %s in %s", item_id, table)
        return await self.transport.request(
            "PATCH", self._path(table, item_id), payload, self.resolver(existing_headers)
        )

    async def delete(
        self,
        table: str,
        item_id: ItemId,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """``DELETE /items/<table>/<id>``."""
        logger.debug("Deleting item %s from %s", item_id, table)
        return await self.transport.request(
            "DELETE", self._path(table, item_id), None, self.resolver(existing_headers)
        )
