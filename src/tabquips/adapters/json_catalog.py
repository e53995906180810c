"""JSON catalog adapter.

Implements the core CatalogSource port by reading a JSON document from disk.
"""

from __future__ import annotations

import asyncio
from importlib import resources
import json
import os
from pathlib import Path
from typing import Any, Dict, Union

from tabquips.core.errors import CatalogLoadError


def bundled_catalog_path() -> Path:
    """Path of the catalog shipped inside the package."""

    return Path(str(resources.files("tabquips") / "data" / "catalog.json"))


class JsonCatalogSource:
    """Thin JSON file reader that satisfies the CatalogSource contract."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            raise CatalogLoadError(f"Catalog file not found: {self._path}")
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as exc:
            raise CatalogLoadError(f"Catalog is not valid JSON: {self._path}", [str(exc)]) from exc
        except OSError as exc:
            raise CatalogLoadError(f"Catalog could not be read: {self._path}", [str(exc)]) from exc

    async def load(self) -> Dict[str, Any]:
        # File I/O runs off the event loop so hosts stay responsive during startup.
        return await asyncio.to_thread(self._read)
