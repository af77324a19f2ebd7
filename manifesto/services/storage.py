"""Object storage client for uploaded design files"""

from typing import Any, Dict, List, Optional
import logging
import re

import httpx

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Storage service call failed"""


class StorageClient:
    """Removes objects from a storage bucket over the Supabase Storage REST API"""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str = "design-files",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bucket = bucket
        self._public_path = re.compile(rf"/storage/v1/object/public/{re.escape(bucket)}/(.+)")
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/storage/v1",
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
            timeout=timeout,
            transport=transport,
        )

    def object_path(self, url: str) -> Optional[str]:
        """Object name inside the bucket for a public URL, or None for foreign URLs"""
        match = self._public_path.search(url or "")
        if not match:
            return None
        return match.group(1).split("?", 1)[0]

    async def remove(self, paths: List[str]) -> List[Dict[str, Any]]:
        """Delete objects by name and return the entries the service removed"""
        if not paths:
            return []
        try:
            response = await self._client.request(
                "DELETE",
                f"/object/{self.bucket}",
                json={"prefixes": paths},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Storage service unavailable: {e}") from e

        if response.status_code >= 400:
            raise StorageError(f"Storage removal failed: {response.status_code} {response.text}")

        removed = response.json() if response.content else []
        logger.info(f"Removed {len(removed)} object(s) from {self.bucket}")
        return removed

    async def aclose(self) -> None:
        await self._client.aclose()
