"""Supabase Storage bucket management over the Storage REST API.

The S3-compatible endpoint can create buckets but cannot set the Supabase
bucket options (public access, allowed MIME types, file size limit), so bucket
lookup and creation go through `{SUPABASE_URL}/storage/v1/bucket` with the
service role key. Object I/O stays on the S3 endpoint.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

logger = logging.getLogger(__name__)


class BucketApiError(Exception):
    """Non-success response from the bucket API.

    Supabase reports some errors as HTTP 400 with the real code in the body's
    `statusCode`, so both are kept.
    """

    def __init__(self, message: str, status_code: int, error_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404 or self.error_code == "404"

    @property
    def already_exists(self) -> bool:
        return self.status_code == 409 or self.error_code == "409"


class SupabaseBucketApi:
    """Thin async client for the bucket endpoints.

    Args:
        supabase_url: Project URL
        service_key: Service role key (bucket management needs it)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self.service_key = service_key
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.service_key:
            return {}
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.request(method, path, json=json)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_success:
            return body

        message = body.get("message") or body.get("error") or response.reason_phrase
        raise BucketApiError(
            f"{method} {path} failed ({response.status_code}): {message}",
            status_code=response.status_code,
            error_code=str(body["statusCode"]) if body.get("statusCode") is not None else None,
        )

    async def get_bucket(self, name: str) -> Optional[Dict[str, Any]]:
        """Bucket settings, or None when the bucket does not exist.

        Raises:
            BucketApiError: Any other non-success response
            httpx.HTTPError: Transport failure
        """
        try:
            return await self._request("GET", f"/bucket/{name}")
        except BucketApiError as e:
            if e.not_found:
                return None
            raise

    async def create_bucket(
        self,
        name: str,
        public: bool,
        allowed_mime_types: Optional[Iterable[str]] = None,
        file_size_limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a bucket with the given access and upload restrictions.

        Raises:
            BucketApiError: Non-success response (check `already_exists`)
            httpx.HTTPError: Transport failure
        """
        payload: Dict[str, Any] = {"id": name, "name": name, "public": public}
        if allowed_mime_types is not None:
            payload["allowed_mime_types"] = list(allowed_mime_types)
        if file_size_limit is not None:
            payload["file_size_limit"] = file_size_limit

        logger.info(f"Creating bucket via Storage API: name={name}, public={public}")
        return await self._request("POST", "/bucket", json=payload)
