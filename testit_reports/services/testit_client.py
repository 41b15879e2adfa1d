"""
TestIT REST API client for the statistics collection pipeline.

Wraps an httpx.AsyncClient and exposes the handful of TestIT operations the
aggregators consume:

- search_work_items:       POST /workItems/search
- get_project_test_plans:  GET  /projects/{id}/testPlans/analytics
- search_test_points:      POST /testPoints/search?skip=&take=
- get_user_name:           GET  /users/{id}

Every request carries an Authorization header derived from the caller's token
(see normalize_token) and, when configured, a Cookie header. Any non-2xx
response or transport failure is raised as TestItApiError so the aggregators
can contain it at their boundary.

Usage:
    async with TestItClient.from_settings() as client:
        plans = await client.get_project_test_plans(token, project.testit_id)
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

import httpx

from testit_reports.core.config import Settings, get_settings
from testit_reports.models.enums import WorkItemType
from testit_reports.models.schemas import TestItUser, TestPlan, TestPoint, WorkItem


logger = logging.getLogger(__name__)

# Prefixes TestIT accepts as-is in the Authorization header
_AUTH_SCHEMES = ("Bearer", "OpenIdConnect")


class TestItApiError(Exception):
    """Raised when a TestIT request fails or returns a non-2xx status."""
    __test__ = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def normalize_token(token: str) -> str:
    """
    Turn a stored TestIT credential into an Authorization header value.

    Surrounding double quotes (left over from JSON-encoded settings) are
    stripped, and "Bearer " is prepended unless the token already names its
    scheme.

    >>> normalize_token('"abc"')
    'Bearer abc'
    >>> normalize_token('OpenIdConnect abc')
    'OpenIdConnect abc'
    """
    value = token.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]

    if value.startswith(_AUTH_SCHEMES):
        return value
    return f"Bearer {value}"


def placeholder_username(user_id: str) -> str:
    """Username used when TestIT cannot supply a display name."""
    return f"User {str(user_id)[:8]}"


class TestItClient:
    """Async client for the subset of the TestIT API used by the pipeline."""
    __test__ = False

    def __init__(
        self,
        base_url: str,
        *,
        cookies: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.cookies = cookies
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._username_cache: Dict[str, str] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> 'TestItClient':
        settings = settings or get_settings()
        cookies = settings.testit_cookies if settings.testit_use_cookies else None
        return cls(
            settings.testit_api_base_url,
            cookies=cookies,
            timeout=settings.testit_request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> 'TestItClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Transport ---

    def _headers(self, token: str) -> Dict[str, str]:
        headers = {"Authorization": normalize_token(token)}
        if self.cookies:
            headers["Cookie"] = self.cookies
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            resp = await self._client.request(
                method,
                path,
                headers=self._headers(token),
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            raise TestItApiError(f"{method} {path} failed: {e}") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TestItApiError(
                f"{method} {path} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise TestItApiError(
                f"{method} {path} returned invalid JSON",
                status_code=resp.status_code,
            ) from e

    # --- Work Items ---

    async def search_work_items(
        self,
        token: str,
        project_external_ids: Sequence[str],
        types: Sequence[str] = (WorkItemType.TEST_CASES.value,),
        created_range: Optional[Dict[str, str]] = None,
        modified_range: Optional[Dict[str, str]] = None,
    ) -> List[WorkItem]:
        """
        Search work items by project, type and created/modified window.

        created_range and modified_range are {"from": ..., "to": ...} dicts of
        ISO timestamps, as produced by DateRange.to_utc_bounds().
        """
        search_filter: Dict[str, Any] = {
            "projectIds": [str(pid) for pid in project_external_ids],
            "types": [str(getattr(t, 'value', t)) for t in types],
        }
        if created_range is not None:
            search_filter["createdDate"] = created_range
        if modified_range is not None:
            search_filter["modifiedDate"] = modified_range

        data = await self._request("POST", "/workItems/search", token, json={"filter": search_filter})
        items = [WorkItem.model_validate(item) for item in data or []]
        logger.debug(f"Work item search returned {len(items)} items")
        return items

    # --- Test Plans ---

    async def get_project_test_plans(self, token: str, project_external_id: str) -> List[TestPlan]:
        data = await self._request(
            "GET",
            f"/projects/{project_external_id}/testPlans/analytics",
            token,
            params={"mustUpdateCache": "false"},
        )
        return [TestPlan.model_validate(plan) for plan in data or []]

    # --- Test Points ---

    async def search_test_points(
        self,
        token: str,
        test_plan_ids: Sequence[str],
        skip: int = 0,
        take: int = 1000,
        work_item_is_deleted: bool = False,
    ) -> List[TestPoint]:
        body = {
            "testPlanIds": [str(pid) for pid in test_plan_ids],
            "workItemIsDeleted": work_item_is_deleted,
        }
        data = await self._request(
            "POST",
            "/testPoints/search",
            token,
            params={"skip": skip, "take": take},
            json=body,
        )
        return [TestPoint.model_validate(point) for point in data or []]

    async def search_all_test_points(
        self,
        token: str,
        test_plan_ids: Sequence[str],
        page_size: int = 1000,
        max_pages: int = 1000,
    ) -> List[TestPoint]:
        """
        Page through search_test_points until a short page is returned.

        Paging also stops, with a warning, after max_pages pages or when a
        page repeats point ids already seen (a server that ignores skip).
        Repeated points are dropped, so each point id appears once.
        """
        points: List[TestPoint] = []
        seen_ids: Set[str] = set()
        skip = 0

        for _ in range(max_pages):
            page = await self.search_test_points(token, test_plan_ids, skip=skip, take=page_size)

            fresh = [point for point in page if point.id not in seen_ids]
            seen_ids.update(point.id for point in fresh)
            points.extend(fresh)

            if len(page) < page_size:
                return points
            if len(fresh) < len(page):
                logger.warning(
                    f"Test point page at skip={skip} for plans {list(test_plan_ids)} "
                    f"repeated {len(page) - len(fresh)} point(s); stopping pagination"
                )
                return points
            skip += page_size

        logger.warning(
            f"Stopped paging test points for plans {list(test_plan_ids)} "
            f"after {max_pages} pages ({len(points)} points)"
        )
        return points

    # --- Users ---

    async def get_user_name(self, token: str, user_id: str) -> str:
        """
        Fetch a user's display name.

        Raises:
            TestItApiError: If the request fails or the user has no usable name.
        """
        data = await self._request("GET", f"/users/{user_id}", token)
        if not isinstance(data, dict):
            raise TestItApiError(f"Unexpected user payload for {user_id}")
        user = TestItUser.model_validate(data)
        name = user.best_name
        if not name:
            raise TestItApiError(f"User {user_id} has no display name")
        return name

    async def resolve_username(self, token: str, user_id: str) -> str:
        """
        Best-effort username lookup.

        Falls back to placeholder_username() on any API failure. Results,
        including fallbacks, are cached for the lifetime of the client.
        """
        key = str(user_id)
        if key in self._username_cache:
            return self._username_cache[key]

        try:
            name = await self.get_user_name(token, key)
        except TestItApiError as e:
            logger.warning(f"Could not resolve TestIT user {key}: {e.message}")
            name = placeholder_username(key)

        self._username_cache[key] = name
        return name
