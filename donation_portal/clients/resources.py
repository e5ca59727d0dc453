"""
Typed facades over the portal REST API.

Each facade maps its methods one-to-one onto backend routes and returns the
parsed ``ApiResponse`` envelope. All facades share one
AuthenticatedHttpClient, so every call benefits from session refresh.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from ..models import (
    ActivityLog,
    AdminUser,
    ApiResponse,
    Committee,
    CommitteeCreate,
    ContactForm,
    Contribution,
    ContributionCreate,
    ContributionStatistics,
    ContributionStats,
    ContributionStatus,
    DashboardStats,
    GalleryImage,
    GalleryImageCreate,
    LandDonor,
    LandDonorCreate,
    LoginResult,
    MemberCreate,
    PaginationParams,
    PublicStatistics,
    SiteSettings,
    TokenPair,
    UploadFolder,
    UploadResult,
    UserCreate,
)
from ..utils.logging import get_logger
from .exceptions import ResponseFormatError
from .http_client import AuthenticatedHttpClient

logger = get_logger(__name__)


def _encode_value(value: Any) -> Any:
    """Encode one query/body value the way the API expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.value
    return value


def build_query(
    params: Optional[PaginationParams] = None, **filters: Any
) -> Optional[Dict[str, Any]]:
    """Merge pagination params and filters into a query dict, dropping unset values."""
    query: Dict[str, Any] = params.to_query() if params else {}
    for key, value in filters.items():
        if value is not None:
            query[to_camel(key)] = _encode_value(value)
    return query or None


def camelize(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a snake_case change set into a camelCase request body."""
    body: Dict[str, Any] = {}
    for key, value in changes.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, exclude_none=True, mode="json")
        elif isinstance(value, Enum):
            value = value.value
        body[to_camel(key)] = value
    return body


def resource_path(*parts: Any) -> str:
    """Join path segments, quoting document ids."""
    return "/" + "/".join(quote(str(part), safe="") for part in parts)


def parse_envelope(response: httpx.Response, data_type: Any = Any) -> ApiResponse:
    """
    Parse a response body into ApiResponse[data_type].

    Raises:
        ResponseFormatError: Body is not JSON or not a valid envelope
    """
    path = response.request.url.path
    try:
        body = response.json()
    except ValueError as e:
        raise ResponseFormatError(
            "Response body is not JSON", status=response.status_code, path=path
        ) from e

    try:
        return ApiResponse[data_type].model_validate(body)
    except ValidationError as e:
        logger.warning(
            "Response envelope failed validation",
            path=path,
            error_count=e.error_count(),
        )
        raise ResponseFormatError(
            f"Unexpected response envelope: {e.error_count()} validation errors",
            status=response.status_code,
            path=path,
        ) from e


class ResourceApi:
    """Base class for resource facades."""

    def __init__(self, http: AuthenticatedHttpClient):
        self.http = http

    async def _call(
        self, method: str, path: str, data_type: Any = Any, **kwargs
    ) -> ApiResponse:
        response = await self.http.request(method, path, **kwargs)
        return parse_envelope(response, data_type)


class AuthApi(ResourceApi):
    async def login(self, email: str, password: str) -> ApiResponse[LoginResult]:
        return await self._call(
            "POST",
            "/auth/login",
            LoginResult,
            json={"email": email, "password": password},
        )

    async def logout(self) -> ApiResponse:
        return await self._call("POST", "/auth/logout")

    async def refresh(self) -> ApiResponse[TokenPair]:
        return await self._call("POST", self.http.settings.refresh_path, TokenPair)

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str
    ) -> ApiResponse:
        return await self._call(
            "POST",
            "/auth/change-password",
            json=camelize(
                {
                    "current_password": current_password,
                    "new_password": new_password,
                    "confirm_password": confirm_password,
                }
            ),
        )

    async def get_profile(self) -> ApiResponse[AdminUser]:
        return await self._call("GET", "/auth/me", AdminUser)


class UsersApi(ResourceApi):
    async def get_all(
        self, params: Optional[PaginationParams] = None
    ) -> ApiResponse[List[AdminUser]]:
        return await self._call(
            "GET", "/users", List[AdminUser], params=build_query(params)
        )

    async def get_by_id(self, user_id: str) -> ApiResponse[AdminUser]:
        return await self._call("GET", resource_path("users", user_id), AdminUser)

    async def create(self, user: UserCreate) -> ApiResponse[AdminUser]:
        return await self._call("POST", "/users", AdminUser, json=user.to_payload())

    async def update(
        self, user_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[AdminUser]:
        return await self._call(
            "PUT", resource_path("users", user_id), AdminUser, json=camelize(changes)
        )

    async def delete(self, user_id: str) -> ApiResponse:
        return await self._call("DELETE", resource_path("users", user_id))


class CommitteesApi(ResourceApi):
    async def get_all(
        self, params: Optional[PaginationParams] = None, type: Optional[str] = None
    ) -> ApiResponse[List[Committee]]:
        return await self._call(
            "GET", "/committees", List[Committee], params=build_query(params, type=type)
        )

    async def get_by_id(self, committee_id: str) -> ApiResponse[Committee]:
        return await self._call(
            "GET", resource_path("committees", committee_id), Committee
        )

    async def create(self, committee: CommitteeCreate) -> ApiResponse[Committee]:
        return await self._call(
            "POST", "/committees", Committee, json=committee.to_payload()
        )

    async def update(
        self, committee_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[Committee]:
        return await self._call(
            "PUT",
            resource_path("committees", committee_id),
            Committee,
            json=camelize(changes),
        )

    async def delete(self, committee_id: str) -> ApiResponse:
        return await self._call("DELETE", resource_path("committees", committee_id))

    async def add_member(
        self, committee_id: str, member: MemberCreate
    ) -> ApiResponse[Committee]:
        return await self._call(
            "POST",
            resource_path("committees", committee_id, "members"),
            Committee,
            json=member.to_payload(),
        )

    async def update_member(
        self, committee_id: str, member_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[Committee]:
        return await self._call(
            "PUT",
            resource_path("committees", committee_id, "members", member_id),
            Committee,
            json=camelize(changes),
        )

    async def delete_member(
        self, committee_id: str, member_id: str
    ) -> ApiResponse[Committee]:
        return await self._call(
            "DELETE",
            resource_path("committees", committee_id, "members", member_id),
            Committee,
        )

    remove_member = delete_member


class ContributionsApi(ResourceApi):
    async def get_all(
        self,
        params: Optional[PaginationParams] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        anonymous: Optional[bool] = None,
    ) -> ApiResponse[List[Contribution]]:
        return await self._call(
            "GET",
            "/contributions",
            List[Contribution],
            params=build_query(params, type=type, status=status, anonymous=anonymous),
        )

    async def get_by_id(self, contribution_id: str) -> ApiResponse[Contribution]:
        return await self._call(
            "GET", resource_path("contributions", contribution_id), Contribution
        )

    async def create(
        self, contribution: ContributionCreate
    ) -> ApiResponse[Contribution]:
        return await self._call(
            "POST", "/contributions", Contribution, json=contribution.to_payload()
        )

    async def update(
        self, contribution_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[Contribution]:
        return await self._call(
            "PUT",
            resource_path("contributions", contribution_id),
            Contribution,
            json=camelize(changes),
        )

    async def update_status(
        self,
        contribution_id: str,
        status: ContributionStatus,
        notes: Optional[str] = None,
    ) -> ApiResponse[Contribution]:
        body = {"status": ContributionStatus(status).value}
        if notes is not None:
            body["notes"] = notes
        return await self._call(
            "PATCH",
            resource_path("contributions", contribution_id, "status"),
            Contribution,
            json=body,
        )

    async def delete(self, contribution_id: str) -> ApiResponse:
        return await self._call(
            "DELETE", resource_path("contributions", contribution_id)
        )

    async def get_statistics(self) -> ApiResponse[ContributionStatistics]:
        return await self._call(
            "GET", "/contributions/statistics", ContributionStatistics
        )

    def receipt_url(self, contribution_id: str) -> str:
        """Absolute URL of the printable receipt page."""
        return self.http.base_url + resource_path(
            "contributions", contribution_id, "receipt"
        )


class LandDonorsApi(ResourceApi):
    async def get_all(
        self, params: Optional[PaginationParams] = None, verified: Optional[bool] = None
    ) -> ApiResponse[List[LandDonor]]:
        return await self._call(
            "GET",
            "/land-donors",
            List[LandDonor],
            params=build_query(params, verified=verified),
        )

    async def get_by_id(self, donor_id: str) -> ApiResponse[LandDonor]:
        return await self._call(
            "GET", resource_path("land-donors", donor_id), LandDonor
        )

    async def create(self, donor: LandDonorCreate) -> ApiResponse[LandDonor]:
        return await self._call(
            "POST", "/land-donors", LandDonor, json=donor.to_payload()
        )

    async def update(
        self, donor_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[LandDonor]:
        return await self._call(
            "PUT",
            resource_path("land-donors", donor_id),
            LandDonor,
            json=camelize(changes),
        )

    async def toggle_verified(
        self, donor_id: str, verified: bool
    ) -> ApiResponse[LandDonor]:
        return await self._call(
            "PATCH",
            resource_path("land-donors", donor_id, "verify"),
            LandDonor,
            json={"verified": verified},
        )

    async def delete(self, donor_id: str) -> ApiResponse:
        return await self._call("DELETE", resource_path("land-donors", donor_id))


class GalleryApi(ResourceApi):
    async def get_all(
        self,
        params: Optional[PaginationParams] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> ApiResponse[List[GalleryImage]]:
        return await self._call(
            "GET",
            "/gallery",
            List[GalleryImage],
            params=build_query(params, category=category, featured=featured),
        )

    async def get_by_id(self, image_id: str) -> ApiResponse[GalleryImage]:
        return await self._call(
            "GET", resource_path("gallery", image_id), GalleryImage
        )

    async def create(self, image: GalleryImageCreate) -> ApiResponse[GalleryImage]:
        return await self._call(
            "POST", "/gallery", GalleryImage, json=image.to_payload()
        )

    async def update(
        self, image_id: str, changes: Mapping[str, Any]
    ) -> ApiResponse[GalleryImage]:
        return await self._call(
            "PUT",
            resource_path("gallery", image_id),
            GalleryImage,
            json=camelize(changes),
        )

    async def toggle_featured(
        self, image_id: str, featured: bool
    ) -> ApiResponse[GalleryImage]:
        return await self._call(
            "PATCH",
            resource_path("gallery", image_id, "featured"),
            GalleryImage,
            json={"featured": featured},
        )

    async def delete(self, image_id: str) -> ApiResponse:
        return await self._call("DELETE", resource_path("gallery", image_id))


class SettingsApi(ResourceApi):
    async def get(self) -> ApiResponse[SiteSettings]:
        return await self._call("GET", "/settings", SiteSettings)

    async def update(self, changes: Mapping[str, Any]) -> ApiResponse[SiteSettings]:
        return await self._call(
            "PUT", "/settings", SiteSettings, json=camelize(changes)
        )

    async def update_prayer_times(self, **times: str) -> ApiResponse[SiteSettings]:
        """Update any of fajr, dhuhr, asr, maghrib, isha."""
        valid = {"fajr", "dhuhr", "asr", "maghrib", "isha"}
        unknown = set(times) - valid
        if unknown:
            raise ValueError(f"Unknown prayer names: {sorted(unknown)}")
        return await self._call(
            "PATCH", "/settings/prayer-times", SiteSettings, json=times
        )


class ActivityApi(ResourceApi):
    async def get_all(
        self, params: Optional[PaginationParams] = None, type: Optional[str] = None
    ) -> ApiResponse[List[ActivityLog]]:
        return await self._call(
            "GET", "/activity", List[ActivityLog], params=build_query(params, type=type)
        )

    async def get_recent(
        self, limit: Optional[int] = None
    ) -> ApiResponse[List[ActivityLog]]:
        return await self._call(
            "GET",
            "/activity/recent",
            List[ActivityLog],
            params=build_query(limit=limit),
        )

    async def mark_as_read(
        self, ids: Optional[Iterable[str]] = None, mark_all: bool = False
    ) -> ApiResponse:
        body: Dict[str, Any] = {"markAll": mark_all}
        if ids is not None:
            body["ids"] = list(ids)
        return await self._call("POST", "/activity/mark-read", json=body)


class StatisticsApi(ResourceApi):
    async def get_dashboard(self) -> ApiResponse[DashboardStats]:
        return await self._call("GET", "/statistics/dashboard", DashboardStats)


class UploadApi(ResourceApi):
    async def upload(
        self,
        filename: str,
        content: bytes,
        folder: UploadFolder,
        content_type: str = "application/octet-stream",
    ) -> ApiResponse[UploadResult]:
        folder = UploadFolder(folder)
        return await self._call(
            "POST",
            resource_path("upload", folder.value),
            UploadResult,
            files={"file": (filename, content, content_type)},
        )


class PublicApi(ResourceApi):
    """Endpoints of the public site; no session required."""

    async def get_statistics(self) -> ApiResponse[PublicStatistics]:
        return await self._call("GET", "/public/statistics", PublicStatistics)

    async def get_contributions(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        type: Optional[str] = None,
    ) -> ApiResponse[List[Contribution]]:
        return await self._call(
            "GET",
            "/public/contributions",
            List[Contribution],
            params=build_query(page=page, limit=limit, type=type),
        )

    async def get_committees(
        self, type: Optional[str] = None
    ) -> ApiResponse[List[Committee]]:
        return await self._call(
            "GET", "/public/committees", List[Committee], params=build_query(type=type)
        )

    async def get_current_committee(self) -> ApiResponse[Committee]:
        return await self._call("GET", "/public/committees/current", Committee)

    async def get_gallery(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> ApiResponse[List[GalleryImage]]:
        return await self._call(
            "GET",
            "/public/gallery",
            List[GalleryImage],
            params=build_query(
                page=page, limit=limit, category=category, featured=featured
            ),
        )

    async def get_land_donors(
        self, page: Optional[int] = None, limit: Optional[int] = None
    ) -> ApiResponse[List[LandDonor]]:
        return await self._call(
            "GET",
            "/public/land-donors",
            List[LandDonor],
            params=build_query(page=page, limit=limit),
        )

    async def get_settings(self) -> ApiResponse[SiteSettings]:
        return await self._call("GET", "/public/settings", SiteSettings)

    # ===== Conveniences for the public pages =====

    async def get_contribution_stats(self) -> ContributionStats:
        stats = (await self.get_statistics()).data or PublicStatistics()
        return ContributionStats(
            total_amount=stats.total_funds,
            contributor_count=stats.total_contributors,
            land_donated=stats.land_donated,
        )

    async def get_gallery_categories(self) -> List[str]:
        """Distinct gallery categories in order of first appearance."""
        images = (await self.get_gallery()).data or []
        categories = (image.category for image in images if image.category)
        return list(dict.fromkeys(categories))

    async def get_featured_images(self, limit: int = 6) -> List[GalleryImage]:
        return (await self.get_gallery(featured=True, limit=limit)).data or []

    async def get_all_land_donors(self) -> List[LandDonor]:
        return (await self.get_land_donors(limit=100)).data or []

    async def send_contact_form(self, form: ContactForm) -> ApiResponse:
        return await self._call("POST", "/contact", json=form.to_payload())
