"""
Pydantic models for the portal API contract.

The API speaks camelCase JSON and identifies documents by ``_id``; models
expose snake_case attributes and accept either ``_id`` or ``id``. Every
response is wrapped in the ``{success, message, data, meta, errors}``
envelope modelled by ``ApiResponse``.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ContributionType(str, Enum):
    CASH = "Cash"
    MATERIAL = "Material"


class ContributionStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class CommitteeType(str, Enum):
    PAST = "past"
    CURRENT = "current"


class Designation(str, Enum):
    PRESIDENT = "president"
    VICE_PRESIDENT = "vice_president"
    SECRETARY = "secretary"
    TREASURER = "treasurer"
    MEMBER = "member"


class GalleryCategory(str, Enum):
    FOUNDATION = "Foundation"
    CONSTRUCTION = "Construction"
    EVENTS = "Events"
    FINAL_LOOK = "Final Look"
    CEREMONY = "Ceremony"


class ActivityType(str, Enum):
    CONTRIBUTION = "contribution"
    COMMITTEE = "committee"
    GALLERY = "gallery"
    SETTINGS = "settings"
    USER = "user"
    DELETE = "delete"


class UploadFolder(str, Enum):
    GALLERY = "gallery"
    AVATARS = "avatars"
    MEMBERS = "members"
    COMMITTEES = "committees"
    SETTINGS = "settings"


class PortalModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase wire names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for a request body (camelCase, unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Document(PortalModel):
    """Fields shared by every stored document."""

    id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("_id", "id")
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ===== Entities =====


class AdminUser(Document):
    email: str
    name: str
    role: str
    avatar: Optional[str] = None
    phone: Optional[str] = None
    last_login: Optional[datetime] = None
    is_active: bool = True


class CommitteeMember(PortalModel):
    id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("_id", "id")
    )
    name: str
    designation: str
    designation_label: str
    photo: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    order: int = 0


class Committee(Document):
    name: str
    term: str
    description: Optional[str] = None
    type: CommitteeType = CommitteeType.PAST
    image: Optional[str] = None
    is_active: Optional[bool] = None
    members: List[CommitteeMember] = Field(default_factory=list)


class Contribution(Document):
    contributor_name: str
    type: ContributionType
    amount: float
    date: datetime
    anonymous: bool = False
    purpose: Optional[str] = None
    notes: Optional[str] = None
    receipt_number: str = ""
    status: ContributionStatus = ContributionStatus.PENDING

    @property
    def display_name(self) -> str:
        """Contributor name as shown publicly."""
        return "Anonymous" if self.anonymous else self.contributor_name


class LandDonor(Document):
    name: str
    land_amount: float
    unit: str
    location: str = ""
    quote: Optional[str] = None
    date: datetime
    notes: Optional[str] = None
    verified: bool = False
    photo: Optional[str] = None


class GalleryImage(Document):
    url: str
    public_id: str
    category: str
    alt: str
    description: Optional[str] = None
    date: Optional[datetime] = None
    featured: bool = False
    order: int = 0


class ActivityLog(Document):
    action: str
    type: ActivityType
    entity_id: Optional[str] = None
    user_id: str
    user_name: str
    timestamp: datetime
    details: Optional[str] = None
    read: bool = False


class SocialLinks(PortalModel):
    facebook: Optional[str] = None
    youtube: Optional[str] = None
    twitter: Optional[str] = None


class PrayerTimes(PortalModel):
    fajr: Optional[str] = None
    dhuhr: Optional[str] = None
    asr: Optional[str] = None
    maghrib: Optional[str] = None
    isha: Optional[str] = None


class SiteSettings(PortalModel):
    site_name: str
    tagline: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    prayer_times: PrayerTimes = Field(default_factory=PrayerTimes)
    logo: Optional[str] = None
    favicon: Optional[str] = None
    maintenance_mode: bool = False
    show_anonymous_donors: bool = True
    enable_gallery: bool = True


class MonthlyDataPoint(PortalModel):
    month: str
    amount: float
    count: int


class DashboardStats(PortalModel):
    total_funds: float = 0
    land_donated: float = 0
    total_contributors: int = 0
    pending_contributions: int = 0
    monthly_growth: float = 0
    total_committees: int = 0
    gallery_images: int = 0
    monthly_data: List[MonthlyDataPoint] = Field(default_factory=list)


class ContributionStatistics(PortalModel):
    total_contributions: int = 0
    verified_contributions: int = 0
    pending_contributions: int = 0
    rejected_contributions: int = 0
    total_amount: float = 0
    cash_amount: float = 0
    land_amount: float = 0
    material_amount: float = 0


class PublicStatistics(PortalModel):
    total_funds: float = 0
    land_donated: float = 0
    total_contributors: int = 0
    site_name: Optional[str] = None
    tagline: Optional[str] = None


class ContributionStats(PortalModel):
    """Headline numbers for the public contributions page."""

    total_amount: float = 0
    contributor_count: int = 0
    land_donated: float = 0


class UploadResult(PortalModel):
    url: str
    public_id: str
    width: int
    height: int
    format: str


class LoginResult(PortalModel):
    user: AdminUser
    access_token: Optional[str] = None


class TokenPair(PortalModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


# ===== Request payloads =====


class UserCreate(PortalModel):
    email: str
    password: str
    name: str
    role: Optional[str] = None
    phone: Optional[str] = None


class CommitteeCreate(PortalModel):
    name: str
    term: str
    description: Optional[str] = None
    type: Optional[CommitteeType] = None
    image: Optional[str] = None


class MemberCreate(PortalModel):
    name: str
    designation: Designation
    designation_label: str
    photo: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    order: Optional[int] = None


class ContributionCreate(PortalModel):
    contributor_name: str
    type: ContributionType
    amount: float = Field(gt=0)
    date: str
    anonymous: Optional[bool] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None


class LandDonorCreate(PortalModel):
    name: str
    land_amount: float = Field(gt=0)
    unit: str
    location: str
    date: str
    quote: Optional[str] = None
    notes: Optional[str] = None
    photo: Optional[str] = None


class GalleryImageCreate(PortalModel):
    url: str
    public_id: str
    category: str
    alt: str
    description: Optional[str] = None
    date: Optional[str] = None
    featured: Optional[bool] = None
    order: Optional[int] = None


class ContactForm(PortalModel):
    name: str
    email: str
    phone: Optional[str] = None
    contribution_type: str
    amount: Optional[str] = None
    message: Optional[str] = None


# ===== Envelope & pagination =====


class PaginationMeta(PortalModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def from_counts(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class PaginationParams(PortalModel):
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    sort_by: Optional[str] = None
    sort_order: Optional[str] = Field(default=None, pattern="^(asc|desc)$")
    search: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope returned by every portal endpoint."""

    model_config = ConfigDict(extra="allow")

    success: bool
    message: str = ""
    data: Optional[T] = None
    meta: Optional[PaginationMeta] = None
    errors: Optional[Dict[str, List[str]]] = None
    total: Optional[int] = None
