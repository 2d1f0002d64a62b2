"""
Community site value types

Posts, comments, members and site settings as the client holds them.
Posts and comments are immutable: every edit produces a new object so that
callers holding the previous collection never observe a change.

Wire/snapshot format uses camelCase keys (createdAt, authorId, ...).
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple


class BoardType(str, Enum):
    """Board a post belongs to"""
    INTRO = "intro"
    NOTICE_ALL = "notice_all"
    FAMILY_EVENTS = "family_events"
    FREE = "free"
    RESOURCES = "resources"
    SIGNUP = "signup"
    TRASH = "trash"


class UserRole(str, Enum):
    """Who is using the site"""
    GUEST = "guest"
    MEMBER = "member"
    ADMIN = "admin"


ADMIN_DISPLAY_NAME = "관리자"
MEMBER_DISPLAY_NAME = "조합원"

# Garages (sites) a member may belong to
ALLOWED_GARAGES: Tuple[str, ...] = ("진관", "도봉", "송파")


def now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


def new_id() -> str:
    """Millisecond timestamp id, matching ids already stored by the site"""
    return str(int(datetime.utcnow().timestamp() * 1000))


@dataclass(frozen=True)
class Attachment:
    name: str
    data: str  # base64 payload or public URL
    type: str  # MIME type

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            name=data.get("name", ""),
            data=data.get("data", ""),
            type=data.get("type", ""),
        )


@dataclass(frozen=True)
class Comment:
    """A top-level comment or a reply (replies never carry replies)"""
    id: str
    author: str
    content: str
    created_at: str
    replies: Tuple["Comment", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "createdAt": self.created_at,
            "replies": [r.to_dict() for r in self.replies],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=str(data.get("id", "")),
            author=data.get("author", ""),
            content=data.get("content", ""),
            created_at=data.get("createdAt") or data.get("created_at") or "",
            replies=tuple(cls.from_dict(r) for r in (data.get("replies") or [])),
        )


@dataclass(frozen=True)
class Post:
    """
    A board post.

    List-view posts (as returned by the post listing) leave content,
    attachments and comments as None; detail-view posts have them populated.
    """
    id: str
    type: BoardType
    title: str
    author: str
    created_at: str
    views: int = 0
    content: Optional[str] = None
    author_id: Optional[str] = None
    user_id: Optional[str] = None
    image_url: Optional[str] = None
    attachments: Optional[Tuple[Attachment, ...]] = None
    password: Optional[str] = None
    comments: Optional[Tuple[Comment, ...]] = None
    pinned: bool = False
    pinned_at: Optional[str] = None

    @property
    def is_detail(self) -> bool:
        return self.content is not None

    def with_changes(self, **changes: Any) -> "Post":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, dropping fields that are not loaded"""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "author": self.author,
            "createdAt": self.created_at,
            "views": self.views,
            "pinned": self.pinned,
            "pinnedAt": self.pinned_at,
        }
        optional = {
            "content": self.content,
            "authorId": self.author_id,
            "userId": self.user_id,
            "imageUrl": self.image_url,
            "password": self.password,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.attachments is not None:
            data["attachments"] = [a.to_dict() for a in self.attachments]
        if self.comments is not None:
            data["comments"] = [c.to_dict() for c in self.comments]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        attachments = data.get("attachments")
        comments = data.get("comments")
        return cls(
            id=str(data["id"]),
            type=BoardType(data.get("type", BoardType.FREE.value)),
            title=data.get("title", ""),
            author=data.get("author", ""),
            created_at=data.get("createdAt") or data.get("created_at") or "",
            views=int(data.get("views") or 0),
            content=data.get("content"),
            author_id=data.get("authorId"),
            user_id=data.get("userId"),
            image_url=data.get("imageUrl"),
            attachments=(
                tuple(Attachment.from_dict(a) for a in attachments)
                if attachments is not None else None
            ),
            password=data.get("password") or None,
            comments=(
                tuple(Comment.from_dict(c) for c in comments)
                if comments is not None else None
            ),
            pinned=bool(data.get("pinned", False)),
            pinned_at=data.get("pinnedAt"),
        )


@dataclass(frozen=True)
class Member:
    """A membership application / approved member"""
    id: str
    name: str
    birth_date: str
    phone: str
    email: str
    garage: str
    signup_date: str
    is_approved: bool = False
    # Legacy login fields, no longer written by signup
    login_id: Optional[str] = None
    password: Optional[str] = None

    def public(self) -> "Member":
        """Copy without the legacy password, safe to persist in a session"""
        return replace(self, password=None)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "birthDate": self.birth_date,
            "phone": self.phone,
            "email": self.email,
            "garage": self.garage,
            "signupDate": self.signup_date,
            "isApproved": self.is_approved,
        }
        if self.login_id is not None:
            data["loginId"] = self.login_id
        if self.password is not None:
            data["password"] = self.password
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            birth_date=data.get("birthDate", ""),
            phone=data.get("phone", ""),
            email=data.get("email", ""),
            garage=data.get("garage", ""),
            signup_date=data.get("signupDate") or data.get("createdAt") or "",
            is_approved=bool(data.get("isApproved", False)),
            login_id=data.get("loginId"),
            password=data.get("password"),
        )


@dataclass
class HistoryItem:
    year: str
    text: str


@dataclass
class OfficeItem:
    id: str
    name: str
    address: str
    phone: str
    map_image_url: str


def _default_offices() -> List[OfficeItem]:
    return [
        OfficeItem("jinkwan", "진관사업소", "서울특별시 은평구 통일로 1190", "02-371-0709", ""),
        OfficeItem("dobong", "도봉사업소", "서울특별시 도봉구 도봉로 969", "02-987-6543", ""),
        OfficeItem("songpa", "송파사업소", "서울특별시 송파구 헌릉로 869", "02-555-5555", ""),
    ]


def _default_history() -> List[HistoryItem]:
    return [
        HistoryItem("2024", "우리노동조합 디지털 혁신 선포 및 홈페이지 개편"),
        HistoryItem("2015", "전국 단위 노동 환경 실태 조사 실시"),
        HistoryItem("2005", "산별 노동조합 체제 전환"),
        HistoryItem("1990", "우리노동조합 창립 선언"),
    ]


@dataclass
class SiteSettings:
    """Single site-wide settings document (last writer wins)"""
    site_name: str = "우리노동조합"
    point_color: str = "#0ea5e9"
    hero_title: str = "함께 만드는 더 나은 내일"
    hero_subtitle: str = "우리노동조합은 노동자의 권익과 정의로운 노동 환경을 위해 행동합니다."
    hero_image_url: str = ""
    hero_image_urls: List[str] = field(default_factory=list)
    font_family: str = "Noto Sans KR"
    greeting_title: str = "우리의 사명과 약속"
    greeting_message: str = ""
    greeting_image_url: str = ""
    mission_items: List[str] = field(default_factory=list)
    history: List[HistoryItem] = field(default_factory=_default_history)
    offices: List[OfficeItem] = field(default_factory=_default_offices)

    _KEYS = {
        "site_name": "siteName",
        "point_color": "pointColor",
        "hero_title": "heroTitle",
        "hero_subtitle": "heroSubtitle",
        "hero_image_url": "heroImageUrl",
        "hero_image_urls": "heroImageUrls",
        "font_family": "fontFamily",
        "greeting_title": "greetingTitle",
        "greeting_message": "greetingMessage",
        "greeting_image_url": "greetingImageUrl",
        "mission_items": "missionItems",
    }

    def to_dict(self) -> Dict[str, Any]:
        data = {camel: getattr(self, attr) for attr, camel in self._KEYS.items()}
        data["history"] = [asdict(h) for h in self.history]
        data["offices"] = [
            {
                "id": o.id,
                "name": o.name,
                "address": o.address,
                "phone": o.phone,
                "mapImageUrl": o.map_image_url,
            }
            for o in self.offices
        ]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteSettings":
        settings = cls()
        for attr, camel in cls._KEYS.items():
            if camel in data and data[camel] is not None:
                setattr(settings, attr, data[camel])
        if data.get("history") is not None:
            settings.history = [
                HistoryItem(year=str(h.get("year", "")), text=h.get("text", ""))
                for h in data["history"]
            ]
        if data.get("offices") is not None:
            settings.offices = [
                OfficeItem(
                    id=o.get("id", ""),
                    name=o.get("name", ""),
                    address=o.get("address", ""),
                    phone=o.get("phone", ""),
                    map_image_url=o.get("mapImageUrl", ""),
                )
                for o in data["offices"]
            ]
        return settings


INITIAL_POSTS: List[Post] = [
    Post(
        id="1",
        type=BoardType.NOTICE_ALL,
        title="우리노동조합 홈페이지 오픈 안내",
        content=(
            "조합원 여러분의 편리한 소통을 위해 홈페이지를 만들었습니다\n"
            "우리노동조합에서는 존댓말 사용이 의무입니다\n"
            "서로 존중하는 사회를 만들어 봅시다!"
        ),
        author=ADMIN_DISPLAY_NAME,
        created_at="2025-12-29",
        views=124,
        password="1234",
    )
]
