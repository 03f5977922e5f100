#!/usr/bin/env python3
"""Data models for GitHub organization management.

Records mirrored from the GitHub API for members, teams, repositories
and access grants. Nothing here is persisted; every record is built
fresh from an API response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union


# --- Enums ---

class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"

class MemberState(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"

class TeamPrivacy(str, Enum):
    CLOSED = "closed"
    SECRET = "secret"

class TeamMemberRole(str, Enum):
    MAINTAINER = "maintainer"
    MEMBER = "member"

class RepoPermission(str, Enum):
    """Team default permission, in the API's pull/push vocabulary."""
    PULL = "pull"
    TRIAGE = "triage"
    PUSH = "push"
    MAINTAIN = "maintain"
    ADMIN = "admin"

class AccessLevel(str, Enum):
    """Grant level on a repository, in the read/write vocabulary."""
    READ = "read"
    TRIAGE = "triage"
    WRITE = "write"
    MAINTAIN = "maintain"
    ADMIN = "admin"

class SubjectType(str, Enum):
    USER = "user"
    TEAM = "team"

class AccountType(str, Enum):
    USER = "User"
    BOT = "Bot"
    ORGANIZATION = "Organization"


# --- Permission vocabulary ---

# Both vocabularies share one total order.
PERMISSION_ORDER = ["read", "triage", "write", "maintain", "admin"]

_TO_ACCESS_LEVEL = {
    "pull": "read",
    "read": "read",
    "triage": "triage",
    "push": "write",
    "write": "write",
    "maintain": "maintain",
    "admin": "admin",
}

_TO_API_PERMISSION = {
    "read": "pull",
    "triage": "triage",
    "write": "push",
    "maintain": "maintain",
    "admin": "admin",
}


def is_valid_permission(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.lower() in _TO_ACCESS_LEVEL


def normalize_permission(value: Optional[str], default: str = "read") -> AccessLevel:
    """Map either vocabulary (pull/push or read/write) to an AccessLevel.

    Missing values fall back to ``default``. Unknown values raise ValueError.
    """
    if not value:
        value = default
    level = _TO_ACCESS_LEVEL.get(value.lower())
    if level is None:
        raise ValueError(f"Unknown permission level: {value}")
    return AccessLevel(level)


def to_api_permission(value: Union[str, AccessLevel, RepoPermission]) -> RepoPermission:
    """Map either vocabulary to the pull/push form the write endpoints take."""
    level = normalize_permission(getattr(value, "value", value))
    return RepoPermission(_TO_API_PERMISSION[level.value])


def permission_rank(value: Union[str, AccessLevel, RepoPermission]) -> int:
    return PERMISSION_ORDER.index(normalize_permission(getattr(value, "value", value)).value)


def _team_permission(value: Optional[str]) -> RepoPermission:
    # Custom organization roles are reported as pull
    if not is_valid_permission(value):
        return RepoPermission.PULL
    return to_api_permission(value)


# --- Organization Resources ---

@dataclass
class User:
    id: int
    login: str
    avatar_url: str = ""
    html_url: str = ""
    type: str = AccountType.USER.value
    site_admin: bool = False
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "User":
        return cls(
            id=data.get("id", 0),
            login=data.get("login", ""),
            avatar_url=data.get("avatar_url", "") or "",
            html_url=data.get("html_url", "") or "",
            type=data.get("type", AccountType.USER.value) or AccountType.USER.value,
            site_admin=bool(data.get("site_admin", False)),
            name=data.get("name") or None,
            email=data.get("email") or None,
        )

    @property
    def is_bot(self) -> bool:
        return self.type == AccountType.BOT.value

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "login": self.login,
            "avatar_url": self.avatar_url,
            "html_url": self.html_url,
            "type": self.type,
            "site_admin": self.site_admin,
        }
        if self.name:
            data["name"] = self.name
        if self.email:
            data["email"] = self.email
        return data


@dataclass
class OrganizationMember(User):
    role: MemberRole = MemberRole.MEMBER
    state: MemberState = MemberState.ACTIVE

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["role"] = self.role.value
        data["state"] = self.state.value
        return data


@dataclass
class TeamMember(User):
    role: TeamMemberRole = TeamMemberRole.MEMBER

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["role"] = self.role.value
        return data


@dataclass
class Team:
    id: int
    name: str
    slug: str = ""
    description: Optional[str] = None
    privacy: TeamPrivacy = TeamPrivacy.CLOSED
    permission: RepoPermission = RepoPermission.PULL
    members_count: int = 0
    repos_count: int = 0
    html_url: str = ""

    def __post_init__(self):
        if not self.slug:
            self.slug = self.name.lower().replace(" ", "-")

    @classmethod
    def from_api(cls, data: dict) -> "Team":
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            description=data.get("description") or None,
            privacy=TeamPrivacy(data.get("privacy") or "closed"),
            permission=_team_permission(data.get("permission")),
            html_url=data.get("html_url", "") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "privacy": self.privacy.value,
            "permission": self.permission.value,
            "members_count": self.members_count,
            "repos_count": self.repos_count,
            "html_url": self.html_url,
        }


@dataclass
class RepoAccess:
    """The caller's own effective access, one flag per upstream key."""
    admin: bool = False
    maintain: bool = False
    push: bool = False
    triage: bool = False
    pull: bool = False

    @classmethod
    def from_api(cls, data: Optional[dict]) -> "RepoAccess":
        data = data or {}
        return cls(
            admin=bool(data.get("admin", False)),
            maintain=bool(data.get("maintain", False)),
            push=bool(data.get("push", False)),
            triage=bool(data.get("triage", False)),
            pull=bool(data.get("pull", False)),
        )

    def to_dict(self) -> dict:
        return {
            "admin": self.admin,
            "maintain": self.maintain,
            "push": self.push,
            "triage": self.triage,
            "pull": self.pull,
        }


@dataclass
class Repository:
    id: int
    name: str
    full_name: str = ""
    description: Optional[str] = None
    private: bool = False
    html_url: str = ""
    default_branch: str = "main"
    permissions: RepoAccess = field(default_factory=RepoAccess)
    owner: Optional[User] = None

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        owner = data.get("owner")
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            full_name=data.get("full_name", "") or "",
            description=data.get("description") or None,
            private=bool(data.get("private", False)),
            html_url=data.get("html_url", "") or "",
            default_branch=data.get("default_branch") or "main",
            permissions=RepoAccess.from_api(data.get("permissions")),
            owner=User.from_api(owner) if owner else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "private": self.private,
            "html_url": self.html_url,
            "default_branch": self.default_branch,
            "permissions": self.permissions.to_dict(),
            "owner": self.owner.to_dict() if self.owner else None,
        }


@dataclass
class RepositoryPermission:
    """One grant on one repository, to either a user or a team."""
    type: SubjectType
    permission: AccessLevel = AccessLevel.READ
    user: Optional[User] = None
    team: Optional[Team] = None

    def __post_init__(self):
        if self.type == SubjectType.USER and (self.user is None or self.team is not None):
            raise ValueError("User permission requires a user and no team")
        if self.type == SubjectType.TEAM and (self.team is None or self.user is not None):
            raise ValueError("Team permission requires a team and no user")

    @property
    def subject_name(self) -> str:
        if self.type == SubjectType.USER:
            return self.user.login
        return self.team.slug

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "user": self.user.to_dict() if self.user else None,
            "team": self.team.to_dict() if self.team else None,
            "permission": self.permission.value,
        }


@dataclass
class RepositoryAccessReport:
    repository: str
    permissions: list[RepositoryPermission] = field(default_factory=list)
    potential_collaborators: list[User] = field(default_factory=list)

    @property
    def user_permissions(self) -> list[RepositoryPermission]:
        return [p for p in self.permissions if p.type == SubjectType.USER]

    @property
    def team_permissions(self) -> list[RepositoryPermission]:
        return [p for p in self.permissions if p.type == SubjectType.TEAM]

    def to_dict(self) -> dict:
        return {
            "repository": self.repository,
            "permissions": [p.to_dict() for p in self.permissions],
            "potential_collaborators": [u.to_dict() for u in self.potential_collaborators],
        }


# --- Enrichment results ---

T = TypeVar("T")


@dataclass
class DetailResult(Generic[T]):
    """Outcome of a per-item detail fetch.

    ``defaulted`` is True when the fetch failed and ``value`` holds the
    fallback instead of what GitHub reported.
    """
    value: T
    defaulted: bool = False
    error: str = ""

    @classmethod
    def fetched(cls, value: T) -> "DetailResult[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: Any) -> "DetailResult[T]":
        return cls(value=value, defaulted=True, error=str(error))
