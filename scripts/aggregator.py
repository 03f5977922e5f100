#!/usr/bin/env python3
"""Read and write operations for one GitHub organization.

Every list call pages through GitHub until a short page comes back, so
results are complete regardless of organization size. Derived views
(owner-only repositories, potential collaborators, merged permission
lists) are computed from fresh API reads on every call.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar
from urllib.parse import quote

from audit_logger import AuditLogger
from config_loader import ConsoleConfig
from errors import ConsoleError, InvalidArgumentError, UpstreamError
from github_client import GitHubClient, RestClient
from models import (
    AccessLevel,
    DetailResult,
    MemberRole,
    MemberState,
    OrganizationMember,
    Repository,
    RepositoryAccessReport,
    RepositoryPermission,
    SubjectType,
    Team,
    TeamMember,
    TeamMemberRole,
    TeamPrivacy,
    User,
    is_valid_permission,
    normalize_permission,
    to_api_permission,
)

T = TypeVar("T")
R = TypeVar("R")

TEAM_UPDATE_FIELDS = ("name", "description", "privacy", "permission")


class OrgDataAggregator:
    """Organization-scoped queries and mutations over an injected REST client."""

    def __init__(
        self,
        client: RestClient,
        config: ConsoleConfig,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.client = client
        self.org_name = config.org_name
        self.page_size = config.page_size
        self.max_workers = config.max_workers
        self.audit_logger = audit_logger

    @classmethod
    def from_config(cls, config: ConsoleConfig) -> "OrgDataAggregator":
        """Build an aggregator backed by a live GitHubClient."""
        client = GitHubClient(config.token, api_url=config.api_url, timeout=config.timeout)
        audit = AuditLogger(config.audit_log_dir, prefix="console_audit") if config.audit_log_dir else None
        return cls(client, config, audit_logger=audit)

    # ------------------------------------------------------------------ #
    #  Pagination and fan-out                                             #
    # ------------------------------------------------------------------ #

    def _paginate(self, path: str, params: Optional[dict] = None) -> list[dict]:
        """Fetch every page of a list endpoint, preserving upstream order.

        Stops at the first page holding fewer than ``page_size`` items.
        """
        items: list[dict] = []
        page = 1
        while True:
            query = dict(params or {})
            query.update({"per_page": self.page_size, "page": page})
            data = self.client.get(path, params=query) or []
            if not isinstance(data, list):
                raise UpstreamError(f"Expected a list from {path}, got {type(data).__name__}", 200)

            items.extend(data)
            if len(data) < self.page_size:
                break
            page += 1

        logging.debug(f"Fetched {len(items)} items from {path} in {page} page(s)")
        return items

    def _fan_out(self, func: Callable[[T], R], items: list[T]) -> list[R]:
        """Run ``func`` over items concurrently; results keep the input order."""
        if not items:
            return []
        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(func, item) for item in items]
            return [future.result() for future in futures]

    def _write(self, operation: str, target: str, details: dict, call: Callable[[], R]) -> R:
        """Perform one mutation, logging and auditing its outcome."""
        try:
            result = call()
        except ConsoleError as e:
            logging.error(f"{operation} '{target}' failed: {e}")
            if self.audit_logger:
                self.audit_logger.log_operation(operation, self.org_name, target, details, error=str(e))
            raise

        logging.info(f"{operation} '{target}' succeeded")
        if self.audit_logger:
            self.audit_logger.log_operation(operation, self.org_name, target, details)
        return result

    # ------------------------------------------------------------------ #
    #  Organization members                                               #
    # ------------------------------------------------------------------ #

    def list_members(self) -> list[OrganizationMember]:
        """List all members with their organization role and state.

        A member whose membership detail cannot be fetched is still
        returned, as an active plain member.
        """
        logging.info(f"Fetching members for organization: {self.org_name}")
        raw_members = self._paginate(f"/orgs/{self.org_name}/members")
        logging.info(f"Found {len(raw_members)} members")

        details = self._fan_out(self._membership_detail, raw_members)

        members = []
        for raw, detail in zip(raw_members, details):
            role, state = detail.value
            user = User.from_api(raw)
            members.append(OrganizationMember(**vars(user), role=role, state=state))

        defaulted = sum(1 for d in details if d.defaulted)
        if defaulted:
            logging.warning(f"Used default role/state for {defaulted} of {len(members)} members")
        return members

    def _membership_detail(self, raw: dict) -> DetailResult[tuple[MemberRole, MemberState]]:
        login = raw.get("login", "")
        try:
            data = self.client.get(f"/orgs/{self.org_name}/memberships/{_segment(login)}") or {}
        except UpstreamError as e:
            logging.warning(f"Cannot get membership details for {login}: {e}")
            return DetailResult.fallback((MemberRole.MEMBER, MemberState.ACTIVE), e)

        # billing_manager and other roles outside admin/member count as member
        return DetailResult.fetched((
            _enum_or_default(MemberRole, data.get("role"), MemberRole.MEMBER),
            _enum_or_default(MemberState, data.get("state"), MemberState.ACTIVE),
        ))

    def add_member(self, username: str, role: str = "member") -> None:
        """Invite a user or update their role. Safe to repeat."""
        member_role = _coerce(MemberRole, role, "member role")
        self._write(
            "member_set_role", username, {"role": member_role.value},
            lambda: self.client.put(
                f"/orgs/{self.org_name}/memberships/{_segment(username)}",
                {"role": member_role.value},
            ),
        )

    def update_member_role(self, username: str, role: str) -> None:
        self.add_member(username, role)

    def remove_member(self, username: str) -> None:
        """Revoke organization membership. Cannot be undone from here."""
        self._write(
            "member_remove", username, {},
            lambda: self.client.delete(f"/orgs/{self.org_name}/memberships/{_segment(username)}"),
        )

    # ------------------------------------------------------------------ #
    #  Teams                                                              #
    # ------------------------------------------------------------------ #

    def list_teams(self) -> list[Team]:
        """List all teams. Member and repo counts are left at zero."""
        raw_teams = self._paginate(f"/orgs/{self.org_name}/teams")
        logging.info(f"Found {len(raw_teams)} teams")
        return [Team.from_api(t) for t in raw_teams]

    def get_team_detail(self, slug: str) -> Team:
        """Fetch a team with counts taken from its full member and repo lists."""
        path = f"/orgs/{self.org_name}/teams/{_segment(slug)}"
        team = Team.from_api(self.client.get(path) or {})
        team.members_count = len(self._paginate(f"{path}/members"))
        team.repos_count = len(self._paginate(f"{path}/repos"))
        return team

    def create_team(
        self,
        name: str,
        description: Optional[str] = None,
        privacy: str = "closed",
    ) -> Team:
        if not name or not name.strip():
            raise InvalidArgumentError("Team name is required")
        team_privacy = _coerce(TeamPrivacy, privacy or "closed", "team privacy")

        payload = {"name": name, "privacy": team_privacy.value}
        if description:
            payload["description"] = description

        data = self._write(
            "team_create", name, payload,
            lambda: self.client.post(f"/orgs/{self.org_name}/teams", payload),
        )
        return Team.from_api(data or {"name": name, "privacy": team_privacy.value})

    def update_team(self, slug: str, fields: dict) -> Team:
        """Change a team's name, description, privacy or default permission.

        Empty values are left untouched on GitHub.
        """
        unknown = set(fields) - set(TEAM_UPDATE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Unknown team fields: {', '.join(sorted(unknown))}")

        payload = {k: v for k, v in fields.items() if v}
        if "privacy" in payload:
            payload["privacy"] = _coerce(TeamPrivacy, payload["privacy"], "team privacy").value
        if "permission" in payload:
            if not is_valid_permission(payload["permission"]):
                raise InvalidArgumentError(f"Invalid permission value: {payload['permission']}")
            payload["permission"] = to_api_permission(payload["permission"]).value
        if not payload:
            raise InvalidArgumentError("No team fields to update")

        data = self._write(
            "team_update", slug, payload,
            lambda: self.client.patch(f"/orgs/{self.org_name}/teams/{_segment(slug)}", payload),
        )
        return Team.from_api(data or {"slug": slug, **payload})

    def delete_team(self, slug: str) -> None:
        self._write(
            "team_delete", slug, {},
            lambda: self.client.delete(f"/orgs/{self.org_name}/teams/{_segment(slug)}"),
        )

    # ------------------------------------------------------------------ #
    #  Team membership                                                    #
    # ------------------------------------------------------------------ #

    def list_team_members(self, slug: str) -> list[TeamMember]:
        raw_members = self._paginate(f"/orgs/{self.org_name}/teams/{_segment(slug)}/members")
        details = self._fan_out(
            lambda raw: self._team_role_detail(slug, raw), raw_members
        )
        return [
            TeamMember(**vars(User.from_api(raw)), role=detail.value)
            for raw, detail in zip(raw_members, details)
        ]

    def _team_role_detail(self, slug: str, raw: dict) -> DetailResult[TeamMemberRole]:
        login = raw.get("login", "")
        try:
            data = self.client.get(
                f"/orgs/{self.org_name}/teams/{_segment(slug)}/memberships/{_segment(login)}"
            ) or {}
        except UpstreamError as e:
            logging.warning(f"Cannot get team membership for {login} in {slug}: {e}")
            return DetailResult.fallback(TeamMemberRole.MEMBER, e)
        return DetailResult.fetched(
            _enum_or_default(TeamMemberRole, data.get("role"), TeamMemberRole.MEMBER)
        )

    def add_team_member(self, slug: str, username: str, role: str = "member") -> None:
        team_role = _coerce(TeamMemberRole, role, "team role")
        self._write(
            "team_member_set_role", f"{slug}/{username}", {"role": team_role.value},
            lambda: self.client.put(
                f"/orgs/{self.org_name}/teams/{_segment(slug)}/memberships/{_segment(username)}",
                {"role": team_role.value},
            ),
        )

    def remove_team_member(self, slug: str, username: str) -> None:
        self._write(
            "team_member_remove", f"{slug}/{username}", {},
            lambda: self.client.delete(
                f"/orgs/{self.org_name}/teams/{_segment(slug)}/memberships/{_segment(username)}"
            ),
        )

    def list_team_repositories(self, slug: str) -> list[Repository]:
        raw_repos = self._paginate(f"/orgs/{self.org_name}/teams/{_segment(slug)}/repos")
        return [Repository.from_api(r) for r in raw_repos]

    # ------------------------------------------------------------------ #
    #  Repositories                                                       #
    # ------------------------------------------------------------------ #

    def list_org_repositories(self) -> list[Repository]:
        """All organization repositories, most recently updated first."""
        raw_repos = self._paginate(
            f"/orgs/{self.org_name}/repos",
            {"sort": "updated", "direction": "desc"},
        )
        logging.info(f"Found {len(raw_repos)} repositories")
        return [Repository.from_api(r) for r in raw_repos]

    def get_repository(self, repo_name: str) -> Repository:
        data = self.client.get(f"/repos/{self.org_name}/{_segment(repo_name)}")
        return Repository.from_api(data or {})

    def has_team_collaboration(self, repo_name: str) -> bool:
        """True if any team holds a grant on the repository."""
        teams = self._paginate(f"/repos/{self.org_name}/{_segment(repo_name)}/teams")
        return len(teams) > 0

    def list_owner_only_repositories(self) -> list[Repository]:
        """Repositories with no team grants.

        Individual user collaborators do not count. A repository whose team
        list cannot be read is left out of the result.
        """
        repos = self.list_org_repositories()
        checks = self._fan_out(self._team_collaboration_detail, repos)

        owner_only = [repo for repo, check in zip(repos, checks) if not check.value]
        skipped = sum(1 for c in checks if c.defaulted)
        logging.info(
            f"Found {len(owner_only)} owner-only repositories "
            f"({skipped} skipped after lookup errors)"
        )
        return owner_only

    def _team_collaboration_detail(self, repo: Repository) -> DetailResult[bool]:
        try:
            return DetailResult.fetched(self.has_team_collaboration(repo.name))
        except UpstreamError as e:
            logging.error(f"Error checking team collaboration for {repo.name}: {e}")
            return DetailResult.fallback(True, e)

    def get_repository_permissions(self, repo_name: str) -> RepositoryAccessReport:
        """Merge user and team grants on a repository.

        Also lists organization members who are not yet collaborators,
        in organization member order.
        """
        raw_teams = self._paginate(f"/repos/{self.org_name}/{_segment(repo_name)}/teams")
        raw_collaborators = self._paginate(
            f"/repos/{self.org_name}/{_segment(repo_name)}/collaborators"
        )
        raw_members = self._paginate(f"/orgs/{self.org_name}/members")

        user_permissions = [
            RepositoryPermission(
                type=SubjectType.USER,
                user=User.from_api(c),
                permission=_collaborator_level(c),
            )
            for c in raw_collaborators
        ]
        team_permissions = [
            RepositoryPermission(
                type=SubjectType.TEAM,
                team=Team.from_api(t),
                permission=_team_level(t),
            )
            for t in raw_teams
        ]

        collaborator_logins = {c.get("login") for c in raw_collaborators}
        potential = [
            User.from_api(m) for m in raw_members
            if m.get("login") not in collaborator_logins
        ]

        return RepositoryAccessReport(
            repository=repo_name,
            permissions=user_permissions + team_permissions,
            potential_collaborators=potential,
        )

    def set_repository_permission(
        self,
        repo_name: str,
        subject_type: str,
        subject_name: str,
        permission: str,
    ) -> None:
        """Grant or change a user's or team's access to a repository."""
        subject = _coerce(SubjectType, subject_type, "subject type")
        if not subject_name:
            raise InvalidArgumentError(f"A {subject.value} name is required")
        if not is_valid_permission(permission):
            raise InvalidArgumentError(f"Invalid permission value: {permission}")
        payload = {"permission": to_api_permission(permission).value}

        path = self._grant_path(repo_name, subject, subject_name)

        self._write(
            f"repo_{subject.value}_grant", f"{repo_name}:{subject_name}", payload,
            lambda: self.client.put(path, payload),
        )

    def remove_repository_permission(
        self,
        repo_name: str,
        subject_type: str,
        subject_name: str,
    ) -> None:
        subject = _coerce(SubjectType, subject_type, "subject type")
        path = self._grant_path(repo_name, subject, subject_name)

        self._write(
            f"repo_{subject.value}_revoke", f"{repo_name}:{subject_name}", {},
            lambda: self.client.delete(path),
        )

    def _grant_path(self, repo_name: str, subject: SubjectType, subject_name: str) -> str:
        repo = _segment(repo_name)
        name = _segment(subject_name)
        if subject == SubjectType.USER:
            return f"/repos/{self.org_name}/{repo}/collaborators/{name}"
        return f"/orgs/{self.org_name}/teams/{name}/repos/{self.org_name}/{repo}"

    def update_repository_description(self, repo_name: str, description: str) -> Repository:
        data = self._write(
            "repo_update_description", repo_name, {"description": description},
            lambda: self.client.patch(
                f"/repos/{self.org_name}/{_segment(repo_name)}", {"description": description}
            ),
        )
        return Repository.from_api(data or {"name": repo_name, "description": description})

    def rename_repository(self, old_name: str, new_name: str) -> Repository:
        data = self._write(
            "repo_rename", old_name, {"name": new_name},
            lambda: self.client.patch(
                f"/repos/{self.org_name}/{_segment(old_name)}", {"name": new_name}
            ),
        )
        return Repository.from_api(data or {"name": new_name})


def _coerce(enum_cls, value, label):
    try:
        return enum_cls(value.lower() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidArgumentError(f"Invalid {label}: {value!r} (expected one of {allowed})")


def _team_level(raw: dict) -> AccessLevel:
    permission = raw.get("permission")
    if not is_valid_permission(permission):
        return AccessLevel.READ
    return normalize_permission(permission)


def _collaborator_level(raw: dict) -> AccessLevel:
    """Grant level for a collaborator entry, from ``role_name`` if present.

    Custom role names fall back to the highest flag in ``permissions``.
    """
    role_name = raw.get("role_name")
    if not role_name or is_valid_permission(role_name):
        return normalize_permission(role_name)

    flags = raw.get("permissions") or {}
    for key, level in (
        ("admin", AccessLevel.ADMIN),
        ("maintain", AccessLevel.MAINTAIN),
        ("push", AccessLevel.WRITE),
        ("triage", AccessLevel.TRIAGE),
    ):
        if flags.get(key):
            return level
    return AccessLevel.READ


def _segment(value: str) -> str:
    """Encode one URL path segment so a '/' cannot reach another endpoint."""
    return quote(str(value), safe="")


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value) if value else default
    except ValueError:
        return default
