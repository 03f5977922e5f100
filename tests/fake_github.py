"""In-memory stand-in for the GitHub REST API used by aggregator tests."""

import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

from errors import UpstreamError

# Small page size so pagination is exercised with a handful of records
PAGE_SIZE = 3


def make_user(login, user_id=None, **extra):
    user = {
        "id": user_id if user_id is not None else abs(hash(login)) % 100000,
        "login": login,
        "avatar_url": f"https://avatars.example.com/{login}",
        "html_url": f"https://github.com/{login}",
        "type": "User",
        "site_admin": False,
    }
    user.update(extra)
    return user


def make_repo(name, repo_id=None, org="test-org", **extra):
    repo = {
        "id": repo_id if repo_id is not None else abs(hash(name)) % 100000,
        "name": name,
        "full_name": f"{org}/{name}",
        "description": None,
        "private": False,
        "html_url": f"https://github.com/{org}/{name}",
        "default_branch": "main",
        "permissions": {
            "admin": True,
            "maintain": True,
            "push": True,
            "triage": True,
            "pull": True,
        },
        "owner": make_user(org, 1, type="Organization"),
    }
    repo.update(extra)
    return repo


def make_team(name, team_id=None, **extra):
    slug = extra.pop("slug", name.lower().replace(" ", "-"))
    team = {
        "id": team_id if team_id is not None else abs(hash(name)) % 100000,
        "name": name,
        "slug": slug,
        "description": None,
        "privacy": "closed",
        "permission": "pull",
        "html_url": f"https://github.com/orgs/test-org/teams/{slug}",
    }
    team.update(extra)
    return team


class FakeGitHubClient:
    """Implements get/post/patch/put/delete over in-memory organization state.

    List endpoints honour ``page`` and ``per_page`` so pagination is
    exercised exactly as against GitHub.
    """

    def __init__(self, org="test-org"):
        self.org = org
        self.members = []
        self.memberships = {}
        self.teams = {}
        self.team_members = {}
        self.team_roles = {}
        self.team_repos = {}
        self.repos = []
        self.repo_teams = {}
        self.collaborators = {}
        self.failures = {}
        self.calls = []

    # --- setup helpers ---

    def add_member(self, login, role="member", state="active", **extra):
        self.members.append(make_user(login, **extra))
        self.memberships[login] = {"role": role, "state": state}

    def add_team(self, name, members=(), repos=(), **extra):
        team = make_team(name, **extra)
        self.teams[team["slug"]] = team
        self.team_members[team["slug"]] = []
        self.team_repos[team["slug"]] = []
        for login, role in members:
            self.team_members[team["slug"]].append(make_user(login))
            self.team_roles[(team["slug"], login)] = role
        for repo_name in repos:
            self.team_repos[team["slug"]].append(make_repo(repo_name, org=self.org))
        return team

    def add_repo(self, name, teams=(), collaborators=(), **extra):
        repo = make_repo(name, org=self.org, **extra)
        self.repos.append(repo)
        self.repo_teams[name] = [dict(t) for t in teams]
        self.collaborators[name] = [dict(c) for c in collaborators]
        return repo

    def fail(self, method, path, status=500, message="Server Error"):
        """Make every call to method+path raise an UpstreamError."""
        self.failures[(method, path)] = UpstreamError(message, status)

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]

    # --- REST capability ---

    def get(self, path, params=None):
        return self._dispatch("GET", path, params=params)

    def post(self, path, payload=None):
        return self._dispatch("POST", path, payload=payload)

    def patch(self, path, payload=None):
        return self._dispatch("PATCH", path, payload=payload)

    def put(self, path, payload=None):
        return self._dispatch("PUT", path, payload=payload)

    def delete(self, path):
        return self._dispatch("DELETE", path)

    def _dispatch(self, method, path, params=None, payload=None):
        self.calls.append((method, path, params if method == "GET" else payload))
        if (method, path) in self.failures:
            raise self.failures[(method, path)]

        for route_method, pattern, handler in self._routes():
            if route_method != method:
                continue
            match = re.fullmatch(pattern, path)
            if match:
                result = handler(*match.groups(), payload) if method != "GET" else handler(*match.groups())
                if method == "GET" and isinstance(result, list):
                    return self._page(result, params or {})
                return result

        raise UpstreamError(f"{method} {path} failed with status code: 404 - Not Found", 404)

    def _page(self, items, params):
        per_page = params.get("per_page", 30)
        page = params.get("page", 1)
        start = (page - 1) * per_page
        return [dict(i) for i in items[start:start + per_page]]

    def _routes(self):
        org = re.escape(self.org)
        name = r"([^/]+)"
        return [
            ("GET", rf"/orgs/{org}/members", lambda: self.members),
            ("GET", rf"/orgs/{org}/memberships/{name}", self._get_membership),
            ("PUT", rf"/orgs/{org}/memberships/{name}", self._put_membership),
            ("DELETE", rf"/orgs/{org}/memberships/{name}", self._delete_membership),
            ("GET", rf"/orgs/{org}/teams", lambda: list(self.teams.values())),
            ("POST", rf"/orgs/{org}/teams", self._create_team),
            ("GET", rf"/orgs/{org}/teams/{name}", lambda slug: self._team(slug)),
            ("PATCH", rf"/orgs/{org}/teams/{name}", self._update_team),
            ("DELETE", rf"/orgs/{org}/teams/{name}", self._delete_team),
            ("GET", rf"/orgs/{org}/teams/{name}/members", lambda slug: self.team_members[self._team(slug)["slug"]]),
            ("GET", rf"/orgs/{org}/teams/{name}/memberships/{name}", self._get_team_membership),
            ("PUT", rf"/orgs/{org}/teams/{name}/memberships/{name}", self._put_team_membership),
            ("DELETE", rf"/orgs/{org}/teams/{name}/memberships/{name}", self._delete_team_membership),
            ("GET", rf"/orgs/{org}/teams/{name}/repos", lambda slug: self.team_repos[self._team(slug)["slug"]]),
            ("PUT", rf"/orgs/{org}/teams/{name}/repos/{org}/{name}", self._put_team_repo),
            ("DELETE", rf"/orgs/{org}/teams/{name}/repos/{org}/{name}", self._delete_team_repo),
            ("GET", rf"/orgs/{org}/repos", lambda: self.repos),
            ("GET", rf"/repos/{org}/{name}", lambda repo: self._repo(repo)),
            ("PATCH", rf"/repos/{org}/{name}", self._update_repo),
            ("GET", rf"/repos/{org}/{name}/teams", lambda repo: self.repo_teams[self._repo(repo)["name"]]),
            ("GET", rf"/repos/{org}/{name}/collaborators", lambda repo: self.collaborators[self._repo(repo)["name"]]),
            ("PUT", rf"/repos/{org}/{name}/collaborators/{name}", self._put_collaborator),
            ("DELETE", rf"/repos/{org}/{name}/collaborators/{name}", self._delete_collaborator),
        ]

    # --- handlers ---

    def _not_found(self, what):
        return UpstreamError(f"{what} failed with status code: 404 - Not Found", 404)

    def _team(self, slug):
        if slug not in self.teams:
            raise self._not_found(f"team {slug}")
        return self.teams[slug]

    def _repo(self, name):
        for repo in self.repos:
            if repo["name"] == name:
                return repo
        raise self._not_found(f"repo {name}")

    def _get_membership(self, login):
        if login not in self.memberships:
            raise self._not_found(f"membership {login}")
        return dict(self.memberships[login])

    def _put_membership(self, login, payload):
        if login not in self.memberships:
            self.members.append(make_user(login))
            self.memberships[login] = {"role": payload["role"], "state": "active"}
        else:
            self.memberships[login]["role"] = payload["role"]
        return dict(self.memberships[login])

    def _delete_membership(self, login, payload):
        if login not in self.memberships:
            raise self._not_found(f"membership {login}")
        del self.memberships[login]
        self.members = [m for m in self.members if m["login"] != login]

    def _create_team(self, payload):
        if any(t["name"] == payload["name"] for t in self.teams.values()):
            raise UpstreamError("POST teams failed with status code: 422 - Name must be unique", 422)
        extra = {k: v for k, v in payload.items() if k != "name"}
        return dict(self.add_team(payload["name"], **extra))

    def _update_team(self, slug, payload):
        team = self._team(slug)
        team.update(payload)
        return dict(team)

    def _delete_team(self, slug, payload):
        self._team(slug)
        del self.teams[slug]

    def _get_team_membership(self, slug, login):
        self._team(slug)
        if (slug, login) not in self.team_roles:
            raise self._not_found(f"team membership {login}")
        return {"role": self.team_roles[(slug, login)], "state": "active"}

    def _put_team_membership(self, slug, login, payload):
        self._team(slug)
        if (slug, login) not in self.team_roles:
            self.team_members[slug].append(make_user(login))
        self.team_roles[(slug, login)] = payload["role"]
        return {"role": payload["role"], "state": "active"}

    def _delete_team_membership(self, slug, login, payload):
        self._team(slug)
        self.team_roles.pop((slug, login), None)
        self.team_members[slug] = [m for m in self.team_members[slug] if m["login"] != login]

    def _put_team_repo(self, slug, repo_name, payload):
        team = self._team(slug)
        repo = self._repo(repo_name)
        grants = [t for t in self.repo_teams[repo_name] if t["slug"] != slug]
        grants.append(dict(team, permission=payload["permission"]))
        self.repo_teams[repo_name] = grants
        if not any(r["name"] == repo_name for r in self.team_repos[slug]):
            self.team_repos[slug].append(dict(repo))

    def _delete_team_repo(self, slug, repo_name, payload):
        self._team(slug)
        self._repo(repo_name)
        self.repo_teams[repo_name] = [t for t in self.repo_teams[repo_name] if t["slug"] != slug]
        self.team_repos[slug] = [r for r in self.team_repos[slug] if r["name"] != repo_name]

    def _update_repo(self, repo_name, payload):
        repo = self._repo(repo_name)
        if "name" in payload and payload["name"] != repo_name:
            if any(r["name"] == payload["name"] for r in self.repos):
                raise UpstreamError("PATCH repo failed with status code: 422 - name already exists", 422)
            new_name = payload["name"]
            self.repo_teams[new_name] = self.repo_teams.pop(repo_name)
            self.collaborators[new_name] = self.collaborators.pop(repo_name)
            repo["full_name"] = f"{self.org}/{new_name}"
        repo.update(payload)
        return dict(repo)

    def _put_collaborator(self, repo_name, login, payload):
        self._repo(repo_name)
        role_name = {"pull": "read", "push": "write"}.get(payload["permission"], payload["permission"])
        entries = [c for c in self.collaborators[repo_name] if c["login"] != login]
        entries.append(make_user(login, role_name=role_name))
        self.collaborators[repo_name] = entries

    def _delete_collaborator(self, repo_name, login, payload):
        self._repo(repo_name)
        self.collaborators[repo_name] = [
            c for c in self.collaborators[repo_name] if c["login"] != login
        ]
