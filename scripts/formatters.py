#!/usr/bin/env python3

from models import (
    OrganizationMember,
    Repository,
    RepositoryAccessReport,
    Team,
    TeamMember,
)


def format_members_terminal(members: list[OrganizationMember]) -> str:
    lines = []
    lines.append("=" * 60)
    lines.append(f"  Organization Members ({len(members)})")
    lines.append("=" * 60)

    if not members:
        lines.append("  No members found.")
        return "\n".join(lines)

    for m in members:
        flags = []
        if m.state.value == "pending":
            flags.append("pending")
        if m.is_bot:
            flags.append("bot")
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(f"  {m.login:<30} {m.role.value:<8}{suffix}")

    admins = sum(1 for m in members if m.role.value == "admin")
    lines.append("")
    lines.append(f"  Admins: {admins} | Members: {len(members) - admins}")
    lines.append("=" * 60)
    return "\n".join(lines)


def format_members_markdown(members: list[OrganizationMember]) -> str:
    lines = []
    lines.append("## Organization Members")
    lines.append("")
    lines.append("| Login | Role | State |")
    lines.append("|-------|------|-------|")
    for m in members:
        lines.append(f"| [{m.login}]({m.html_url}) | {m.role.value} | {m.state.value} |")
    return "\n".join(lines)


def format_team_members_terminal(members: list[TeamMember]) -> str:
    lines = [f"Team members ({len(members)}):"]
    for m in members:
        lines.append(f"  {m.login:<30} {m.role.value}")
    return "\n".join(lines)


def format_teams_terminal(teams: list[Team]) -> str:
    lines = []
    lines.append("=" * 60)
    lines.append(f"  Teams ({len(teams)})")
    lines.append("=" * 60)

    if not teams:
        lines.append("  No teams found.")
        return "\n".join(lines)

    for t in teams:
        lines.append(f"  {t.slug:<30} {t.privacy.value:<8} {t.permission.value}")
        if t.description:
            lines.append(f"      {t.description}")
    lines.append("=" * 60)
    return "\n".join(lines)


def format_team_detail_terminal(team: Team) -> str:
    lines = []
    lines.append(f"=== Team {team.name} ({team.slug}) ===")
    if team.description:
        lines.append(team.description)
    lines.append(f"Privacy:      {team.privacy.value}")
    lines.append(f"Permission:   {team.permission.value}")
    lines.append(f"Members:      {team.members_count}")
    lines.append(f"Repositories: {team.repos_count}")
    return "\n".join(lines)


def format_teams_markdown(teams: list[Team]) -> str:
    lines = []
    lines.append("## Teams")
    lines.append("")
    lines.append("| Team | Privacy | Permission | Description |")
    lines.append("|------|---------|------------|-------------|")
    for t in teams:
        lines.append(
            f"| {t.name} | {t.privacy.value} | {t.permission.value} | {t.description or ''} |"
        )
    return "\n".join(lines)


def format_repositories_terminal(repos: list[Repository], title: str = "Repositories") -> str:
    lines = []
    lines.append("=" * 60)
    lines.append(f"  {title} ({len(repos)})")
    lines.append("=" * 60)

    if not repos:
        lines.append("  No repositories found.")
        return "\n".join(lines)

    for r in repos:
        visibility = "private" if r.private else "public"
        lines.append(f"  {r.name:<40} {visibility}")
        if r.description:
            lines.append(f"      {r.description}")
    lines.append("=" * 60)
    return "\n".join(lines)


def format_repositories_markdown(repos: list[Repository], title: str = "Repositories") -> str:
    lines = []
    lines.append(f"## {title}")
    lines.append("")
    lines.append("| Repository | Visibility | Default Branch | Description |")
    lines.append("|------------|------------|----------------|-------------|")
    for r in repos:
        visibility = "private" if r.private else "public"
        lines.append(
            f"| [{r.full_name or r.name}]({r.html_url}) | {visibility} | "
            f"{r.default_branch} | {r.description or ''} |"
        )
    return "\n".join(lines)


def format_permissions_terminal(report: RepositoryAccessReport) -> str:
    lines = []
    lines.append("=" * 60)
    lines.append(f"  Access to {report.repository}")
    lines.append("=" * 60)

    lines.append("  Users:")
    if not report.user_permissions:
        lines.append("    (none)")
    for p in report.user_permissions:
        lines.append(f"    {p.user.login:<30} {p.permission.value}")

    lines.append("  Teams:")
    if not report.team_permissions:
        lines.append("    (none)")
    for p in report.team_permissions:
        lines.append(f"    {p.team.slug:<30} {p.permission.value}")

    lines.append("")
    lines.append(f"  Potential collaborators: {len(report.potential_collaborators)}")
    for u in report.potential_collaborators:
        lines.append(f"    + {u.login}")
    lines.append("=" * 60)
    return "\n".join(lines)


def format_permissions_markdown(report: RepositoryAccessReport) -> str:
    lines = []
    lines.append(f"## Access to `{report.repository}`")
    lines.append("")
    lines.append("| Type | Subject | Permission |")
    lines.append("|------|---------|------------|")
    for p in report.permissions:
        lines.append(f"| {p.type.value} | {p.subject_name} | {p.permission.value} |")
    lines.append("")

    if report.potential_collaborators:
        lines.append("### Potential Collaborators")
        lines.append("")
        for u in report.potential_collaborators:
            lines.append(f"- {u.login}")
        lines.append("")

    return "\n".join(lines)
