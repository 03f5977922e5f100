#!/usr/bin/env python3

import argparse
import json
import logging
import os
import sys

from aggregator import OrgDataAggregator
from config_loader import load_config
from errors import ConfigurationError, InvalidArgumentError, UpstreamError
from formatters import (
    format_members_markdown,
    format_members_terminal,
    format_permissions_markdown,
    format_permissions_terminal,
    format_repositories_markdown,
    format_repositories_terminal,
    format_team_detail_terminal,
    format_team_members_terminal,
    format_teams_markdown,
    format_teams_terminal,
)
from validators import validate_repo_name, validate_username
from utils import setup_logging


UPSTREAM_MESSAGES = {
    "not_found": "Not found on GitHub",
    "conflict": "Already exists or is invalid",
    "unauthorized": "Unauthorized: the token lacks access to this organization",
    "rate_limited": "GitHub API rate limit exceeded",
    "network": "Could not reach GitHub",
    "upstream": "GitHub API error",
}

PERMISSION_CHOICES = ["read", "triage", "write", "maintain", "admin", "pull", "push"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage members, teams and repository access of a GitHub organization"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to console.yml (default: ./config/console.yml if present)",
    )
    parser.add_argument(
        "--format",
        choices=["terminal", "markdown", "json"],
        default="terminal",
        help="Output format",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write output to file instead of stdout",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="resource", required=True)

    # members
    members = commands.add_parser("members", help="Organization members")
    members_cmd = members.add_subparsers(dest="action", required=True)
    members_cmd.add_parser("list", help="List members with role and state")
    p = members_cmd.add_parser("add", help="Invite a user or update their role")
    p.add_argument("username")
    p.add_argument("--role", choices=["admin", "member"], default="member")
    p = members_cmd.add_parser("remove", help="Remove a user from the organization")
    p.add_argument("username")
    p = members_cmd.add_parser("set-role", help="Change a member's role")
    p.add_argument("username")
    p.add_argument("role", choices=["admin", "member"])

    # teams
    teams = commands.add_parser("teams", help="Organization teams")
    teams_cmd = teams.add_subparsers(dest="action", required=True)
    teams_cmd.add_parser("list", help="List teams")
    p = teams_cmd.add_parser("show", help="Show a team with member and repository counts")
    p.add_argument("slug")
    p = teams_cmd.add_parser("create", help="Create a team")
    p.add_argument("name")
    p.add_argument("--description", default=None)
    p.add_argument("--privacy", choices=["closed", "secret"], default="closed")
    p = teams_cmd.add_parser("update", help="Update a team")
    p.add_argument("slug")
    p.add_argument("--name", default=None)
    p.add_argument("--description", default=None)
    p.add_argument("--privacy", choices=["closed", "secret"], default=None)
    p.add_argument("--permission", choices=PERMISSION_CHOICES, default=None)
    p = teams_cmd.add_parser("delete", help="Delete a team")
    p.add_argument("slug")

    # team-members
    team_members = commands.add_parser("team-members", help="Team membership")
    team_members_cmd = team_members.add_subparsers(dest="action", required=True)
    p = team_members_cmd.add_parser("list", help="List team members with role")
    p.add_argument("slug")
    p = team_members_cmd.add_parser("add", help="Add a user to a team or change their role")
    p.add_argument("slug")
    p.add_argument("username")
    p.add_argument("--role", choices=["member", "maintainer"], default="member")
    p = team_members_cmd.add_parser("remove", help="Remove a user from a team")
    p.add_argument("slug")
    p.add_argument("username")

    # team-repos
    team_repos = commands.add_parser("team-repos", help="Repositories granted to a team")
    team_repos_cmd = team_repos.add_subparsers(dest="action", required=True)
    p = team_repos_cmd.add_parser("list", help="List a team's repositories")
    p.add_argument("slug")

    # repos
    repos = commands.add_parser("repos", help="Organization repositories")
    repos_cmd = repos.add_subparsers(dest="action", required=True)
    p = repos_cmd.add_parser("list", help="List repositories, most recently updated first")
    p.add_argument(
        "--owner-only",
        action="store_true",
        help="Only repositories without any team grants",
    )
    p = repos_cmd.add_parser("show", help="Show one repository")
    p.add_argument("repo")
    p = repos_cmd.add_parser("permissions", help="User and team grants on a repository")
    p.add_argument("repo")
    p = repos_cmd.add_parser("grant", help="Grant a user or team access to a repository")
    p.add_argument("repo")
    p.add_argument("subject_type", choices=["user", "team"])
    p.add_argument("name")
    p.add_argument("permission", choices=PERMISSION_CHOICES)
    p = repos_cmd.add_parser("revoke", help="Revoke a user's or team's access")
    p.add_argument("repo")
    p.add_argument("subject_type", choices=["user", "team"])
    p.add_argument("name")
    p = repos_cmd.add_parser("describe", help="Set a repository description")
    p.add_argument("repo")
    p.add_argument("description")
    p = repos_cmd.add_parser("rename", help="Rename a repository")
    p.add_argument("repo")
    p.add_argument("new_name")

    return parser


def run_command(args, aggregator: OrgDataAggregator):
    """Dispatch one parsed command.

    Returns a (payload, terminal_text, markdown_text) tuple where payload
    is JSON-serializable.
    """
    key = (args.resource, args.action)

    if key == ("members", "list"):
        members = aggregator.list_members()
        return (
            [m.to_dict() for m in members],
            format_members_terminal(members),
            format_members_markdown(members),
        )
    if key == ("members", "add"):
        aggregator.add_member(validate_username(args.username), args.role)
        return _done(f"Set {args.username} as {args.role}")
    if key == ("members", "remove"):
        aggregator.remove_member(validate_username(args.username))
        return _done(f"Removed {args.username} from {aggregator.org_name}")
    if key == ("members", "set-role"):
        aggregator.update_member_role(validate_username(args.username), args.role)
        return _done(f"Updated {args.username} role to {args.role}")

    if key == ("teams", "list"):
        teams = aggregator.list_teams()
        return [t.to_dict() for t in teams], format_teams_terminal(teams), format_teams_markdown(teams)
    if key == ("teams", "show"):
        team = aggregator.get_team_detail(args.slug)
        text = format_team_detail_terminal(team)
        return team.to_dict(), text, format_teams_markdown([team])
    if key == ("teams", "create"):
        team = aggregator.create_team(args.name, args.description, args.privacy)
        return team.to_dict(), f"Created team {team.name} ({team.slug})", f"Created team `{team.slug}`"
    if key == ("teams", "update"):
        fields = {
            "name": args.name,
            "description": args.description,
            "privacy": args.privacy,
            "permission": args.permission,
        }
        team = aggregator.update_team(args.slug, fields)
        return team.to_dict(), f"Updated team {team.slug}", f"Updated team `{team.slug}`"
    if key == ("teams", "delete"):
        aggregator.delete_team(args.slug)
        return _done(f"Deleted team {args.slug}")

    if key == ("team-members", "list"):
        members = aggregator.list_team_members(args.slug)
        text = format_team_members_terminal(members)
        return [m.to_dict() for m in members], text, text
    if key == ("team-members", "add"):
        aggregator.add_team_member(args.slug, validate_username(args.username), args.role)
        return _done(f"Set {args.username} as {args.role} of {args.slug}")
    if key == ("team-members", "remove"):
        aggregator.remove_team_member(args.slug, validate_username(args.username))
        return _done(f"Removed {args.username} from {args.slug}")

    if key == ("team-repos", "list"):
        repos = aggregator.list_team_repositories(args.slug)
        title = f"Repositories of {args.slug}"
        return (
            [r.to_dict() for r in repos],
            format_repositories_terminal(repos, title),
            format_repositories_markdown(repos, title),
        )

    if key == ("repos", "list"):
        if args.owner_only:
            repos = aggregator.list_owner_only_repositories()
            title = "Owner-only Repositories"
        else:
            repos = aggregator.list_org_repositories()
            title = "Repositories"
        return (
            [r.to_dict() for r in repos],
            format_repositories_terminal(repos, title),
            format_repositories_markdown(repos, title),
        )
    if key == ("repos", "show"):
        repo = aggregator.get_repository(args.repo)
        return repo.to_dict(), format_repositories_terminal([repo]), format_repositories_markdown([repo])
    if key == ("repos", "permissions"):
        report = aggregator.get_repository_permissions(args.repo)
        return report.to_dict(), format_permissions_terminal(report), format_permissions_markdown(report)
    if key == ("repos", "grant"):
        aggregator.set_repository_permission(args.repo, args.subject_type, args.name, args.permission)
        return _done(f"Granted {args.subject_type} {args.name} {args.permission} on {args.repo}")
    if key == ("repos", "revoke"):
        aggregator.remove_repository_permission(args.repo, args.subject_type, args.name)
        return _done(f"Revoked {args.subject_type} {args.name} access to {args.repo}")
    if key == ("repos", "describe"):
        repo = aggregator.update_repository_description(args.repo, args.description)
        return repo.to_dict(), f"Updated description of {repo.name}", f"Updated description of `{repo.name}`"
    if key == ("repos", "rename"):
        new_name = validate_repo_name(args.new_name)
        repo = aggregator.rename_repository(args.repo, new_name)
        return repo.to_dict(), f"Renamed {args.repo} to {repo.name}", f"Renamed `{args.repo}` to `{repo.name}`"

    raise InvalidArgumentError(f"Unknown command: {args.resource} {args.action}")


def _done(message: str):
    return {"success": True, "message": message}, message, message


def describe_error(error: UpstreamError) -> str:
    """Map an upstream failure to a message for the operator."""
    message = UPSTREAM_MESSAGES.get(error.kind, UPSTREAM_MESSAGES["upstream"])
    if error.kind == "rate_limited" and error.rate_limit_reset:
        message += f" (resets at {error.rate_limit_reset})"
    return f"{message}: {error}"


def main(argv=None, aggregator_factory=OrgDataAggregator.from_config) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging("org_console", verbose=args.verbose, log_to_file=False)

    try:
        config = load_config(args.config)
        aggregator = aggregator_factory(config)
        payload, terminal_text, markdown_text = run_command(args, aggregator)
    except (ConfigurationError, InvalidArgumentError) as e:
        logging.error(str(e))
        _output({"success": False, "error": str(e)}, str(e), str(e), args)
        return 2
    except UpstreamError as e:
        message = describe_error(e)
        logging.error(message)
        _output({"success": False, "error": e.to_dict()}, message, message, args)
        return 1

    audit = getattr(aggregator, "audit_logger", None)
    if audit and audit.records:
        logging.info(audit.get_summary())

    _output(payload, terminal_text, markdown_text, args)
    return 0


def _output(payload, terminal_text, markdown_text, args) -> None:
    outputs = {
        "terminal": terminal_text,
        "markdown": markdown_text,
        "json": json.dumps(payload, indent=2),
    }
    output = outputs[args.format]

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        logging.info(f"Output written to {args.output}")
    else:
        print(output)

    summary_file = os.environ.get("GITHUB_STEP_SUMMARY")
    if summary_file:
        with open(summary_file, "a") as f:
            f.write(markdown_text + "\n")


if __name__ == "__main__":
    sys.exit(main())
