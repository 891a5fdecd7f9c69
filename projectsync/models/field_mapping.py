"""
Field naming between the local cache and the remote store.

The cache keeps records the way the client wrote them (camelCase), the remote
store uses snake_case columns. This module holds the single mapping table
between the two namings, the normalization applied before every write, and
the expansion of per-person role assignments into team members.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .team_member import TeamMember

logger = logging.getLogger(__name__)

# cache name -> remote column
FIELD_MAP: Dict[str, str] = {
    "projectName": "project_name",
    "projectDescription": "project_description",
    "startDate": "start_date",
    "endDate": "end_date",
    "status": "status",
    "clientName": "client_name",
    "uploadDocuments": "upload_documents",
    "projectScope": "project_scope",
    "techStack": "tech_stack",
    "techStackCustom": "tech_stack_custom",
    "leaderOfProject": "leader_of_project",
    "projectResponsibility": "project_responsibility",
    "assignedRole": "assigned_role",
    "roleAnswers": "role_answers",
    "customQuestions": "custom_questions",
    "customAnswers": "custom_answers",
    "organizationId": "organization_id",
}

REVERSE_FIELD_MAP: Dict[str, str] = {remote: local for local, remote in FIELD_MAP.items()}

# Columns an update is allowed to touch, besides team_members/assigned_to_emails.
UPDATABLE_COLUMNS = (
    "project_name",
    "project_description",
    "client_name",
    "status",
    "start_date",
    "end_date",
    "leader_of_project",
    "project_scope",
    "project_responsibility",
    "organization_id",
)


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def drop_empty(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of data without None or empty-string values."""
    return {key: value for key, value in data.items() if not is_empty(value)}


def to_remote_name(name: str) -> str:
    return FIELD_MAP.get(name, name)


def to_local_name(name: str) -> str:
    return REVERSE_FIELD_MAP.get(name, name)


def pick(data: Mapping[str, Any], local_name: str, remote_name: Optional[str] = None) -> Any:
    """Read a field under either naming; the remote name wins when both are set."""
    remote_name = remote_name or FIELD_MAP.get(local_name, local_name)
    value = data.get(remote_name)
    if value is None:
        value = data.get(local_name)
    return value


def map_attributes(data: Mapping[str, Any], columns: Iterable[str]) -> Dict[str, Any]:
    """
    Collect the given remote columns from data, accepting either naming.

    Args:
        data: Input record in cache naming, remote naming or a mix of both
        columns: Remote column names to collect

    Returns:
        Normalized dict keyed by remote column name
    """
    mapped = {column: pick(data, to_local_name(column), column) for column in columns}
    return drop_empty(mapped)


def expand_team_assignments(assignments: Any) -> List[TeamMember]:
    """
    Expand UI team assignments into one member entry per role.

    Each assignment is ``{"email": ..., "roles": [...]}``. A person with
    several roles yields several members; a person without roles yields one
    roleless member. Assignments without an email are skipped.
    """
    if not isinstance(assignments, (list, tuple)):
        return []

    members: List[TeamMember] = []
    for assignment in assignments:
        if not isinstance(assignment, Mapping):
            continue
        email = assignment.get("email")
        if is_empty(email):
            logger.warning("Skipping team assignment without an email")
            continue
        roles = assignment.get("roles")
        roles = [role for role in roles if not is_empty(role)] if isinstance(roles, (list, tuple)) else []
        if roles:
            members.extend(TeamMember(email=email, role=role) for role in roles)
        else:
            members.append(TeamMember(email=email, role=None))
    return members


def coerce_team_members(entries: Any) -> List[TeamMember]:
    """Read already-expanded ``{"email", "role"}`` entries, dropping ones without an email."""
    if not isinstance(entries, (list, tuple)):
        return []
    members = []
    for entry in entries:
        if isinstance(entry, TeamMember):
            members.append(entry)
        elif isinstance(entry, Mapping) and not is_empty(entry.get("email")):
            members.append(TeamMember.from_dict(entry))
    return members


def unique_emails(members: Iterable[TeamMember]) -> List[str]:
    seen: Dict[str, None] = {}
    for member in members:
        seen.setdefault(member.email, None)
    return list(seen)


def team_from_input(data: Mapping[str, Any]) -> Optional[List[TeamMember]]:
    """
    Derive team members from an input record.

    ``teamAssignments`` takes precedence, then ``team_members`` /
    ``teamMembers`` in member form. Returns None when the input carries no
    team information at all, so updates can leave the team untouched.
    """
    if isinstance(data.get("teamAssignments"), (list, tuple)):
        return expand_team_assignments(data["teamAssignments"])
    for key in ("team_members", "teamMembers"):
        if isinstance(data.get(key), (list, tuple)):
            return coerce_team_members(data[key])
    return None


def emails_from_input(data: Mapping[str, Any]) -> Optional[List[str]]:
    for key in ("assigned_to_emails", "assignedToEmails", "assignedTo"):
        value = data.get(key)
        if isinstance(value, (list, tuple)) and value:
            return [email for email in dict.fromkeys(value) if not is_empty(email)]
        if isinstance(value, str) and value:
            return [value]
    return None
