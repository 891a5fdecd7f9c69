from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from .classification import ClassificationTag
from .field_mapping import (
    coerce_team_members,
    drop_empty,
    is_empty,
    to_local_name,
    to_remote_name,
    unique_emails,
)
from .team_member import TeamMember

# Remote columns that map onto ProjectRecord fields rather than attributes.
_REMOTE_RESERVED = {
    "id", "uuid", "custom_uuid", "project_field", "project_code",
    "team_members", "assigned_to_emails", "created_at", "updated_at",
}

_CACHE_RESERVED = {
    "permanentId", "temporaryId", "classificationTag", "structuredIdentifier",
    "teamMembers", "assignedEmails", "createdAt", "updatedAt",
}


@dataclass
class ProjectRecord:
    temporary_id: Optional[str] = None
    permanent_id: Optional[str] = None
    classification_tag: ClassificationTag = ClassificationTag.OTHER
    structured_identifier: Optional[str] = None
    team_members: List[TeamMember] = field(default_factory=list)
    assigned_emails: List[str] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def lookup_id(self) -> Optional[str]:
        """Permanent id once the remote store confirmed the record, temporary id before."""
        return self.permanent_id or self.temporary_id

    @property
    def is_synced(self) -> bool:
        return bool(self.permanent_id)

    def ids(self) -> Set[str]:
        return {value for value in (self.permanent_id, self.temporary_id) if value}

    def matches(self, record_id: Optional[str]) -> bool:
        return bool(record_id) and record_id in self.ids()

    def set_team(self, members: List[TeamMember]) -> None:
        self.team_members = list(members)
        self.assigned_emails = unique_emails(self.team_members)

    def apply_patch(self, patch: Mapping[str, Any]) -> None:
        """
        Apply a normalized update payload keyed by remote column names.

        The structured identifier and both ids are never touched by a patch.
        """
        for key, value in patch.items():
            if key == "team_members":
                self.team_members = coerce_team_members(value)
            elif key == "assigned_to_emails":
                self.assigned_emails = list(value)
            elif key in _REMOTE_RESERVED:
                continue
            else:
                self.attributes[key] = value

    def to_remote_payload(self) -> Dict[str, Any]:
        payload = dict(self.attributes)
        payload.update({
            "id": self.permanent_id,
            "custom_uuid": self.temporary_id,
            "project_field": self.classification_tag.value,
            "project_code": self.structured_identifier,
            "team_members": [member.to_dict() for member in self.team_members],
            "assigned_to_emails": list(self.assigned_emails),
        })
        return drop_empty(payload)

    @classmethod
    def from_remote(cls, row: Mapping[str, Any]) -> "ProjectRecord":
        members = coerce_team_members(row.get("team_members"))
        emails = row.get("assigned_to_emails")
        return cls(
            temporary_id=row.get("custom_uuid") or None,
            permanent_id=_as_id(row.get("id") or row.get("uuid")),
            classification_tag=ClassificationTag.parse(row.get("project_field")),
            structured_identifier=row.get("project_code") or None,
            team_members=members,
            assigned_emails=list(emails) if isinstance(emails, list) else unique_emails(members),
            attributes={k: v for k, v in row.items() if k not in _REMOTE_RESERVED},
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_cache_dict(self) -> Dict[str, Any]:
        data = {to_local_name(key): value for key, value in self.attributes.items()}
        data.update({
            "permanentId": self.permanent_id,
            "temporaryId": self.temporary_id,
            "classificationTag": self.classification_tag.value,
            "structuredIdentifier": self.structured_identifier,
            "teamMembers": [member.to_dict() for member in self.team_members],
            "assignedEmails": list(self.assigned_emails),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })
        return data

    @classmethod
    def from_cache_dict(cls, data: Mapping[str, Any]) -> "ProjectRecord":
        attributes = {
            to_remote_name(key): value
            for key, value in data.items()
            if key not in _CACHE_RESERVED and not is_empty(value)
        }
        return cls(
            temporary_id=data.get("temporaryId"),
            permanent_id=data.get("permanentId"),
            classification_tag=ClassificationTag.parse(data.get("classificationTag")),
            structured_identifier=data.get("structuredIdentifier"),
            team_members=coerce_team_members(data.get("teamMembers")),
            assigned_emails=list(data.get("assignedEmails") or []),
            attributes=attributes,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


def _as_id(value: Any) -> Optional[str]:
    if is_empty(value):
        return None
    return str(value)
