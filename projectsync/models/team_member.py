from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class TeamMember:
    email: str
    role: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "role": self.role}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamMember":
        return cls(email=data["email"], role=data.get("role") or None)
