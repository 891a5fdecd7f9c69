from enum import Enum


class ClassificationTag(str, Enum):
    """Project category derived from team roles and tech stack."""

    AI = "AI"
    DATA_SCIENCE = "DATA_SCIENCE"
    MOBILE_DEV = "MOBILE_DEV"
    DEVOPS = "DEVOPS"
    UI_UX = "UI/UX"
    WEB_DEV = "WEB_DEV"
    CLOUD_COMPUTING = "CLOUD_COMPUTING"
    OTHER = "OTHER"

    @property
    def code(self) -> str:
        """Two-letter code used inside structured identifiers."""
        return _CODES[self]

    @classmethod
    def parse(cls, value) -> "ClassificationTag":
        """Read a tag from its stored value, falling back to OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


_CODES = {
    ClassificationTag.AI: "AI",
    ClassificationTag.DATA_SCIENCE: "DS",
    ClassificationTag.MOBILE_DEV: "MD",
    ClassificationTag.DEVOPS: "DO",
    ClassificationTag.UI_UX: "UX",
    ClassificationTag.WEB_DEV: "WD",
    ClassificationTag.CLOUD_COMPUTING: "CC",
    ClassificationTag.OTHER: "OT",
}
