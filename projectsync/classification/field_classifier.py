"""
Project field classification from team roles and tech stack.

Rules are checked in priority order and the first match wins. A role that
looks like AI work outranks anything the tech stack says, so a React project
staffed with an AI engineer is still an AI project.
"""
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from ..models.classification import ClassificationTag

AI_ROLE_KEYWORDS = ("ai", "ai engineer", "ml", "machine learning", "data scientist", "nlp")

TECH_RULES: Tuple[Tuple[ClassificationTag, Tuple[str, ...]], ...] = (
    (ClassificationTag.AI, (
        "ai", "machine learning", "artificial intelligence", "tensorflow", "pytorch",
        "neural", "deep learning", "openai", "llm", "bert", "gpt",
    )),
    (ClassificationTag.DATA_SCIENCE, (
        "python", "pandas", "numpy", "jupyter", "scikit", "r language", "big data",
    )),
    (ClassificationTag.MOBILE_DEV, (
        "react native", "flutter", "ios", "android", "swift", "kotlin", "expo",
    )),
    (ClassificationTag.DEVOPS, (
        "jenkins", "gitlab", "ci/cd", "devops", "kubernetes", "docker", "terraform", "aws", "azure",
    )),
    (ClassificationTag.UI_UX, (
        "figma", "adobe", "sketch", "ui/ux", "design",
    )),
    (ClassificationTag.WEB_DEV, (
        "react", "angular", "vue", "html", "css", "javascript", "typescript",
        "node", "express", "next.js", "nuxt", "svelte",
    )),
    (ClassificationTag.CLOUD_COMPUTING, (
        "cloud", "gcp", "serverless",
    )),
)


def _normalize(tokens: Iterable[Any]) -> List[str]:
    if not isinstance(tokens, (list, tuple, set, frozenset)):
        return []
    return [token.strip().lower() for token in tokens if isinstance(token, str) and token.strip()]


def _contains(tokens: Sequence[str], keywords: Sequence[str]) -> bool:
    return any(keyword in token for token in tokens for keyword in keywords)


def classify(roles: Iterable[str], tech_stack: Iterable[str]) -> ClassificationTag:
    """
    Map team roles and tech stack to a single classification tag.

    Args:
        roles: Role names of the people assigned to the project
        tech_stack: Technologies the project uses

    Returns:
        The first matching ClassificationTag, OTHER when nothing matches
    """
    if _contains(_normalize(roles), AI_ROLE_KEYWORDS):
        return ClassificationTag.AI

    tech = _normalize(tech_stack)
    for tag, keywords in TECH_RULES:
        if _contains(tech, keywords):
            return tag
    return ClassificationTag.OTHER


def roles_from_input(data: Mapping[str, Any]) -> List[str]:
    """Collect role names from UI team assignments and stored team members."""
    roles: List[str] = []

    assignments = data.get("teamAssignments")
    if isinstance(assignments, (list, tuple)):
        for member in assignments:
            if not isinstance(member, Mapping):
                continue
            if isinstance(member.get("role"), str):
                roles.append(member["role"])
            if isinstance(member.get("roles"), (list, tuple)):
                roles.extend(role for role in member["roles"] if isinstance(role, str))

    for key in ("team_members", "teamMembers"):
        members = data.get(key)
        if isinstance(members, (list, tuple)):
            for member in members:
                role = member.get("role") if isinstance(member, Mapping) else getattr(member, "role", None)
                if isinstance(role, str):
                    roles.append(role)

    return roles


def tech_stack_from_input(data: Mapping[str, Any]) -> List[str]:
    tech = data.get("tech_stack")
    if tech is None:
        tech = data.get("techStack")
    return list(tech) if isinstance(tech, (list, tuple)) else []


def classify_input(data: Mapping[str, Any]) -> ClassificationTag:
    """Classify a raw input record in either naming."""
    return classify(roles_from_input(data), tech_stack_from_input(data))
