"""
Tests for project field classification.
"""
import pytest

from projectsync.classification.field_classifier import (
    classify,
    classify_input,
    roles_from_input,
    tech_stack_from_input,
)
from projectsync.models.classification import ClassificationTag


class TestClassify:
    """Test cases for classify()."""

    @pytest.mark.unit
    def test_ai_role_outranks_tech_stack(self):
        assert classify(["AI Engineer"], ["React", "Tailwind"]) is ClassificationTag.AI

    @pytest.mark.unit
    @pytest.mark.parametrize("tech", [["AI"], ["Gen AI Chatbot"], ["Tailwind"]])
    def test_tech_item_containing_ai_is_ai(self, tech):
        """The ai keyword matches by substring in tech items as it does in roles."""
        assert classify([], tech) is ClassificationTag.AI

    @pytest.mark.unit
    def test_unknown_tech_is_other(self):
        assert classify([], ["COBOL"]) is ClassificationTag.OTHER

    @pytest.mark.unit
    def test_empty_inputs_are_other(self):
        assert classify([], []) is ClassificationTag.OTHER

    @pytest.mark.unit
    @pytest.mark.parametrize("tech,expected", [
        (["PyTorch"], ClassificationTag.AI),
        (["Pandas", "Jupyter"], ClassificationTag.DATA_SCIENCE),
        (["Flutter"], ClassificationTag.MOBILE_DEV),
        (["Kubernetes"], ClassificationTag.DEVOPS),
        (["Figma"], ClassificationTag.UI_UX),
        (["Vue", "CSS"], ClassificationTag.WEB_DEV),
        (["GCP"], ClassificationTag.CLOUD_COMPUTING),
    ])
    def test_tech_rules(self, tech, expected):
        assert classify([], tech) is expected

    @pytest.mark.unit
    def test_first_rule_wins(self):
        """React Native matches mobile before the plain web rule."""
        assert classify([], ["React Native"]) is ClassificationTag.MOBILE_DEV
        assert classify([], ["Python", "React"]) is ClassificationTag.DATA_SCIENCE

    @pytest.mark.unit
    def test_matching_is_case_insensitive(self):
        assert classify(["MACHINE LEARNING lead"], []) is ClassificationTag.AI
        assert classify([], ["  docker  "]) is ClassificationTag.DEVOPS

    @pytest.mark.unit
    def test_non_string_tokens_ignored(self):
        assert classify([None, 3], [None, {"name": "React"}]) is ClassificationTag.OTHER

    @pytest.mark.unit
    def test_non_list_inputs_ignored(self):
        assert classify(None, "React") is ClassificationTag.OTHER


class TestInputExtraction:
    """Test cases for reading roles and tech stack from raw input."""

    @pytest.mark.unit
    def test_roles_from_assignments_and_members(self):
        data = {
            "teamAssignments": [
                {"email": "a@x.com", "roles": ["Lead", "NLP Researcher"]},
                {"email": "b@x.com", "role": "Designer"},
                "not-a-dict",
            ],
            "team_members": [{"email": "c@x.com", "role": "QA"}, {"email": "d@x.com"}],
        }
        assert roles_from_input(data) == ["Lead", "NLP Researcher", "Designer", "QA"]

    @pytest.mark.unit
    def test_tech_stack_either_naming(self):
        assert tech_stack_from_input({"techStack": ["Vue"]}) == ["Vue"]
        assert tech_stack_from_input({"tech_stack": ["Go"], "techStack": ["Vue"]}) == ["Go"]
        assert tech_stack_from_input({}) == []

    @pytest.mark.unit
    def test_classify_input(self):
        data = {
            "techStack": ["React", "Tailwind"],
            "teamAssignments": [{"email": "a@x.com", "roles": ["AI", "Lead"]}],
        }
        assert classify_input(data) is ClassificationTag.AI


class TestClassificationTag:
    """Test cases for ClassificationTag codes and parsing."""

    @pytest.mark.unit
    def test_codes(self):
        assert ClassificationTag.AI.code == "AI"
        assert ClassificationTag.UI_UX.code == "UX"
        assert ClassificationTag.OTHER.code == "OT"

    @pytest.mark.unit
    def test_parse_stored_value(self):
        assert ClassificationTag.parse("UI/UX") is ClassificationTag.UI_UX
        assert ClassificationTag.parse("WEB_DEV") is ClassificationTag.WEB_DEV

    @pytest.mark.unit
    def test_parse_unknown_falls_back_to_other(self):
        assert ClassificationTag.parse("QUANTUM") is ClassificationTag.OTHER
        assert ClassificationTag.parse(None) is ClassificationTag.OTHER
