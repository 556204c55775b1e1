"""Tests for featureflow.lib.taskparse module."""

from featureflow.docs.models import FeatureRequest, RequirementsDocument
from featureflow.lib.taskparse import derive_task_items, extract_requirements, parse_checklist
from featureflow.lib.templates import render_requirements


PRD_BODY = """# PRD: Login Form

## Goals

1. Not a requirement

## Functional Requirements

<!--
1. Commented out
-->
1. The system must validate the email address.
2) The system must lock the account after 5 failures.

## Non-Goals (Out of Scope)

1. Social login
"""


class TestExtractRequirements:
    def test_only_functional_section(self):
        assert extract_requirements(PRD_BODY) == [
            "The system must validate the email address.",
            "The system must lock the account after 5 failures.",
        ]

    def test_no_section(self):
        assert extract_requirements("# PRD\n\nJust prose.\n") == []

    def test_rendered_template(self):
        body = render_requirements(FeatureRequest("Login Form", description="- Remember me"))
        assert extract_requirements(body) == ["Remember me"]


class TestDeriveTaskItems:
    def test_parent_and_subtasks(self):
        prd = RequirementsDocument(slug="login-form", feature_name="Login Form", body=PRD_BODY)
        items = derive_task_items(prd)
        assert [task_id for task_id, _ in items] == ["1.0", "1.1", "1.2", "2.0", "2.1", "2.2"]
        assert items[4] == ("2.1", "Implement: The system must lock the account after 5 failures.")

    def test_no_requirements(self):
        prd = RequirementsDocument(slug="login-form", feature_name="Login Form", body="prose\n")
        assert derive_task_items(prd) == [("1.0", "Implement Login Form")]


class TestParseChecklist:
    def test_entries(self):
        text = "# Tasks\n\n- [ ] 1.0 Build it\n  - [x] 1.1 Write code\n* [X] 2.0 Ship\n- not a task\n"
        entries = parse_checklist(text)
        assert [(e.id, e.done) for e in entries] == [("1.0", False), ("1.1", True), ("2.0", True)]
        assert entries[1].description == "Write code"
        assert entries[1].line_number == 4
