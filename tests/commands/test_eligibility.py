"""
Tests for CLI Eligibility Commands.

Runs the command functions against a seeded group database.
"""

from __future__ import annotations

import json

from groupgate.__main__ import main
from groupgate.commands.eligibility import (
    cmd_eligible,
    cmd_group_create,
    cmd_preview,
    cmd_validate,
)


class TestEligibleCommand:
    """Test the eligible command."""

    def test_splits_candidates(self, alliance_group, namespace):
        """Candidates are deduplicated and split by eligibility."""
        result = cmd_eligible(namespace(group_id=alliance_group.id, user_ids=[3, 1, 2, 4, 1]))

        assert result["candidates"] == [1, 2, 3, 4]
        assert result["eligible"] == [1, 2]
        assert result["ineligible"] == [3, 4]
        assert "query_timestamp" in result

    def test_unknown_group(self, cli_db, namespace):
        """Unknown groups produce a group_not_found error."""
        result = cmd_eligible(namespace(group_id=999, user_ids=[1]))

        assert result["error"] == "group_not_found"
        assert result["group_id"] == 999

    def test_main_prints_json(self, alliance_group, capsys):
        """main() prints the result and exits cleanly."""
        exit_code = main(["eligible", str(alliance_group.id), "1", "3"])

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert data["eligible"] == [1]

    def test_main_error_exit_code(self, cli_db, capsys):
        """Error results give a non-zero exit code."""
        exit_code = main(["eligible", "999", "1"])

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert data["error"] == "group_not_found"


class TestPreviewCommand:
    """Test the preview command."""

    def test_evaluates_unsaved_definition(self, cli_db, filters_file, namespace):
        """A YAML definition is evaluated without being stored."""
        result = cmd_preview(namespace(file=str(filters_file), user_ids=[1, 2, 3]))

        assert result["eligible"] == [1, 2]
        assert result["filter_type"] == "All"
        assert result["rule_count"] == 1
        assert result["filter_group_count"] == 0
        assert cli_db(lambda db: db.get_stats())["groups"] == 0

    def test_unquoted_ids(self, cli_db, tmp_path, namespace):
        """Ids written as bare YAML integers evaluate like quoted ones."""
        path = tmp_path / "bare.yaml"
        path.write_text(
            "filter_rules:\n  - {criteria: Alliance, criteria_type: Is, criteria_value: 99012770}\n",
            encoding="utf-8",
        )

        result = cmd_preview(namespace(file=str(path), user_ids=[1, 2, 3]))

        assert result["eligible"] == [1, 2]

    def test_missing_file(self, cli_db, tmp_path, namespace):
        """Missing definition files are reported."""
        result = cmd_preview(namespace(file=str(tmp_path / "absent.yaml"), user_ids=[1]))

        assert result["error"] == "file_not_found"

    def test_invalid_definition(self, cli_db, tmp_path, namespace):
        """Definitions with unknown criteria are rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text(
            "filter_rules:\n  - {criteria: Faction, criteria_type: Is, criteria_value: '1'}\n",
            encoding="utf-8",
        )

        result = cmd_preview(namespace(file=str(path), user_ids=[1]))

        assert result["error"] == "invalid_definition"

    def test_misconfigured_rule(self, cli_db, tmp_path, namespace):
        """Rules that cannot be evaluated surface as configuration errors."""
        path = tmp_path / "role.yaml"
        path.write_text(
            "filter_rules:\n  - {criteria: Role, criteria_type: Is, criteria_value: Director}\n",
            encoding="utf-8",
        )

        result = cmd_preview(namespace(file=str(path), user_ids=[1]))

        assert result["error"] == "rule_configuration_error"


class TestValidateCommand:
    """Test the validate command (offline)."""

    def test_valid_definition(self, cli_db, filters_file, namespace):
        """Stored alliances satisfy existence checks."""
        result = cmd_validate(namespace(file=str(filters_file), offline=True))

        assert result["valid"] is True
        assert result["rule_count"] == 1

    def test_unknown_alliance(self, cli_db, tmp_path, namespace):
        """Unknown alliances fail validation."""
        path = tmp_path / "unknown.yaml"
        path.write_text(
            "filter_rules:\n  - {criteria: Alliance, criteria_type: Is, criteria_value: '1'}\n",
            encoding="utf-8",
        )

        result = cmd_validate(namespace(file=str(path), offline=True))

        assert result["valid"] is False
        assert result["error"] == "rule_configuration_error"
        assert result["position"] == "filter_rules[0]"
        assert "Alliance not found: 1" in result["message"]

    def test_reserved_criteria_type(self, cli_db, tmp_path, namespace):
        """GreaterThan rules are rejected before any lookup."""
        path = tmp_path / "gt.yaml"
        path.write_text(
            "filter_rules:\n"
            "  - {criteria: Alliance, criteria_type: GreaterThan, criteria_value: '99012770'}\n",
            encoding="utf-8",
        )

        result = cmd_validate(namespace(file=str(path), offline=True))

        assert result["valid"] is False
        assert "must be either Is or IsNot" in result["message"]


class TestGroupCreateCommand:
    """Test the group-create command."""

    def _args(self, namespace, path, **overrides):
        values = {
            "file": str(path),
            "name": "Alliance Members",
            "description": None,
            "type": "Auto",
            "confidential": False,
            "leave_applications": False,
            "offline": True,
        }
        values.update(overrides)
        return namespace(**values)

    def test_creates_group(self, cli_db, filters_file, namespace):
        """A valid definition creates a stored group."""
        result = cmd_group_create(self._args(namespace, filters_file))

        assert result["status"] == "created"
        assert result["group"]["group_type"] == "Auto"
        filters = cli_db(lambda db: db.get_stats())
        assert filters["groups"] == 1
        assert filters["filter_rules"] == 1

    def test_empty_name(self, cli_db, filters_file, namespace):
        """Empty names are rejected."""
        result = cmd_group_create(self._args(namespace, filters_file, name=""))

        assert result["error"] == "invalid_group"
        assert cli_db(lambda db: db.get_stats())["groups"] == 0

    def test_invalid_rule_not_saved(self, cli_db, tmp_path, namespace):
        """Groups with invalid rules are not created."""
        path = tmp_path / "corp.yaml"
        path.write_text(
            "filter_rules:\n  - {criteria: Corporation, criteria_type: Is, criteria_value: abc}\n",
            encoding="utf-8",
        )

        result = cmd_group_create(self._args(namespace, path))

        assert result["error"] == "rule_configuration_error"
        assert cli_db(lambda db: db.get_stats())["groups"] == 0
