"""Tests for commit status de-duplication and aggregation (no HTTP)."""

from __future__ import annotations

from tgit_bridge.platform.tgit.models import BranchStatus, StatusEntry
from tgit_bridge.platform.tgit.status import (
    compute_branch_status,
    find_status_check,
    uniq_branch_statuses,
)


def _entry(state: str, **kw) -> StatusEntry:
    return StatusEntry(state=state, name=kw.pop("name", "ci"), **kw)


class TestComputeBranchStatus:
    def test_failure_wins(self):
        entries = [_entry("success"), _entry("failure")]
        assert compute_branch_status(entries) is BranchStatus.RED

    def test_pending_is_yellow(self):
        entries = [_entry("success"), _entry("pending")]
        assert compute_branch_status(entries) is BranchStatus.YELLOW

    def test_all_success_is_green(self):
        assert compute_branch_status([_entry("success"), _entry("success")]) is BranchStatus.GREEN

    def test_empty_is_yellow(self):
        assert compute_branch_status([]) is BranchStatus.YELLOW

    def test_allowed_failure_ignored(self):
        entries = [_entry("failure", allow_failure=True)]
        assert compute_branch_status(entries) is BranchStatus.GREEN

    def test_error_is_red(self):
        assert compute_branch_status([_entry("error")]) is BranchStatus.RED

    def test_red_is_sticky(self):
        entries = [_entry("failure", name="a"), _entry("pending", name="b")]
        assert compute_branch_status(entries) is BranchStatus.RED

    def test_red_overrides_yellow(self):
        entries = [_entry("pending", name="a"), _entry("failure", name="b")]
        assert compute_branch_status(entries) is BranchStatus.RED

    def test_unknown_state_is_yellow(self):
        assert compute_branch_status([_entry("skipped")]) is BranchStatus.YELLOW

    def test_later_report_for_same_pipeline_wins(self):
        entries = [
            _entry(
                "failure",
                target_url="https://ci/pipelines/1",
                updated_at="2024-01-01T10:00:00+08:00",
            ),
            _entry(
                "success",
                target_url="https://ci/pipelines/1",
                updated_at="2024-01-01T10:05:00+08:00",
            ),
        ]
        assert compute_branch_status(entries) is BranchStatus.GREEN

    def test_later_report_wins_regardless_of_order(self):
        entries = [
            _entry("success", target_url="https://ci/p/1", updated_at="2024-01-01T10:05:00Z"),
            _entry("failure", target_url="https://ci/p/1", updated_at="2024-01-01T10:00:00Z"),
        ]
        assert compute_branch_status(entries) is BranchStatus.GREEN


class TestUniqBranchStatuses:
    def test_entries_without_url_kept(self):
        entries = [_entry("success", name="a"), _entry("failure", name="b")]
        assert len(uniq_branch_statuses(entries)) == 2

    def test_entries_without_updated_at_kept(self):
        entries = [
            _entry("success", target_url="https://ci/p/1"),
            _entry("failure", target_url="https://ci/p/1"),
        ]
        assert len(uniq_branch_statuses(entries)) == 2

    def test_distinct_pipelines_kept(self):
        entries = [
            _entry("success", target_url="https://ci/p/1", updated_at="2024-01-01T10:00:00Z"),
            _entry("pending", target_url="https://ci/p/2", updated_at="2024-01-01T10:00:00Z"),
        ]
        states = sorted(e.state for e in uniq_branch_statuses(entries))
        assert states == ["pending", "success"]

    def test_offsets_compared_as_instants(self):
        # 10:00+08:00 is 02:00Z, earlier than 03:00Z
        entries = [
            _entry("success", target_url="https://ci/p/1", updated_at="2024-01-01T03:00:00Z"),
            _entry("failure", target_url="https://ci/p/1", updated_at="2024-01-01T10:00:00+08:00"),
        ]
        [latest] = uniq_branch_statuses(entries)
        assert latest.state == "success"


class TestFindStatusCheck:
    def test_match(self):
        entries = [_entry("success", name="renovate/stability-days"), _entry("failure", name="ci")]
        assert find_status_check(entries, "renovate/stability-days") is BranchStatus.GREEN

    def test_no_match(self):
        assert find_status_check([_entry("success", name="ci")], "other") is None

    def test_unknown_state_is_yellow(self):
        assert find_status_check([_entry("queued", name="ci")], "ci") is BranchStatus.YELLOW


class TestStatusEntrySchema:
    def test_extra_fields_ignored(self):
        entry = StatusEntry.model_validate(
            {"state": "success", "name": "ci", "id": 7, "description": "ok"}
        )
        assert entry.allow_failure is False
        assert entry.target_url is None


class TestNullFields:
    def test_null_state_is_yellow(self):
        entries = [_entry("success"), StatusEntry.model_validate({"name": "odd", "state": None})]
        assert compute_branch_status(entries) is BranchStatus.YELLOW

    def test_null_name_and_allow_failure_default(self):
        entry = StatusEntry.model_validate({"state": "success", "name": None, "allow_failure": None})
        assert entry.name == ""
        assert entry.allow_failure is False
        assert compute_branch_status([entry]) is BranchStatus.GREEN

    def test_null_allow_failure_still_counts(self):
        entry = StatusEntry.model_validate({"state": "failure", "allow_failure": None})
        assert compute_branch_status([entry]) is BranchStatus.RED

    def test_non_string_state_is_yellow(self):
        entry = StatusEntry.model_validate({"state": 3, "name": "ci"})
        assert compute_branch_status([entry]) is BranchStatus.YELLOW

    def test_find_check_with_null_state(self):
        entry = StatusEntry.model_validate({"state": None, "name": "ci"})
        assert find_status_check([entry], "ci") is BranchStatus.YELLOW
