"""Unit tests for progress_engine.py ProgressEngine.

Progress is recomputed for every record as of that record's own date.
"""

import copy
from unittest.mock import patch

from custom_components.routine_cadence.engines.progress_engine import ProgressEngine

from tests.conftest import SECTION, make_config, make_record


def gym_week(required_count: int = 3) -> list[dict]:
    """Records of the week of 2024-01-01 plus the following Monday."""
    config = {"gym": make_config("weekly", required_count)}
    return [
        make_record("2024-01-02", {"gym": True}, config),
        make_record("2024-01-04", {"gym": True}, config),
        make_record("2024-01-05", {"gym": False}, config),
        make_record("2024-01-08", {"gym": False}, config),
    ]


def gym_config(record: dict) -> dict:
    """Return the gym config of a record."""
    return record["config"][SECTION]["gym"]


class TestReconcileRecords:
    """Test canonical progress recomputation."""

    def test_progress_is_anchored_to_each_record(self) -> None:
        """Each record reports the progress of its own week, as of its date."""
        reconciled = ProgressEngine.reconcile_records(gym_week())

        assert [gym_config(r)["current_progress"] for r in reconciled] == [1, 2, 2, 0]
        assert gym_config(reconciled[2])["period_start"] == "2024-01-01"
        assert gym_config(reconciled[2])["period_end"] == "2024-01-07"
        assert gym_config(reconciled[2])["last_completion"] == "2024-01-04"
        assert gym_config(reconciled[3])["period_start"] == "2024-01-08"
        assert gym_config(reconciled[3])["last_completion"] is None

    def test_progress_is_clamped_to_required(self) -> None:
        """Counters never exceed the quota."""
        reconciled = ProgressEngine.reconcile_records(gym_week(required_count=1))

        assert gym_config(reconciled[2])["current_progress"] == 1

    def test_historical_completions_count_once(self) -> None:
        """Historical maps and live flags for the same day dedup."""
        config = {"gym": make_config("weekly", 3)}
        records = [
            make_record("2024-01-02", {"gym": True}, config),
            make_record(
                "2024-01-05",
                {"gym": False},
                config,
                historical={"2024-01-02": {"gym": True}, "2024-01-03": {"gym": True}},
            ),
        ]

        reconciled = ProgressEngine.reconcile_records(records)

        assert gym_config(reconciled[1])["current_progress"] == 2

    def test_inputs_are_not_mutated(self) -> None:
        """Reconciliation returns new records."""
        records = gym_week()
        original = copy.deepcopy(records)

        ProgressEngine.reconcile_records(records)

        assert records == original

    def test_invalid_config_keeps_stored_values(self) -> None:
        """Uninterpretable items are skipped, others still reconcile."""
        config = {
            "gym": make_config("weekly", 3),
            "odd": make_config("yearly", 1, current_progress=7),
        }
        records = [make_record("2024-01-02", {"gym": True, "odd": True}, config)]

        reconciled = ProgressEngine.reconcile_records(records)

        assert reconciled[0]["config"][SECTION]["odd"]["current_progress"] == 7
        assert gym_config(reconciled[0])["current_progress"] == 1

    def test_null_containers_do_not_stop_reconciliation(self) -> None:
        """Records with null sections or history still reconcile, and so do the rest."""
        broken = make_record("2024-01-03", config={"gym": make_config("weekly", 3)})
        broken["sections"] = None
        broken["historical_completions"] = None
        records = [*gym_week(), broken]

        reconciled = ProgressEngine.reconcile_records(records)

        assert [gym_config(r)["current_progress"] for r in reconciled] == [1, 2, 2, 0, 1]
        assert reconciled[4]["completion"] == 0.0

    def test_unexpected_errors_skip_only_that_item(self) -> None:
        """Any failure while reconciling one item is logged and skipped."""
        config = {
            "gym": make_config("weekly", 3),
            "odd": make_config("weekly", 1, current_progress=7),
        }
        records = [make_record("2024-01-02", {"gym": True, "odd": True}, config)]
        real = ProgressEngine.calculate_item_progress

        def _calculate(records, section, item_id, config, reference_day):
            if item_id == "odd":
                raise TypeError("unsupported operand")
            return real(records, section, item_id, config, reference_day)

        with patch.object(
            ProgressEngine, "calculate_item_progress", side_effect=_calculate
        ):
            reconciled = ProgressEngine.reconcile_records(records)

        assert reconciled[0]["config"][SECTION]["odd"]["current_progress"] == 7
        assert gym_config(reconciled[0])["current_progress"] == 1

    def test_completion_fraction_is_refreshed(self) -> None:
        """Each record's completion fraction is recomputed."""
        records = [make_record("2024-01-02", {"gym": True, "run": False})]

        reconciled = ProgressEngine.reconcile_records(records)

        assert reconciled[0]["completion"] == 0.5


class TestIsProgressCurrent:
    """Test the stored-window check."""

    def test_inside_and_outside_window(self) -> None:
        """Days inside the stored window are current."""
        config = {"period_start": "2024-01-01", "period_end": "2024-01-07"}

        assert ProgressEngine.is_progress_current(config, "2024-01-07")
        assert not ProgressEngine.is_progress_current(config, "2024-01-08")

    def test_missing_bounds_are_not_current(self) -> None:
        """Without bounds the counter must be recomputed."""
        assert not ProgressEngine.is_progress_current({}, "2024-01-05")


class TestRoutineStats:
    """Test section statistics and completion fraction."""

    def test_section_stats(self) -> None:
        """Each section reports checked vs visible items."""
        record = make_record("2024-01-02", {"gym": True, "run": False, "swim": True})
        record["sections"]["home"] = {}

        stats = ProgressEngine.calculate_section_stats(record)

        assert stats[SECTION].as_dict() == {"completed": 2, "total": 3, "percentage": 67}
        assert stats["home"].as_dict() == {"completed": 0, "total": 0, "percentage": 0}

    def test_completion_of_empty_record(self) -> None:
        """A record without items is 0% complete."""
        assert ProgressEngine.calculate_completion({"sections": {}}) == 0.0

    def test_hidden_items_are_left_out(self) -> None:
        """Inactive, quota-met and off-day items count neither way."""
        records = [
            make_record("2024-01-02", {"gym": True}, {"gym": make_config("weekly", 1)}),
            make_record(
                "2024-01-05",
                {"gym": False, "read": False, "nap": True, "swim": False, "walk": True},
                {
                    "gym": make_config("weekly", 1),
                    "read": make_config("daily", 1),
                    "nap": make_config("daily", 1, active=False),
                    "swim": make_config("weekly", 1, days_of_week=["mon"]),
                },
            ),
        ]

        stats = ProgressEngine.calculate_section_stats(records[1], records)

        assert stats[SECTION].as_dict() == {"completed": 1, "total": 2, "percentage": 50}
        assert ProgressEngine.calculate_completion(records[1], records) == 0.5

    def test_checked_item_counts_after_quota_is_met(self) -> None:
        """The completion that meets the quota is still counted on its own day."""
        config = {"gym": make_config("weekly", 1)}
        records = [
            make_record("2024-01-02", {"gym": True}, config),
            make_record("2024-01-04", {"gym": True}, config),
            make_record("2024-01-05", {"gym": False}, config),
        ]

        reconciled = ProgressEngine.reconcile_records(records)

        assert [record["completion"] for record in reconciled] == [1.0, 1.0, 0.0]

    def test_visibility_errors_count_item_as_visible(self) -> None:
        """Items whose config cannot be evaluated are shown and counted."""
        record = make_record(
            "2024-01-05", {"odd": False}, {"odd": make_config("yearly", 1)}
        )

        assert ProgressEngine.is_item_visible(record, SECTION, "odd") is True
        assert ProgressEngine.calculate_completion(record) == 0.0
