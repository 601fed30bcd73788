"""Unit tests for multi-stage progress tracking."""

import pytest

from utils.progress import ProcessingStatus


class TestProcessingStatus:
    @pytest.mark.unit
    def test_overall_progress_is_weighted_by_items(self):
        status = ProcessingStatus(label="render")
        status.register_stage("materialize", total_items=3)
        status.register_stage("concat", total_items=1)

        status.start_stage("materialize")
        status.update_stage("materialize", increment=3)
        status.start_stage("concat")
        status.update_stage("concat", completed=0.5)

        assert status.overall_progress == pytest.approx(87.5)
        assert status.current_stage == "concat"

    @pytest.mark.unit
    def test_completed_is_clamped(self):
        status = ProcessingStatus(label="render")
        status.register_stage("mix", total_items=1)
        status.update_stage("mix", completed=4)
        assert status.stages["mix"].completed_items == 1
        status.update_stage("mix", completed=-1)
        assert status.stages["mix"].completed_items == 0

    @pytest.mark.unit
    def test_completion_and_failure(self):
        status = ProcessingStatus(label="render")
        status.register_stage("mux")
        assert status.stages["mux"].status == "pending"

        status.complete_stage("mux")
        assert status.stages["mux"].status == "completed"
        assert status.overall_progress == pytest.approx(100.0)

        status.fail_stage("mux", "Invalid data")
        assert status.stages["mux"].status == "failed"
        assert status.error_message == "Invalid data"

    @pytest.mark.unit
    def test_unregistered_stage_is_auto_registered_on_start(self):
        status = ProcessingStatus(label="scenes")
        status.start_stage("acquire")
        assert status.stages["acquire"].status == "in_progress"

    @pytest.mark.unit
    def test_unregistered_stage_updates_are_ignored(self):
        status = ProcessingStatus(label="render")
        status.update_stage("mix", completed=1)
        status.complete_stage("mix")
        assert status.stages == {}

    @pytest.mark.unit
    def test_callback_failures_are_contained(self):
        def broken(_status):
            raise RuntimeError("listener gone")

        status = ProcessingStatus(label="render", update_callback=broken)
        status.register_stage("concat")
        status.complete_stage("concat")
        assert status.stages["concat"].status == "completed"

    @pytest.mark.unit
    def test_callback_sees_every_change(self):
        seen = []
        status = ProcessingStatus(label="render", update_callback=lambda s: seen.append(s.overall_progress))
        status.register_stage("concat", total_items=2)
        status.update_stage("concat", increment=1)
        status.complete_stage("concat")
        assert seen == [0.0, 50.0, 100.0]
