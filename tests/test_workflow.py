"""
Tests for the photo collection workflow: validation, analysis outcomes,
review, saving and stale-result handling.
"""
import asyncio

import pytest

from errors import WorkflowStateError
from models import AnalysisOutcome, AnalysisResult
from workflow import (
    HARD_FAILURE_ERROR,
    MAX_IMAGE_BYTES,
    NOT_AN_IMAGE_ERROR,
    READ_ERROR,
    SOFT_FAILURE_ERROR,
    TOO_LARGE_ERROR,
    ImageFile,
    WorkflowStatus,
    parse_tags,
    validate_image_file,
)


async def reviewing_workflow(make_workflow, analyzer, image_file):
    wf = make_workflow(analyzer)
    await wf.select_file(image_file)
    assert wf.status == WorkflowStatus.REVIEWING
    return wf


class BrokenFile(ImageFile):
    async def read(self) -> bytes:
        raise OSError("upload stream closed")


class UndeclaredSizeFile(ImageFile):
    @property
    def size(self):
        return None


class TestValidation:

    @pytest.mark.parametrize("content_type", ["text/plain", "application/pdf", "video/mp4", ""])
    async def test_non_image_is_rejected(self, make_workflow, analyzer, png_bytes, content_type):
        wf = make_workflow(analyzer)
        task = wf.select_file(ImageFile("file.bin", content_type, png_bytes))

        assert task is None
        assert wf.status == WorkflowStatus.IDLE
        assert wf.error == NOT_AN_IMAGE_ERROR
        analyzer.analyze.assert_not_called()

    async def test_oversized_image_is_rejected(self, make_workflow, analyzer):
        wf = make_workflow(analyzer)
        big = ImageFile("huge.jpg", "image/jpeg", b"\0" * (MAX_IMAGE_BYTES + 1))
        task = wf.select_file(big)

        assert task is None
        assert wf.status == WorkflowStatus.IDLE
        assert wf.error == TOO_LARGE_ERROR
        assert wf.preview is None
        analyzer.analyze.assert_not_called()

    def test_exactly_max_size_passes(self):
        ok = ImageFile("edge.jpg", "image/jpeg", b"\0" * MAX_IMAGE_BYTES)
        assert validate_image_file(ok) is None

    async def test_new_selection_clears_previous_error(self, make_workflow, analyzer, image_file):
        wf = make_workflow(analyzer)
        wf.select_file(ImageFile("notes.txt", "text/plain", b"hello"))
        assert wf.error == NOT_AN_IMAGE_ERROR

        task = wf.select_file(image_file)
        assert wf.status == WorkflowStatus.ANALYZING
        assert wf.error is None
        await task


class TestAnalysis:

    async def test_success_seeds_fields(self, make_workflow, analyzer, image_file, analysis_result):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)

        assert wf.error is None
        assert wf.analysis == analysis_result
        assert wf.preview.startswith("data:image/png;base64,")
        analyzer.analyze.assert_awaited_once_with(wf.preview)

    async def test_soft_failure_shows_advisory_and_keeps_values(self, make_workflow, analyzer, image_file):
        sentinel = AnalysisResult("Unreadable image", ["Manual"], "Not identified", "Not visible")
        analyzer.analyze.return_value = AnalysisOutcome.soft_failure(sentinel)
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)

        assert wf.error == SOFT_FAILURE_ERROR
        assert wf.analysis == sentinel

    async def test_analyzer_exception_falls_back_to_empty_fields(self, make_workflow, analyzer, image_file):
        analyzer.analyze.side_effect = ConnectionError("network down")
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)

        assert wf.error == HARD_FAILURE_ERROR
        assert wf.analysis == AnalysisResult("", [], "", "")
        assert wf.preview is not None

    async def test_hard_failure_outcome_falls_back_to_empty_fields(self, make_workflow, analyzer, image_file):
        analyzer.analyze.return_value = AnalysisOutcome.hard_failure("timeout")
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)

        assert wf.error == HARD_FAILURE_ERROR
        assert wf.analysis.license_plate == ""
        assert wf.analysis.tags == []

    async def test_unreadable_file_returns_to_idle(self, make_workflow, analyzer):
        wf = make_workflow(analyzer)
        await wf.select_file(BrokenFile("broken.jpg", "image/jpeg", b""))

        assert wf.status == WorkflowStatus.IDLE
        assert wf.error == READ_ERROR
        assert wf.preview is None
        analyzer.analyze.assert_not_called()

    async def test_svg_image_is_analyzed(self, make_workflow, analyzer):
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"><rect width="4" height="4"/></svg>'
        wf = make_workflow(analyzer)
        await wf.select_file(ImageFile("car.svg", "image/svg+xml", svg))

        assert wf.status == WorkflowStatus.REVIEWING
        assert wf.error is None
        assert wf.preview.startswith("data:image/svg+xml;base64,")
        analyzer.analyze.assert_awaited_once_with(wf.preview)

    async def test_oversized_content_without_declared_size(self, make_workflow, analyzer, monkeypatch):
        monkeypatch.setattr("workflow.MAX_IMAGE_BYTES", 4)
        wf = make_workflow(analyzer)
        await wf.select_file(UndeclaredSizeFile("car.png", "image/png", b"12345"))

        assert wf.status == WorkflowStatus.IDLE
        assert wf.error == TOO_LARGE_ERROR
        assert wf.preview is None
        analyzer.analyze.assert_not_called()

    async def test_selection_ignored_while_analyzing(self, make_workflow, analyzer, image_file):
        wf = make_workflow(analyzer)
        first = wf.select_file(image_file)
        second = wf.select_file(image_file)

        assert second is None
        await first
        assert analyzer.analyze.await_count == 1


class TestReview:

    async def test_update_fields(self, make_workflow, analyzer, image_file):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.update_field("license_plate", "XYZ-9876")
        wf.update_field("vehicle_model", "Honda Civic")
        wf.update_field("description", "Worn front tire")
        wf.update_field("tags", "tires, alignment ,")

        assert wf.analysis == AnalysisResult("Worn front tire", ["tires", "alignment"], "Honda Civic", "XYZ-9876")

    async def test_update_unknown_field(self, make_workflow, analyzer, image_file):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        with pytest.raises(ValueError):
            wf.update_field("location", "Garage")

    async def test_update_outside_review_is_invalid(self, make_workflow, analyzer):
        wf = make_workflow(analyzer)
        with pytest.raises(WorkflowStateError):
            wf.update_field("license_plate", "ABC-1234")

    async def test_retake_clears_everything(self, make_workflow, analyzer, image_file):
        analyzer.analyze.return_value = AnalysisOutcome.soft_failure(AnalysisResult())
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.update_field("license_plate", "EDITED")

        wf.retake()

        assert wf.status == WorkflowStatus.IDLE
        assert wf.preview is None
        assert wf.analysis is None
        assert wf.error is None

    async def test_retake_from_idle_is_invalid(self, make_workflow, analyzer):
        wf = make_workflow(analyzer)
        with pytest.raises(WorkflowStateError):
            wf.retake()

    def test_parse_tags(self):
        assert parse_tags("a, b,,c ") == ["a", "b", "c"]
        assert parse_tags(["x", 1]) == ["x", "1"]


class TestSaving:

    async def test_save_progress_and_single_handoff(self, make_workflow, analyzer, image_file, records, monkeypatch):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        seen = []
        real_sleep = asyncio.sleep

        async def recording_sleep(delay):
            seen.append(wf.progress)
            await real_sleep(0)

        monkeypatch.setattr("workflow.asyncio.sleep", recording_sleep)

        assert wf.confirm_save() is True
        assert wf.status == WorkflowStatus.SAVING
        assert wf.progress == 0

        await wf.join()

        assert seen[:10] == list(range(0, 100, 10))
        assert wf.progress == 100
        assert wf.status == WorkflowStatus.SUCCESS
        assert len(records) == 1
        assert records[0] == wf.record
        assert records[0].user_id == "user-1"

    async def test_empty_plate_declined_does_not_save(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.update_field("license_plate", "   ")

        assert wf.confirm_save() is False
        await wf.join()

        assert wf.status == WorkflowStatus.REVIEWING
        assert wf.record is None
        assert records == []

    async def test_empty_plate_confirmed_saves(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.update_field("license_plate", "")

        assert wf.confirm_save(confirm_empty_plate=True) is True
        await wf.join()

        assert records[0].license_plate == ""

    async def test_record_uses_values_at_confirm_time(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.update_field("license_plate", "MAN-0001")
        wf.update_field("vehicle_model", "Fiat Uno")
        wf.update_field("description", "Manual entry")
        wf.update_field("tags", ["manual"])

        wf.confirm_save()
        with pytest.raises(WorkflowStateError):
            wf.update_field("license_plate", "LATE-999")
        await wf.join()

        record = records[0]
        assert (record.description, record.tags, record.vehicle_model, record.license_plate) == \
            ("Manual entry", ("manual",), "Fiat Uno", "MAN-0001")
        assert record.url == wf.preview

    async def test_save_outside_review_is_invalid(self, make_workflow, analyzer):
        wf = make_workflow(analyzer)
        with pytest.raises(WorkflowStateError):
            wf.confirm_save()

    async def test_reset_while_saving_cancels_timer(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.progress_interval = 60
        wf.confirm_save()
        await asyncio.sleep(0)

        wf.reset()
        await asyncio.sleep(0)

        assert wf.status == WorkflowStatus.IDLE
        assert wf.progress == 0
        assert wf.pending is None
        assert records == []

    async def test_aclose_cancels_pending_save(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.handoff_delay = 60
        wf.confirm_save()
        for _ in range(20):
            await asyncio.sleep(0)

        await wf.aclose()

        assert wf.status == WorkflowStatus.IDLE
        assert records == []


class SlowAnalyzer:
    """Analyzer whose first call blocks until released"""

    def __init__(self, first: AnalysisResult, second: AnalysisResult):
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        self.results = [first, second]
        self.calls = 0

    async def analyze(self, image):
        self.calls += 1
        result = self.results[self.calls - 1]
        if self.calls == 1:
            self.started.set()
            await self.release.wait()
        return AnalysisOutcome.success(result)


class TestStaleResults:

    async def test_result_after_retake_is_discarded(self, make_workflow, image_file):
        slow = SlowAnalyzer(AnalysisResult("old", ["old"], "Old", "OLD-0000"), AnalysisResult())
        wf = make_workflow(slow)
        task = wf.select_file(image_file)
        await slow.started.wait()

        wf.retake()
        slow.release.set()
        await task

        assert wf.status == WorkflowStatus.IDLE
        assert wf.analysis is None
        assert wf.preview is None

    async def test_result_does_not_overwrite_new_attempt(self, make_workflow, image_file, png_bytes):
        slow = SlowAnalyzer(AnalysisResult("old", ["old"], "Old", "OLD-0000"),
                            AnalysisResult("new", ["new"], "New", "NEW-1111"))
        wf = make_workflow(slow)
        first = wf.select_file(image_file)
        await slow.started.wait()

        wf.reset()
        await wf.select_file(ImageFile("second.png", "image/png", png_bytes))
        assert wf.analysis.license_plate == "NEW-1111"

        slow.release.set()
        await first

        assert wf.status == WorkflowStatus.REVIEWING
        assert wf.analysis.license_plate == "NEW-1111"

    async def test_reset_after_success_allows_new_attempt(self, make_workflow, analyzer, image_file, records):
        wf = await reviewing_workflow(make_workflow, analyzer, image_file)
        wf.confirm_save()
        await wf.join()
        assert wf.handed_off

        wf.reset()

        assert wf.status == WorkflowStatus.IDLE
        assert wf.record is None
        assert wf.select_file(image_file) is not None
        await wf.join()
        assert len(records) == 1
