"""Tests for the paged export loop and the connect/disconnect orchestration."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from conftest import FakeSession, make_item, make_items
from library_exporter.exceptions import AuthenticationError, ConfigurationError, OutputError
from library_exporter.exporter import ExportState, LibraryExporter, run_export
from library_exporter.fetcher import BatchFetcher
from library_exporter.models import OUTPUT_COLUMNS
from library_exporter.sink import ExcelSink
from library_exporter.transform import transform_record


def build_exporter(session, sink, page_size=5000):
    return LibraryExporter(BatchFetcher(session), sink, "Documents", page_size)


# =========================================================================
# 1. Termination
# =========================================================================


class TestTermination:
    def test_12000_items_take_three_fetches(self, recording_sink):
        session = FakeSession(make_items(12000))
        summary = build_exporter(session, recording_sink).run()

        assert len(session.calls) == 3
        assert summary.page_sizes == [5000, 5000, 2000]
        assert summary.outcome == "done"
        assert summary.rows_written == 12000
        assert len(recording_sink.rows) == 12000

    def test_exactly_one_full_page_needs_a_second_empty_fetch(self, recording_sink, export_logs):
        session = FakeSession(make_items(5000))
        exporter = build_exporter(session, recording_sink)
        summary = exporter.run()

        assert len(session.calls) == 2
        assert summary.page_sizes == [5000]
        assert summary.pages_fetched == 1
        assert exporter.state is ExportState.DONE
        assert "No more items to process" in export_logs.text

    def test_short_first_page_is_processed_then_stops(self, recording_sink):
        session = FakeSession(make_items(3))
        summary = build_exporter(session, recording_sink, page_size=10).run()

        assert len(session.calls) == 1
        assert summary.outcome == "done"
        assert [row.file_name for row in recording_sink.rows] == ["file_0.docx", "file_1.docx", "file_2.docx"]

    def test_empty_library_writes_header_only(self, recording_sink):
        session = FakeSession([])
        summary = build_exporter(session, recording_sink).run()

        assert recording_sink.initialized == 1
        assert recording_sink.batches == []
        assert summary.succeeded
        assert summary.records_fetched == 0

    def test_every_fetch_requests_the_configured_page_size(self, recording_sink):
        session = FakeSession(make_items(25))
        build_exporter(session, recording_sink, page_size=10).run()

        assert [call[1] for call in session.calls] == [10, 10, 10]
        assert all(call[0] == "Documents" for call in session.calls)

    def test_rejects_non_positive_page_size(self, recording_sink):
        with pytest.raises(ConfigurationError):
            build_exporter(FakeSession([]), recording_sink, page_size=0)


# =========================================================================
# 2. Per-record failure isolation
# =========================================================================


class TestRecordFailures:
    def test_null_author_in_batch_two_is_skipped(self, recording_sink, export_logs):
        items = make_items(12000)
        items[5003] = make_item(5003, name="orphan.pdf", with_author=False)

        summary = build_exporter(FakeSession(items), recording_sink).run()

        assert [len(batch) for batch in recording_sink.batches] == [5000, 4999, 2000]
        assert summary.rows_written == 11999
        assert summary.records_skipped == 1
        assert summary.records_fetched == 12000
        assert "orphan.pdf" in export_logs.text

    def test_records_after_a_failure_keep_their_order(self, recording_sink):
        items = make_items(5)
        items[1] = make_item(1, size="not-a-number")

        build_exporter(FakeSession(items), recording_sink, page_size=10).run()

        names = [row.file_name for row in recording_sink.rows]
        assert names == ["file_0.docx", "file_2.docx", "file_3.docx", "file_4.docx"]

    def test_one_log_entry_per_failed_record(self, recording_sink, export_logs):
        items = make_items(4)
        items[0] = make_item(0, with_editor=False)
        items[3] = make_item(3, size=None)

        build_exporter(FakeSession(items), recording_sink, page_size=10).run()

        errors = [r for r in export_logs.records if r.levelname == "ERROR"]
        assert len(errors) == 2
        assert "file_0.docx" in errors[0].getMessage()
        assert "file_3.docx" in errors[1].getMessage()

    def test_full_page_of_failures_still_continues(self, recording_sink):
        items = [make_item(i, with_author=False) for i in range(10)] + make_items(3, start=10)

        summary = build_exporter(FakeSession(items), recording_sink, page_size=10).run()

        assert summary.pages_fetched == 2
        assert summary.rows_written == 3
        assert summary.records_skipped == 10

    def test_out_of_range_timestamp_is_skipped(self, recording_sink, export_logs):
        items = make_items(3)
        items[1] = make_item(1, name="ancient.doc", created="0001-01-01T00:00:00+05:00")

        summary = build_exporter(FakeSession(items), recording_sink, page_size=10).run()

        assert summary.succeeded
        assert summary.rows_written == 2
        assert [row.file_name for row in recording_sink.rows] == ["file_0.docx", "file_2.docx"]
        assert "ancient.doc" in export_logs.text

    def test_infinite_size_is_skipped(self, recording_sink, export_logs):
        items = make_items(3)
        items[1]["fields"]["File_x0020_Size"] = float("inf")

        summary = build_exporter(FakeSession(items), recording_sink, page_size=10).run()

        assert summary.succeeded
        assert summary.rows_written == 2
        assert summary.records_skipped == 1
        assert "file_1.docx" in export_logs.text

    def test_raising_transformer_only_skips_that_record(self, recording_sink, export_logs):
        def transformer(record):
            if record.name == "file_1.docx":
                raise RuntimeError("unexpected column type")
            return transform_record(record)

        exporter = LibraryExporter(BatchFetcher(FakeSession(make_items(3))), recording_sink, "Documents", 10,
                                   transformer=transformer)
        summary = exporter.run()

        assert summary.rows_written == 2
        assert "file_1.docx" in export_logs.text
        assert "unexpected column type" in export_logs.text


# =========================================================================
# 3. Fetch failures
# =========================================================================


class TestFetchFailures:
    def test_failure_on_third_fetch_keeps_earlier_batches(self, recording_sink, export_logs):
        session = FakeSession(make_items(12000), fail_on_call=3)
        exporter = build_exporter(session, recording_sink)

        summary = exporter.run()

        assert len(session.calls) == 3
        assert [len(batch) for batch in recording_sink.batches] == [5000, 5000]
        assert summary.outcome == "failed"
        assert exporter.state is ExportState.FAILED
        assert "503" in summary.error
        assert "Error fetching batch 3" in export_logs.text

    def test_failure_is_not_retried(self, recording_sink):
        session = FakeSession(make_items(10), fail_on_call=1)

        summary = build_exporter(session, recording_sink).run()

        assert len(session.calls) == 1
        assert not summary.succeeded


# =========================================================================
# 4. run_export: connection lifetime and real workbook output
# =========================================================================


class TestRunExport:
    def test_writes_workbook_and_disconnects(self, tmp_path):
        output = tmp_path / "export.xlsx"
        session = FakeSession(make_items(7))

        summary = run_export(session, "https://contoso.sharepoint.com/sites/team", "Documents", output, page_size=5)

        assert summary.succeeded
        assert session.connected_to == "https://contoso.sharepoint.com/sites/team"
        assert session.disconnect_calls == 1

        rows = list(load_workbook(output).active.iter_rows(values_only=True))
        assert rows[0] == OUTPUT_COLUMNS
        assert len(rows) == 8

    def test_disconnects_after_fetch_failure(self, tmp_path, export_logs):
        session = FakeSession(make_items(12), fail_on_call=2)

        summary = run_export(session, "https://contoso.sharepoint.com", "Documents", tmp_path / "out.xlsx", page_size=5)

        assert summary.outcome == "failed"
        assert session.disconnect_calls == 1
        assert "Export terminated at" in export_logs.text

    def test_connect_failure_is_raised_after_teardown(self, tmp_path, export_logs):
        session = FakeSession(fail_connect=True)

        with pytest.raises(AuthenticationError):
            run_export(session, "https://contoso.sharepoint.com", "Documents", tmp_path / "out.xlsx")

        assert session.disconnect_calls == 1
        assert session.calls == []
        assert "Failed to connect" in export_logs.text
        assert not (tmp_path / "out.xlsx").exists()

    def test_disconnect_failure_does_not_change_outcome(self, tmp_path, export_logs):
        session = FakeSession(make_items(2), fail_disconnect=True)

        summary = run_export(session, "https://contoso.sharepoint.com", "Documents", tmp_path / "out.xlsx")

        assert summary.succeeded
        assert "socket already closed" in export_logs.text
        assert "Export completed at" in export_logs.text

    def test_rerun_produces_identical_rows(self, tmp_path):
        items = make_items(12)
        first = tmp_path / "first.xlsx"
        second = tmp_path / "second.xlsx"

        run_export(FakeSession(items), "https://contoso.sharepoint.com", "Documents", first, page_size=5)
        run_export(FakeSession(items), "https://contoso.sharepoint.com", "Documents", second, page_size=5)

        def read(path):
            return list(load_workbook(path).active.iter_rows(values_only=True))

        assert read(first) == read(second)

    def test_output_failure_on_second_batch_stops_and_disconnects(self, tmp_path, export_logs):
        class FailingOnSecondAppend(ExcelSink):
            appends = 0

            def append(self, rows):
                FailingOnSecondAppend.appends += 1
                if FailingOnSecondAppend.appends == 2:
                    raise OutputError(f"Cannot write output file {self.path}: disk full")
                return super().append(rows)

        output = tmp_path / "out.xlsx"
        session = FakeSession(make_items(12))

        with patch("library_exporter.exporter.ExcelSink", FailingOnSecondAppend):
            with pytest.raises(OutputError, match="disk full"):
                run_export(session, "https://contoso.sharepoint.com", "Documents", output, page_size=5)

        assert session.disconnect_calls == 1
        assert "output could not be written" in export_logs.text
        assert "Export terminated at" in export_logs.text
        rows = list(load_workbook(output).active.iter_rows(values_only=True))
        assert len(rows) == 6
        assert rows[1][0] == "file_0.docx"
