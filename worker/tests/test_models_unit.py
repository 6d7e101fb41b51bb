import pytest
from pydantic import ValidationError

from worker.app.models import RunOptions, RunStats


class TestRunOptions:
    def test_defaults(self):
        opts = RunOptions()
        assert opts.use_change_log is True
        assert opts.rebuild_log is False
        assert opts.rebuild_log_only is False
        assert opts.backup is False
        assert opts.dry_run is False
        assert opts.backup_suffix == ".bak"
        assert opts.log_name == ".tinycrush.log"

    def test_rebuild_log_only_normalizes_other_flags(self):
        opts = RunOptions(rebuild_log_only=True, rebuild_log=True, backup=True)
        assert opts.rebuild_log_only is True
        assert opts.rebuild_log is False
        assert opts.backup is False
        assert opts.use_change_log is True

    def test_rebuild_log_only_wins_over_no_log(self):
        opts = RunOptions(rebuild_log_only=True, use_change_log=False)
        assert opts.use_change_log is True
        assert opts.rebuild_log_only is True

    def test_no_log_clears_rebuild(self):
        opts = RunOptions(use_change_log=False, rebuild_log=True)
        assert opts.rebuild_log is False
        assert opts.rebuild_log_only is False

    def test_int_flags_are_normalized_after_coercion(self):
        opts = RunOptions(use_change_log=0, rebuild_log=1)
        assert opts.use_change_log is False
        assert opts.rebuild_log is False
        assert opts.rebuild_log_only is False

    def test_string_false_does_not_trigger_rebuild_log_only(self):
        opts = RunOptions(rebuild_log_only="false", backup=True, rebuild_log=True)
        assert opts.rebuild_log_only is False
        assert opts.backup is True
        assert opts.rebuild_log is True

    def test_string_flags_follow_precedence(self):
        opts = RunOptions(use_change_log="no", rebuild_log_only="true", backup="1")
        assert opts.rebuild_log_only is True
        assert opts.use_change_log is True
        assert opts.backup is False

    def test_invalid_flag_value_rejected(self):
        with pytest.raises(ValidationError):
            RunOptions(dry_run="maybe")

    def test_frozen(self):
        opts = RunOptions()
        with pytest.raises(ValidationError):
            opts.dry_run = True

    def test_needs_compressor(self):
        assert RunOptions().needs_compressor
        assert not RunOptions(dry_run=True).needs_compressor
        assert not RunOptions(rebuild_log_only=True).needs_compressor


class TestRunStats:
    def test_ok_and_summary(self):
        stats = RunStats(processed=2, skipped=1, bytes_before=4096, bytes_after=1024)
        assert stats.ok
        assert stats.bytes_saved == 3072
        assert stats.summary() == "processed=2 skipped=1 failed=0 saved=3.0 KiB"
        assert stats.summary(rebuild_log_only=True) == "logged=0 failed=0"

    def test_failures_make_run_not_ok(self):
        assert not RunStats(failed=1).ok
        assert not RunStats(directory_failures=1).ok
        assert RunStats(failed=1).as_dict()["ok"] is False
