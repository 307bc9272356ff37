#!/usr/bin/env python3
"""
Unit tests for VideoCompress core modules.
Tests cover: checkpoint store, progress parsing, command builder, segment
planning, discovery, configuration and the report.
"""

import sys
import os
import json
import random
import tempfile
import threading
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from vcompress.core.constants import (
    ErrorCode, ResultStatus, CHECKPOINT_FILENAME, SEGMENT_ROOT_DIRNAME,
    DEFAULT_SEGMENT_SEC, DEFAULT_WORKERS,
)
from vcompress.core.error_codes import (
    JobError, CheckpointError, ScanError, PersistenceFailure, is_skip,
)
from vcompress.core.checkpoint_store import CheckpointStore, checkpoint_path_for, fingerprint
from vcompress.core.process_runner import ProgressParser
from vcompress.core.progress import ProgressCounter
from vcompress.core.command_builder import build_args, build_segment_args, build_concat_args
from vcompress.core.segments import (
    count_segments, segment_bounds, create_segment_manifest, segment_workspace,
    build_plan, save_plan, load_plan, reset_workspace_if_changed, write_concat_list,
)
from vcompress.core.scanner import (
    Scanner, scan_jobs, output_path_for, is_compressed_name, is_video_file,
)
from vcompress.core.config import AppConfig
from vcompress.core.models import Job, ReportItem
from vcompress.core.report import format_size, format_report, summarize


def _write(path: Path, content: str = "source") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class RecordingSink:
    def __init__(self):
        self.total = 0
        self.lock = threading.Lock()

    def add(self, n):
        with self.lock:
            self.total += n

    def clear(self):
        pass

    def refresh(self):
        pass


class TestCheckpointStore(unittest.TestCase):
    """Test checkpoint persistence and fingerprint freshness."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.input = str(_write(self.tmp / "input.mp4", "source"))
        self.output = str(_write(self.tmp / "input.compressed.mp4", "result"))
        self.state_file = self.tmp / CHECKPOINT_FILENAME

    def tearDown(self):
        self._tmp.cleanup()

    def _mark(self, store):
        size, mod_unix = fingerprint(self.input)
        store.mark_completed(self.input, self.output, size, mod_unix)

    def test_save_load_and_match(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)

        loaded = CheckpointStore.load(self.state_file)
        self.assertTrue(loaded.is_fresh(self.input, self.output))

    def test_mismatch_when_input_size_changes(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)
        _write(Path(self.input), "source-v2-with-change")
        self.assertFalse(store.is_fresh(self.input, self.output))

    def test_mismatch_when_mtime_changes(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)
        st = os.stat(self.input)
        os.utime(self.input, (st.st_atime, st.st_mtime + 60))
        self.assertFalse(store.is_fresh(self.input, self.output))

    def test_mismatch_when_output_missing(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)
        os.remove(self.output)
        self.assertFalse(store.is_fresh(self.input, self.output))

    def test_mismatch_when_output_path_differs(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)
        other = str(_write(self.tmp / "elsewhere.mp4", "x"))
        self.assertFalse(store.is_fresh(self.input, other))

    def test_unknown_input_not_fresh(self):
        store = CheckpointStore(self.state_file)
        self.assertFalse(store.is_fresh(self.input, self.output))

    def test_missing_file_is_empty_store(self):
        store = CheckpointStore.load(self.tmp / "nope.json")
        self.assertEqual(len(store), 0)

    def test_blank_file_is_empty_store(self):
        self.state_file.write_text("  \n")
        self.assertEqual(len(CheckpointStore.load(self.state_file)), 0)

    def test_malformed_file_raises(self):
        self.state_file.write_text("{not json")
        with self.assertRaises(CheckpointError) as ctx:
            CheckpointStore.load(self.state_file)
        self.assertEqual(ctx.exception.code, ErrorCode.CHECKPOINT_CORRUPT)

    def test_wrong_shape_raises(self):
        self.state_file.write_text(json.dumps({"completed": {"a": {"input_file": "a"}}}))
        with self.assertRaises(CheckpointError):
            CheckpointStore.load(self.state_file)

    def test_file_layout(self):
        store = CheckpointStore(self.state_file)
        self._mark(store)
        data = json.loads(self.state_file.read_text())
        self.assertEqual(list(data.keys()), ["completed"])
        record = data["completed"][self.input]
        self.assertEqual(set(record), {"input_file", "output_file", "input_size",
                                       "input_mod_unix", "completed_at"})
        self.assertEqual(record["input_size"], os.path.getsize(self.input))
        self.assertEqual(record["input_mod_unix"], int(os.stat(self.input).st_mtime))
        self.assertFalse((self.tmp / (CHECKPOINT_FILENAME + ".tmp")).exists())

    def test_concurrent_marks_all_persisted(self):
        store = CheckpointStore(self.state_file)
        inputs = [str(_write(self.tmp / f"in_{i}.mp4", "x" * i)) for i in range(20)]

        def mark(path):
            store.mark_completed(path, path + ".out", 1, 1)

        threads = [threading.Thread(target=mark, args=(p,)) for p in inputs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        loaded = CheckpointStore.load(self.state_file)
        self.assertEqual(len(loaded), 20)

    def test_record_completion_survives_save_failure(self):
        blocker = _write(self.tmp / "blocker", "file, not a dir")
        store = CheckpointStore(blocker / CHECKPOINT_FILENAME)
        size, mod_unix = fingerprint(self.input)
        self.assertFalse(store.record_completion(self.input, self.output, size, mod_unix))
        # In-memory record is kept for the rest of the run
        self.assertIsNotNone(store.get(self.input))

    def test_failed_save_leaves_no_temp_file(self):
        self.state_file.mkdir()
        store = CheckpointStore(self.state_file)
        size, mod_unix = fingerprint(self.input)
        with self.assertRaises(PersistenceFailure):
            store.mark_completed(self.input, self.output, size, mod_unix)
        self.assertFalse((self.tmp / (CHECKPOINT_FILENAME + ".tmp")).exists())
        self.assertTrue(self.state_file.is_dir())

    def test_checkpoint_path_for(self):
        self.assertEqual(checkpoint_path_for(self.tmp), self.tmp / CHECKPOINT_FILENAME)
        self.assertEqual(checkpoint_path_for(self.input), self.tmp / CHECKPOINT_FILENAME)
        self.assertEqual(checkpoint_path_for(self.input, "/out"), Path("/out") / CHECKPOINT_FILENAME)


class TestProgress(unittest.TestCase):
    """Test progress delta parsing and the shared counter."""

    def test_forward_deltas_only(self):
        counter = ProgressCounter()
        parser = ProgressParser(counter)
        for line in ["frame=10", "out_time_us=1000", "out_time_us=500",
                     "out_time_us=N/A", "out_time_us=1000", "garbage", "out_time_us=2500\n"]:
            parser.feed(line)
        self.assertEqual(counter.value, 2500)
        self.assertEqual(parser.last_reported_us, 2500)

    def test_counter_ignores_non_positive(self):
        counter = ProgressCounter()
        counter.add(0)
        counter.add(-5)
        counter.add(7)
        self.assertEqual(counter.value, 7)

    def test_counter_forwards_to_sink(self):
        sink = RecordingSink()
        counter = ProgressCounter(sink)
        counter.add(10)
        counter.add_seconds(1.5)
        self.assertEqual(sink.total, 1_500_010)

    def _sequences(self, rng, jobs):
        sequences = []
        for _ in range(jobs):
            value, lines = 0, []
            for _ in range(rng.randint(5, 40)):
                step = rng.choice([0, 0, -1000, 1000, 33_333, 250_000])
                value = max(0, value + step)
                lines.append(f"out_time_us={value}")
                if rng.random() < 0.1:
                    lines.append("out_time_us=N/A")
            sequences.append(lines)
        return sequences

    @staticmethod
    def _expected(lines):
        best = 0
        for line in lines:
            try:
                best = max(best, int(line.split("=")[1]))
            except ValueError:
                pass
        return best

    def test_conservation_random_interleavings(self):
        rng = random.Random(1234)
        for _ in range(50):
            sequences = self._sequences(rng, rng.randint(1, 6))
            counter = ProgressCounter()
            parsers = [ProgressParser(counter) for _ in sequences]
            cursors = [0] * len(sequences)

            pending = [i for i, s in enumerate(sequences) for _ in s]
            rng.shuffle(pending)
            for job in pending:
                parsers[job].feed(sequences[job][cursors[job]])
                cursors[job] += 1

            self.assertEqual(counter.value, sum(self._expected(s) for s in sequences))

    def test_conservation_with_threads(self):
        rng = random.Random(99)
        sequences = self._sequences(rng, 8)
        sink = RecordingSink()
        counter = ProgressCounter(sink)

        def feed(lines):
            parser = ProgressParser(counter)
            for line in lines:
                parser.feed(line)

        threads = [threading.Thread(target=feed, args=(s,)) for s in sequences]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        expected = sum(self._expected(s) for s in sequences)
        self.assertEqual(counter.value, expected)
        self.assertEqual(sink.total, expected)


class TestCommandBuilder(unittest.TestCase):
    """Test ffmpeg argument construction."""

    def test_standard_preset(self):
        args = build_args("/in/a.mp4", "/out/a.compressed.mp4.vcpart", {'preset': 'standard'})
        self.assertEqual(args[0], "ffmpeg")
        self.assertIn("hevc_videotoolbox", args)
        self.assertEqual(args[args.index("-q:v") + 1], "50")
        self.assertEqual(args[args.index("-c:a") + 1], "copy")
        self.assertEqual(args[-3:], ["-f", "mp4", "/out/a.compressed.mp4.vcpart"])
        self.assertIn("pipe:1", args)

    def test_low_preset_and_quality_override(self):
        low = build_args("a.mov", "b.mov", {'preset': 'low'})
        self.assertEqual(low[low.index("-q:v") + 1], "40")
        custom = build_args("a.mov", "b.mov", {'preset': 'low', 'quality': 65})
        self.assertEqual(custom[custom.index("-q:v") + 1], "65")
        self.assertEqual(custom[-3:-1], ["-f", "mov"])

    def test_high_preset_crf(self):
        args = build_args("a.mkv", "b.mkv.vcpart", {'preset': 'high'})
        self.assertEqual(args[args.index("-crf") + 1], "24")
        self.assertIn("libx265", args)
        self.assertEqual(args[-3:-1], ["-f", "matroska"])
        mapped = build_args("a.mkv", "b.mkv", {'preset': 'high', 'quality': 60})
        self.assertEqual(mapped[mapped.index("-crf") + 1], "21")

    def test_hwaccel_can_be_disabled(self):
        self.assertIn("-hwaccel", build_args("a.mp4", "b.mp4", {}))
        self.assertNotIn("-hwaccel", build_args("a.mp4", "b.mp4", {'hwaccel': ''}))

    def test_segment_args(self):
        args = build_segment_args("a.mp4", "/w/seg_000001.mp4.vcpart", {}, 600, 123.4567)
        self.assertEqual(args[args.index("-ss") + 1], "600.000")
        self.assertEqual(args[args.index("-t") + 1], "123.457")
        self.assertLess(args.index("-ss"), args.index("-i"))
        self.assertEqual(args[args.index("-c:a") + 1], "aac")
        self.assertEqual(args[-3:], ["-f", "mp4", "/w/seg_000001.mp4.vcpart"])

    def test_concat_args(self):
        args = build_concat_args("/w/concat_list.txt", "/o/a.compressed.mp4.merge.vcpart")
        self.assertEqual(args[args.index("-f") + 1], "concat")
        self.assertEqual(args[args.index("-c") + 1], "copy")
        self.assertEqual(args[-3:], ["-f", "mp4", "/o/a.compressed.mp4.merge.vcpart"])


class TestSegmentPlanning(unittest.TestCase):
    """Test segment counts, bounds and workspace validation."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.input = str(_write(self.tmp / "movie.mp4", "source"))
        self.job = Job(self.input, str(self.tmp / "movie.compressed.mp4"),
                       str(self.tmp / "movie.compressed.mp4.vcpart"), 25.0)

    def tearDown(self):
        self._tmp.cleanup()

    def test_count_segments(self):
        self.assertEqual(count_segments(1200, 600), 2)
        self.assertEqual(count_segments(1201, 600), 3)
        self.assertEqual(count_segments(10, 600), 1)
        self.assertEqual(count_segments(0, 600), 1)

    def test_segment_bounds_clipped(self):
        self.assertEqual(segment_bounds(0, 25.0, 10), (0.0, 10.0))
        self.assertEqual(segment_bounds(2, 25.0, 10), (20.0, 5.0))

    def test_manifest_skips_empty(self):
        manifest = create_segment_manifest(25.0, 10)
        self.assertEqual([e['idx'] for e in manifest], [0, 1, 2])
        self.assertAlmostEqual(sum(e['duration_sec'] for e in manifest), 25.0)
        self.assertEqual(create_segment_manifest(0.0, 10), [])

    def test_workspace_is_deterministic(self):
        first = segment_workspace(self.job)
        self.assertEqual(first, segment_workspace(self.job))
        self.assertEqual(first.parent.name, SEGMENT_ROOT_DIRNAME)
        self.assertTrue(first.name.startswith("movie.compressed-"))
        other = Job(self.input, str(self.tmp / "x.mp4"), "", 25.0)
        self.assertNotEqual(first, segment_workspace(other))

    def test_matching_plan_keeps_workspace(self):
        workspace = segment_workspace(self.job)
        workspace.mkdir(parents=True)
        plan = build_plan(self.job, 10)
        save_plan(workspace / "resume_meta.json", plan)
        _write(workspace / "seg_000000.mp4", "10.0")

        self.assertFalse(reset_workspace_if_changed(workspace, build_plan(self.job, 10)))
        self.assertTrue((workspace / "seg_000000.mp4").exists())
        self.assertEqual(load_plan(workspace / "resume_meta.json"), plan)

    def test_changed_segment_length_wipes_workspace(self):
        workspace = segment_workspace(self.job)
        workspace.mkdir(parents=True)
        save_plan(workspace / "resume_meta.json", build_plan(self.job, 10))
        _write(workspace / "seg_000000.mp4", "10.0")

        self.assertTrue(reset_workspace_if_changed(workspace, build_plan(self.job, 5)))
        self.assertFalse(workspace.exists())

    def test_changed_input_wipes_workspace(self):
        workspace = segment_workspace(self.job)
        workspace.mkdir(parents=True)
        save_plan(workspace / "resume_meta.json", build_plan(self.job, 10))
        _write(Path(self.input), "a different, longer source")

        self.assertTrue(reset_workspace_if_changed(workspace, build_plan(self.job, 10)))

    def test_workspace_without_plan_is_reset(self):
        workspace = segment_workspace(self.job)
        _write(workspace / "seg_000000.mp4", "10.0")
        self.assertTrue(reset_workspace_if_changed(workspace, build_plan(self.job, 10)))

    def test_concat_list_escapes_quotes(self):
        list_path = write_concat_list(self.tmp / "list.txt",
                                      [Path("/w/seg_000000.mp4"), Path("/w/it's.mp4")])
        lines = list_path.read_text().splitlines()
        self.assertEqual(lines[0], "file '/w/seg_000000.mp4'")
        self.assertEqual(lines[1], "file '/w/it'\\''s.mp4'")


class TestScanner(unittest.TestCase):
    """Test discovery skip rules."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.durations = {}

    def tearDown(self):
        self._tmp.cleanup()

    def probe(self, path):
        if path not in self.durations:
            raise JobError(ErrorCode.PROBE_FAILED, "unreadable")
        return self.durations[path]

    def _video(self, name, duration=60.0):
        path = _write(self.root / name)
        self.durations[str(path)] = duration
        return str(path)

    def test_helpers(self):
        self.assertTrue(is_video_file("a.MKV"))
        self.assertFalse(is_video_file("a.avi"))
        self.assertTrue(is_compressed_name("/x/a.COMPRESSED.mp4"))
        self.assertFalse(is_compressed_name("/x/compressed.mp4"))
        self.assertEqual(output_path_for("/x/a.mp4"), "/x/a.compressed.mp4")
        self.assertEqual(output_path_for("/x/a.mp4", "/out"), "/out/a.compressed.mp4")
        self.assertEqual(output_path_for("/x/s/a.mp4", "/out", "s"), "/out/s/a.compressed.mp4")

    def test_directory_scan(self):
        a = self._video("a.mp4", 120.0)
        self._video("sub/b.MOV", 30.0)
        _write(self.root / "notes.txt")
        _write(self.root / "done.compressed.mp4")
        _write(self.root / SEGMENT_ROOT_DIRNAME / "x" / "seg_000000.mp4")

        result = scan_jobs(self.root, probe=self.probe)

        self.assertEqual(sorted(Path(j.input_path).name for j in result.jobs), ["a.mp4", "b.MOV"])
        self.assertAlmostEqual(result.total_duration_sec, 150.0)
        self.assertEqual([i.error_code for i in result.ignored], [ErrorCode.ALREADY_COMPRESSED])
        job_a = next(j for j in result.jobs if j.input_path == a)
        self.assertEqual(job_a.output_path, str(self.root / "a.compressed.mp4"))
        self.assertEqual(job_a.temp_path, job_a.output_path + ".vcpart")
        self.assertEqual(result.store.path, self.root / CHECKPOINT_FILENAME)

    def test_probe_failure_does_not_abort(self):
        self._video("good.mp4")
        _write(self.root / "broken.mp4")

        result = scan_jobs(self.root, probe=self.probe)

        self.assertEqual(len(result.jobs), 1)
        failed = result.ignored[0]
        self.assertEqual(failed.status, ResultStatus.FAILED)
        self.assertEqual(failed.error_code, ErrorCode.DISCOVERY_FAILED)

    def test_existing_output_prompts(self):
        a = self._video("a.mp4")
        _write(self.root / "a.compressed.mp4", "old")
        asked = []

        def decline(path):
            asked.append(path)
            return False

        store = CheckpointStore(self.root / CHECKPOINT_FILENAME)
        result = Scanner(store, None, decline, self.probe).scan(a)
        self.assertEqual(asked, [str(self.root / "a.compressed.mp4")])
        self.assertEqual(result.jobs, [])
        self.assertEqual(result.ignored[0].error_code, ErrorCode.USER_DECLINED)
        self.assertTrue(is_skip(result.ignored[0].error_code))

        result = Scanner(store, None, lambda _p: True, self.probe).scan(a)
        self.assertEqual(len(result.jobs), 1)

    def test_fresh_checkpoint_skipped(self):
        a = self._video("a.mp4")
        output = _write(self.root / "a.compressed.mp4", "done")
        store = CheckpointStore(self.root / CHECKPOINT_FILENAME)
        size, mod_unix = fingerprint(a)
        store.mark_completed(a, str(output), size, mod_unix)

        result = scan_jobs(a, probe=self.probe)
        self.assertEqual(result.jobs, [])
        self.assertEqual(result.ignored[0].error_code, ErrorCode.CHECKPOINT_FRESH)

    def test_output_dir_created(self):
        a = self._video("a.mp4")
        out_dir = self.root / "out"
        result = scan_jobs(a, out_dir, probe=self.probe)
        self.assertTrue(out_dir.is_dir())
        self.assertEqual(result.jobs[0].output_path, str(out_dir / "a.compressed.mp4"))
        self.assertEqual(result.store.path, out_dir / CHECKPOINT_FILENAME)

    def test_output_dir_mirrors_subdirectories(self):
        a = self._video("src/a/x.mp4")
        b = self._video("src/b/x.mp4")
        top = self._video("src/top.mp4")
        out_dir = self.root / "out"

        result = scan_jobs(self.root / "src", out_dir, probe=self.probe)

        outputs = {j.input_path: j.output_path for j in result.jobs}
        self.assertEqual(outputs, {
            a: str(out_dir / "a" / "x.compressed.mp4"),
            b: str(out_dir / "b" / "x.compressed.mp4"),
            top: str(out_dir / "top.compressed.mp4"),
        })
        self.assertEqual(len({j.temp_path for j in result.jobs}), 3)
        self.assertTrue((out_dir / "a").is_dir())
        self.assertEqual(result.store.path, out_dir / CHECKPOINT_FILENAME)

    def test_colliding_outputs_are_not_scheduled(self):
        probe_path = self.root / "Case.tmp"
        probe_path.write_text("x")
        if (self.root / "case.tmp").exists():
            self.skipTest("case-insensitive filesystem")

        first = self._video("clip.mp4")
        second = self._video("clip.MP4")

        result = scan_jobs(self.root, probe=self.probe)

        self.assertEqual([j.input_path for j in result.jobs], [second])
        self.assertEqual(len(result.ignored), 1)
        clash = result.ignored[0]
        self.assertEqual(clash.input_file, first)
        self.assertEqual(clash.status, ResultStatus.FAILED)
        self.assertEqual(clash.error_code, ErrorCode.DUPLICATE_OUTPUT)
        self.assertIn(second, clash.reason)

    def test_missing_input_raises(self):
        with self.assertRaises(ScanError):
            scan_jobs(self.root / "nope.mp4", probe=self.probe)

    def test_corrupt_checkpoint_is_fatal(self):
        self._video("a.mp4")
        _write(self.root / CHECKPOINT_FILENAME, "[[[")
        with self.assertRaises(CheckpointError):
            scan_jobs(self.root, probe=self.probe)


class TestConfig(unittest.TestCase):
    """Test configuration defaults and validation."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults(self):
        config = AppConfig(self.path)
        self.assertEqual(config.workers, DEFAULT_WORKERS)
        self.assertEqual(config.segment_seconds, DEFAULT_SEGMENT_SEC)
        self.assertEqual(config.preset, "standard")
        self.assertTrue(config.override()['segment_resume'])

    def test_validation_clamps(self):
        run_config = AppConfig(self.path).override(
            workers=500, quality="abc", preset="ULTRA", segment_seconds=0)
        self.assertEqual(run_config['workers'], 16)
        self.assertEqual(run_config['quality'], 0)
        self.assertEqual(run_config['preset'], "standard")
        self.assertEqual(run_config['segment_seconds'], DEFAULT_SEGMENT_SEC)

    def test_file_values_loaded_and_clamped(self):
        self.path.write_text(json.dumps({
            'workers': 4, 'preset': "HIGH", 'segment_seconds': 3,
            'hwaccel': None, 'unknown_key': 1,
        }))
        config = AppConfig(self.path)
        self.assertEqual(config.workers, 4)
        self.assertEqual(config.preset, "high")
        self.assertEqual(config.segment_seconds, 10)
        self.assertEqual(config.override()['hwaccel'], "")
        self.assertNotIn('unknown_key', config.override())

    def test_override_does_not_persist(self):
        config = AppConfig(self.path)
        run_config = config.override(workers=3, preset=None, segment_resume=False)
        self.assertEqual(run_config['workers'], 3)
        self.assertEqual(run_config['preset'], "standard")
        self.assertFalse(run_config['segment_resume'])
        self.assertEqual(config.workers, DEFAULT_WORKERS)
        self.assertFalse(self.path.exists())

    def test_malformed_file_uses_defaults(self):
        self.path.write_text("{oops")
        self.assertEqual(AppConfig(self.path).workers, DEFAULT_WORKERS)


class TestReport(unittest.TestCase):
    """Test report formatting."""

    def test_format_size(self):
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(1536), "1.5 KB")
        self.assertEqual(format_size(5 * 1024 ** 3), "5.0 GB")

    def test_report_counts(self):
        processed = [
            ReportItem("/a/x.mp4", status=ResultStatus.PROCESSED, original_size=2048,
                       new_size=1024, command="ffmpeg ..."),
            ReportItem("/a/y.mp4", status=ResultStatus.FAILED, reason="boom"),
        ]
        ignored = [ReportItem("/a/z.compressed.mp4", status=ResultStatus.IGNORED, reason="done")]

        self.assertEqual(summarize(processed, ignored),
                         {'total': 3, 'processed': 1, 'failed': 1, 'cancelled': 0, 'skipped': 1})
        text = format_report(processed, ignored)
        self.assertIn("[1/3] File: x.mp4", text)
        self.assertIn("50.0%", text)
        self.assertIn("Reason: boom", text)
        self.assertIn("Total 3 | Completed 1 | Failed 1 | Cancelled 0 | Skipped 1", text)

    def test_cancelled_jobs_are_not_failures(self):
        processed = [
            ReportItem("/a/x.mp4", status=ResultStatus.FAILED, reason="Cancelled by user",
                       error_code=ErrorCode.CANCELLED),
            ReportItem("/a/y.mp4", status=ResultStatus.FAILED, reason="Not started: run cancelled",
                       error_code=ErrorCode.CANCELLED),
        ]

        counts = summarize(processed, [])
        self.assertEqual(counts['failed'], 0)
        self.assertEqual(counts['cancelled'], 2)
        text = format_report(processed, [])
        self.assertIn("Status: cancelled", text)
        self.assertNotIn("Status: failed", text)
        self.assertIn("Total 2 | Completed 0 | Failed 0 | Cancelled 2 | Skipped 0", text)

    def test_unreadable_input_counts_as_failed(self):
        ignored = [
            ReportItem("/a/broken.mp4", status=ResultStatus.FAILED, reason="Read info failed",
                       error_code=ErrorCode.DISCOVERY_FAILED),
            ReportItem("/a/done.compressed.mp4", status=ResultStatus.IGNORED, reason="done",
                       error_code=ErrorCode.ALREADY_COMPRESSED),
        ]

        counts = summarize([], ignored)
        self.assertEqual((counts['failed'], counts['skipped']), (1, 1))
        text = format_report([], ignored)
        self.assertIn("Status: failed", text)
        self.assertIn("Status: skipped", text)
        self.assertIn("Failed 1 | Cancelled 0 | Skipped 1", text)


if __name__ == "__main__":
    unittest.main()
