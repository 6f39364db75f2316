import sys

from ffq.models.job import JobSpec
from ffq.workers.job_queue import JobQueue
from ffq.workers.process_runner import CancelToken, FFmpegRunner


def py_runner(**kw):
    # the interpreter stands in for ffmpeg: argv becomes ["-c", script]
    return FFmpegRunner({"ffmpeg_path": sys.executable}, **kw)


def test_cancel_token_runs_callbacks_once():
    calls = []
    token = CancelToken()
    token.add_callback(lambda: calls.append("a"))
    token.cancel()
    token.cancel()
    assert calls == ["a"]
    assert token.cancelled


def test_cancel_token_late_callback_fires_immediately():
    calls = []
    token = CancelToken()
    token.cancel()
    token.add_callback(lambda: calls.append("late"))
    assert calls == ["late"]


def test_runner_streams_stderr_chunks():
    script = ("import sys\n"
              "sys.stderr.write('frame=1 time=00:00:01.00 bitrate=1k speed=1.5x\\r')\n"
              "sys.stderr.flush()\n"
              "sys.stderr.write('frame=2 time=00:00:02.00 bitrate=1k speed=1.6x\\r')\n")
    chunks = []
    result = py_runner().run(["-c", script], chunks.append, CancelToken())
    assert result.success
    assert result.exit_code == 0
    assert "time=00:00:02.00" in "".join(chunks)
    assert result.error_output == "".join(chunks)


def test_runner_reports_nonzero_exit():
    script = "import sys; sys.stderr.write('out.mp4: Permission denied\\n'); sys.exit(3)"
    result = py_runner().run(["-c", script], lambda _: None, CancelToken())
    assert not result.success
    assert result.exit_code == 3
    assert "Permission denied" in result.error_output


def test_runner_missing_binary(tmp_path):
    runner = FFmpegRunner({"ffmpeg_path": str(tmp_path / "no-ffmpeg")})
    result = runner.run(["-version"], lambda _: None, CancelToken())
    assert not result.success
    assert result.exit_code == -1
    assert "not found" in result.error_output


def test_runner_does_not_spawn_when_already_canceled(tmp_path):
    marker = tmp_path / "spawned"
    token = CancelToken()
    token.cancel()
    result = py_runner().run(["-c", f"open({str(marker)!r}, 'w').close()"], lambda _: None, token)
    assert not result.success
    assert not marker.exists()


def test_runner_terminates_on_cancel():
    script = "import sys, time\nsys.stderr.write('started\\n'); sys.stderr.flush()\ntime.sleep(60)\n"
    token = CancelToken()
    result = py_runner().run(["-c", script], lambda _: token.cancel(), token)
    assert not result.success
    assert result.exit_code != 0


def test_queue_with_real_runner():
    script = ("import sys\n"
              "for t in ('00:00:01.00', '00:00:02.00'):\n"
              "    sys.stderr.write(f'frame=1 time={t} bitrate=1k speed=9x\\r'); sys.stderr.flush()\n")
    q = JobQueue(py_runner(), dispatcher=lambda loop: loop())
    percents = []
    q.progress.connect(lambda e: percents.append(e.percent))
    job_id = q.add_job(JobSpec("in.mov", "out.mp4", ("-c", script), expected_duration_seconds=2))

    q.start()

    job = q.get_job(job_id)
    assert job.status == "completed"
    assert job.progress_percent == 100
    assert percents and percents == sorted(percents)
    assert job.speed_label == "9x"
