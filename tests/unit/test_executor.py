"""Unit tests for the ffmpeg transcode executor."""

import asyncio
import dataclasses
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from ac3mux.core.exceptions import TranscodeError
from ac3mux.core.executor import FFmpegTranscoder, output_path_for, replace_original
from ac3mux.core.planner import PlanBuilder


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, returncode=0, stderr=b"", output=None, delay=0):
        self._returncode = returncode
        self.returncode = None
        self.stderr = stderr
        self.output = output
        self.delay = delay
        self.killed = False

    async def communicate(self):
        if self.output is not None:
            # ffmpeg starts writing before it finishes
            self.output.write_bytes(b"partial")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.output is not None:
            self.output.write_bytes(b"1" * 2048)
        self.returncode = self._returncode
        return b"", self.stderr

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        return self.returncode


@pytest.fixture
def transcoder():
    """Create FFmpegTranscoder instance."""
    with patch("shutil.which", return_value="/usr/bin/ffmpeg"):
        return FFmpegTranscoder(timeout_seconds=60)


@pytest.fixture
def plan(settings, sample_probe):
    """Plan for the sample probe: eng convert, ger copy+default, two subs."""
    return PlanBuilder(settings).build(sample_probe)


@pytest.fixture
def media_file(tmp_path):
    """Create a fake MKV input."""
    file_path = tmp_path / "Movie.mkv"
    file_path.write_bytes(b"0" * 4096)
    return file_path


@pytest.fixture
def plenty_of_space():
    mock_stat = Mock()
    mock_stat.free = 100 * 1024 * 1024 * 1024
    with patch("shutil.disk_usage", return_value=mock_stat):
        yield


def _spawn(process):
    return patch.object(asyncio, "create_subprocess_exec", AsyncMock(return_value=process))


class TestOutputPath:
    """Test output path derivation."""

    def test_suffix_before_extension(self):
        assert output_path_for(Path("/media/Movie.mkv")) == Path("/media/Movie_transcoded.mkv")

    def test_custom_suffix_and_dotted_name(self):
        path = Path("/media/Show.S01E01.1080p.mp4")

        assert output_path_for(path, ".ac3") == Path("/media/Show.S01E01.1080p.ac3.mp4")


class TestBuildCommand:
    """Test ffmpeg command construction."""

    def test_init_requires_ffmpeg(self):
        """FFmpegTranscoder requires ffmpeg to be available."""
        with patch("shutil.which", return_value=None):
            with pytest.raises(RuntimeError, match="ffmpeg not found"):
                FFmpegTranscoder()

    def test_maps_video_then_planned_streams(self, transcoder, plan, tmp_path):
        """Video is mapped optionally, then every directive by absolute index."""
        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["0:v?", "0:1", "0:2", "0:4", "0:5"]
        assert cmd[0] == "/usr/bin/ffmpeg"
        assert cmd[cmd.index("-c:v") + 1] == "copy"
        assert cmd[-1] == str(tmp_path / "out.mkv")

    def test_audio_convert_options(self, transcoder, plan, tmp_path):
        """Converted audio gets codec, channels, bitrate and title."""
        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        assert cmd[cmd.index("-c:a:0") + 1] == "ac3"
        assert cmd[cmd.index("-ac:a:0") + 1] == "2"
        assert cmd[cmd.index("-b:a:0") + 1] == "224k"
        assert cmd[cmd.index("-metadata:s:a:0") + 1] == "title=eng AC3 2.0 @ 224k"

    def test_audio_copy_has_no_encoding_options(self, transcoder, plan, tmp_path):
        """Copied audio only gets codec copy and a disposition."""
        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        assert cmd[cmd.index("-c:a:1") + 1] == "copy"
        assert "-b:a:1" not in cmd
        assert "-metadata:s:a:1" not in cmd

    def test_dispositions(self, transcoder, plan, tmp_path):
        """Exactly the default directive is flagged default."""
        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        assert cmd[cmd.index("-disposition:a:0") + 1] == "0"
        assert cmd[cmd.index("-disposition:a:1") + 1] == "default"
        assert cmd.count("default") == 1

    def test_subtitle_options(self, transcoder, plan, tmp_path):
        """SRT copied, ASS converted."""
        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        assert cmd[cmd.index("-c:s:0") + 1] == "copy"
        assert cmd[cmd.index("-c:s:1") + 1] == "srt"

    def test_mp4_text_subtitles_use_mov_text(self, transcoder, plan, tmp_path):
        """MP4 outputs get mov_text instead of srt."""
        cmd = transcoder.build_command(tmp_path / "in.mp4", tmp_path / "out.mp4", plan)

        assert cmd[cmd.index("-c:s:1") + 1] == "mov_text"

    def test_subtitles_mapped_without_conversion(self, transcoder, settings, sample_probe, tmp_path):
        """Turning conversion off still maps and copies every subtitle."""
        plan = PlanBuilder(dataclasses.replace(settings, subtitle_conversion=False)).build(
            sample_probe
        )

        cmd = transcoder.build_command(tmp_path / "in.mkv", tmp_path / "out.mkv", plan)

        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["0:v?", "0:1", "0:2", "0:4", "0:5"]
        assert cmd[cmd.index("-c:s:0") + 1] == "copy"
        assert cmd[cmd.index("-c:s:1") + 1] == "copy"


class TestTranscode:
    """Test running ffmpeg."""

    @pytest.mark.asyncio
    async def test_success(self, transcoder, plan, media_file, plenty_of_space):
        """Successful run leaves output beside untouched input."""
        output = output_path_for(media_file)
        process = FakeProcess(output=output)

        with _spawn(process) as spawn:
            await transcoder.transcode(media_file, output, plan)

        assert output.read_bytes() == b"1" * 2048
        assert media_file.read_bytes() == b"0" * 4096
        args = spawn.call_args.args
        assert args[-1] == str(output)

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(self, transcoder, plan, media_file, plenty_of_space):
        """Non-zero exit raises and removes the output."""
        output = output_path_for(media_file)
        process = FakeProcess(returncode=1, stderr=b"Invalid data", output=output)

        with _spawn(process):
            with pytest.raises(TranscodeError, match="exited with code 1") as exc_info:
                await transcoder.transcode(media_file, output, plan)

        assert exc_info.value.stderr == "Invalid data"
        assert not output.exists()
        assert media_file.read_bytes() == b"0" * 4096

    @pytest.mark.asyncio
    async def test_missing_output(self, transcoder, plan, media_file, plenty_of_space):
        """Exit code 0 without output file still fails."""
        with _spawn(FakeProcess()):
            with pytest.raises(TranscodeError, match="no output"):
                await transcoder.transcode(media_file, output_path_for(media_file), plan)

    @pytest.mark.asyncio
    async def test_timeout_kills_ffmpeg(self, plan, media_file, plenty_of_space):
        """Timeout kills the process and cleans up."""
        with patch("shutil.which", return_value="/usr/bin/ffmpeg"):
            transcoder = FFmpegTranscoder(timeout_seconds=0.05)
        output = output_path_for(media_file)
        process = FakeProcess(output=output, delay=10)

        with _spawn(process):
            with pytest.raises(TranscodeError, match="timed out"):
                await transcoder.transcode(media_file, output, plan)

        assert process.killed
        assert not output.exists()
        assert media_file.exists()

    @pytest.mark.asyncio
    async def test_cancellation_cleans_up(self, transcoder, plan, media_file, plenty_of_space):
        """Cancelling a transcode kills ffmpeg and never touches the input."""
        output = output_path_for(media_file)
        process = FakeProcess(output=output, delay=10)

        with _spawn(process):
            task = asyncio.create_task(transcoder.transcode(media_file, output, plan))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert process.killed
        assert not output.exists()
        assert media_file.read_bytes() == b"0" * 4096

    @pytest.mark.asyncio
    async def test_insufficient_disk_space(self, transcoder, plan, media_file):
        """Transcode refuses to start on a full disk."""
        mock_stat = Mock()
        mock_stat.free = 10

        with patch("shutil.disk_usage", return_value=mock_stat):
            with pytest.raises(TranscodeError, match="disk space"):
                await transcoder.transcode(media_file, output_path_for(media_file), plan)

    @pytest.mark.asyncio
    async def test_output_must_differ_from_input(self, transcoder, plan, media_file):
        """Writing onto the input is refused."""
        with pytest.raises(TranscodeError, match="must differ"):
            await transcoder.transcode(media_file, media_file, plan)

    @pytest.mark.asyncio
    async def test_ffmpeg_cannot_start(self, transcoder, plan, media_file, plenty_of_space):
        """OS errors on spawn become TranscodeError."""
        failing = AsyncMock(side_effect=FileNotFoundError("ffmpeg"))
        with patch.object(asyncio, "create_subprocess_exec", failing):
            with pytest.raises(TranscodeError, match="Could not start"):
                await transcoder.transcode(media_file, output_path_for(media_file), plan)


def test_replace_original(media_file):
    """The output atomically replaces the input."""
    output = output_path_for(media_file)
    output.write_bytes(b"new")

    replace_original(output, media_file)

    assert media_file.read_bytes() == b"new"
    assert not output.exists()
