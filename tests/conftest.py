"""Shared pytest fixtures for ac3mux tests."""

import pytest

from ac3mux.config import Config, PlanSettings
from ac3mux.models.stream import ProbeResult, StreamDescriptor, StreamKind


def audio(index, codec, channels, language):
    """Build an audio stream descriptor."""
    return StreamDescriptor(
        original_index=index,
        kind=StreamKind.AUDIO,
        codec=codec,
        channels=channels,
        language=language,
    )


def subtitle(index, codec, language="eng"):
    """Build a subtitle stream descriptor."""
    return StreamDescriptor(
        original_index=index, kind=StreamKind.SUBTITLE, codec=codec, language=language
    )


@pytest.fixture
def default_config():
    """Create a default configuration for testing."""
    return Config()


@pytest.fixture
def settings():
    """Plan settings accepting English and German, German as main language."""
    return PlanSettings(
        accepted_languages=frozenset({"eng", "ger"}),
        main_language="ger",
        passthrough_codecs=frozenset({"ac3", "eac3"}),
    )


@pytest.fixture
def sample_probe():
    """Probe result of a typical release: video, three audio, two subtitles."""
    return ProbeResult(
        audio=(
            audio(1, "aac", 2, "eng"),
            audio(2, "ac3", 6, "ger"),
            audio(3, "dts", 8, "fre"),
        ),
        subtitles=(
            subtitle(4, "subrip", "eng"),
            subtitle(5, "ass", "ger"),
        ),
    )


@pytest.fixture
def sample_ffprobe_output():
    """ffprobe JSON matching sample_probe, with the video stream included."""
    return {
        "streams": [
            {"index": 0, "codec_type": "video", "codec_name": "h264"},
            {
                "index": 1,
                "codec_type": "audio",
                "codec_name": "aac",
                "channels": 2,
                "tags": {"language": "eng", "title": "Stereo"},
            },
            {
                "index": 2,
                "codec_type": "audio",
                "codec_name": "ac3",
                "channels": 6,
                "tags": {"language": "ger"},
            },
            {
                "index": 3,
                "codec_type": "audio",
                "codec_name": "dts",
                "channels": 8,
                "tags": {"language": "fre"},
            },
            {"index": 4, "codec_type": "subtitle", "codec_name": "subrip", "tags": {"language": "eng"}},
            {"index": 5, "codec_type": "subtitle", "codec_name": "ass", "tags": {"language": "ger"}},
            {"index": 6, "codec_type": "attachment", "codec_name": "ttf"},
        ]
    }
