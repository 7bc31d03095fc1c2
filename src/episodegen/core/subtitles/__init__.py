"""Import sous-titres SRT/VTT et découpage en épisodes."""

from episodegen.core.subtitles.parsers import (
    SUPPORTED_EXTENSIONS,
    UnsupportedSubtitleFormat,
    load_subtitle_file,
    parse_episodes,
    read_subtitle_file_content,
    truncate_file_name,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "UnsupportedSubtitleFormat",
    "load_subtitle_file",
    "parse_episodes",
    "read_subtitle_file_content",
    "truncate_file_name",
]
