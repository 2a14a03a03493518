"""
Subtitle Parser Module

Parses SRT, VTT and ASS/SSA subtitle formats into a unified caption sequence.
Malformed blocks are skipped rather than aborting the whole file.
"""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from ..errors import EmptyResultError, InputError, StructuralParseError, UnknownFormatError


class SubtitleFormat(Enum):
    """Supported timed-text formats"""
    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: Union[str, "SubtitleFormat"]) -> "SubtitleFormat":
        """Resolve a format name such as 'srt', '.vtt' or 'ssa'"""
        if isinstance(name, SubtitleFormat):
            return name
        key = str(name).strip().lower().lstrip(".")
        if key == "ssa":
            key = "ass"
        for fmt in cls:
            if fmt.value == key:
                return fmt
        raise UnknownFormatError(f"Unknown subtitle format: {name}")


@dataclass
class Caption:
    """A single timed caption"""
    index: int
    start_ms: int
    end_ms: int
    text: str

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def char_count(self) -> int:
        return len(self.text)


def detect_format(content: str, filename: Optional[Union[str, Path]] = None) -> SubtitleFormat:
    """
    Detect the subtitle format.

    The filename extension wins when it is a known subtitle extension,
    otherwise the content is sniffed.
    """
    if filename:
        suffix = Path(str(filename)).suffix.lower()
        if suffix == ".vtt":
            return SubtitleFormat.VTT
        if suffix in (".ass", ".ssa"):
            return SubtitleFormat.ASS
        if suffix == ".srt":
            return SubtitleFormat.SRT

    if content.lstrip("\ufeff").strip().startswith("WEBVTT"):
        return SubtitleFormat.VTT
    if "[Script Info]" in content or "Format: Layer" in content:
        return SubtitleFormat.ASS
    return SubtitleFormat.SRT


def normalize_line_endings(content: str) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n")


def read_subtitle_file(file_path: Union[str, Path]) -> str:
    """
    Read a subtitle file as UTF-8 text, dropping a leading BOM.

    Raises:
        InputError: the file cannot be read or is not valid UTF-8
    """
    file_path = Path(file_path)
    try:
        return file_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputError(
            f"{file_path} is not valid UTF-8 (byte 0x{e.object[e.start]:02x} at offset {e.start}). "
            f"Re-save it as UTF-8 and try again."
        ) from e
    except OSError as e:
        raise InputError(f"Cannot read {file_path}: {e.strerror or e}") from e


class SubtitleParser:
    """
    Unified subtitle parser for SRT, VTT and ASS formats.

    Usage:
        parser = SubtitleParser()
        captions = parser.parse_file("subtitles.srt")
        # or
        captions = parser.parse(content, SubtitleFormat.SRT)
    """

    BLOCK_SEPARATOR = re.compile(r"\n\s*\n")

    # 00:00:01,000 --> 00:00:02,000 (comma or dot before millis)
    SRT_TIMING = re.compile(
        r"(\d{1,2}:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d{1,2}:\d{2}:\d{2}[,.]\d{3})"
    )

    # 00:00:01.000 --> 00:00:02.000, hours optional
    VTT_TIMING = re.compile(
        r"((?:\d{1,2}:)?\d{2}:\d{2}\.\d{3})\s*-->\s*((?:\d{1,2}:)?\d{2}:\d{2}\.\d{3})"
    )

    TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})")

    # ASS timestamps: H:MM:SS.cc
    ASS_TIME_PATTERN = re.compile(r"(\d+):(\d{2}):(\d{2})\.(\d{2})")

    VTT_SKIPPED_BLOCKS = ("WEBVTT", "NOTE", "STYLE", "REGION")

    HTML_TAG = re.compile(r"<[^>]+>")
    ASS_OVERRIDE_TAG = re.compile(r"\{[^}]*\}")

    def parse(self, content: str, fmt: Union[str, SubtitleFormat]) -> List[Caption]:
        """
        Parse subtitle content in the given format.

        Raises:
            UnknownFormatError: the format name is not recognised
            EmptyResultError: no caption could be decoded
        """
        fmt = SubtitleFormat.from_name(fmt)
        if fmt is SubtitleFormat.VTT:
            captions = self.parse_vtt(content)
        elif fmt is SubtitleFormat.ASS:
            captions = self.parse_ass(content)
        else:
            captions = self.parse_srt(content)

        if not captions:
            raise EmptyResultError(f"No subtitles found in {fmt.value.upper()} content")
        return captions

    def parse_file(self, file_path: Union[str, Path]) -> List[Caption]:
        """
        Parse a subtitle file (auto-detects format).

        Args:
            file_path: Path to subtitle file

        Returns:
            List of Caption objects
        """
        file_path = Path(file_path)
        content = read_subtitle_file(file_path)
        fmt = detect_format(content, file_path)
        logger.info(f"Reading {fmt.value.upper()} subtitles: {file_path}")
        return self.parse(content, fmt)

    def parse_srt(self, content: str) -> List[Caption]:
        """
        Parse SRT format subtitles.

        Each block needs an index line, a timing line and at least one
        line of text. Anything else is skipped.
        """
        captions = []

        for block in self._split_blocks(content):
            try:
                start_ms, end_ms, text = self._parse_srt_block(block)
            except StructuralParseError as e:
                logger.debug(f"Skipping SRT block: {e}")
                continue

            captions.append(Caption(
                index=len(captions) + 1,
                start_ms=start_ms,
                end_ms=end_ms,
                text=text,
            ))

        logger.info(f"Parsed {len(captions)} captions from SRT")
        return captions

    def parse_vtt(self, content: str) -> List[Caption]:
        """
        Parse WebVTT format subtitles.

        Cue identifiers are ignored; captions are numbered in file order.
        """
        captions = []

        for block in self._split_blocks(content):
            if block.lstrip().startswith(self.VTT_SKIPPED_BLOCKS):
                continue

            try:
                start_ms, end_ms, text = self._parse_vtt_block(block)
            except StructuralParseError as e:
                logger.debug(f"Skipping VTT cue: {e}")
                continue

            captions.append(Caption(
                index=len(captions) + 1,
                start_ms=start_ms,
                end_ms=end_ms,
                text=text,
            ))

        logger.info(f"Parsed {len(captions)} captions from VTT")
        return captions

    def parse_ass(self, content: str) -> List[Caption]:
        """
        Parse Advanced SubStation Alpha subtitles.

        Column order comes from the Format: line of the [Events] section,
        so fields are looked up by name rather than by position.
        """
        captions = []
        in_events = False
        columns: Dict[str, int] = {}

        for raw_line in normalize_line_endings(content.lstrip("\ufeff")).split("\n"):
            line = raw_line.strip()

            if line.startswith("[") and line.endswith("]"):
                in_events = line.lower() == "[events]"
                continue

            if not in_events:
                continue

            if line.startswith("Format:"):
                names = [name.strip().lower() for name in line[len("Format:"):].split(",")]
                columns = {name: i for i, name in enumerate(names)}
                continue

            if not line.startswith("Dialogue:"):
                continue

            try:
                start_ms, end_ms, text = self._parse_dialogue(line, columns)
            except StructuralParseError as e:
                logger.debug(f"Skipping ASS dialogue: {e}")
                continue

            captions.append(Caption(
                index=len(captions) + 1,
                start_ms=start_ms,
                end_ms=end_ms,
                text=text,
            ))

        logger.info(f"Parsed {len(captions)} captions from ASS")
        return captions

    def _split_blocks(self, content: str) -> List[str]:
        normalized = normalize_line_endings(content.lstrip("\ufeff"))
        return [block for block in self.BLOCK_SEPARATOR.split(normalized) if block.strip()]

    def _parse_srt_block(self, block: str):
        lines = [line for line in block.split("\n") if line.strip()]
        if len(lines) < 3:
            raise StructuralParseError(f"expected at least 3 lines, got {len(lines)}")

        if not lines[0].strip().isdigit():
            raise StructuralParseError(f"invalid index line: {lines[0]!r}")

        timing = self.SRT_TIMING.search(lines[1])
        if not timing:
            raise StructuralParseError(f"invalid timing line: {lines[1]!r}")

        start_ms = self._time_to_ms(timing.group(1))
        end_ms = self._time_to_ms(timing.group(2))
        return start_ms, end_ms, "\n".join(lines[2:])

    def _parse_vtt_block(self, block: str):
        lines = [line for line in block.split("\n") if line.strip()]
        if len(lines) < 2:
            raise StructuralParseError("cue has no text")

        # Optional cue identifier before the timing line
        timing_idx = 0 if "-->" in lines[0] else 1

        timing = self.VTT_TIMING.search(lines[timing_idx])
        if not timing:
            raise StructuralParseError(f"invalid timing line: {lines[timing_idx]!r}")

        text_lines = [self.HTML_TAG.sub("", line) for line in lines[timing_idx + 1:]]
        text = "\n".join(text_lines).strip()
        if not text:
            raise StructuralParseError("cue has no text")

        start_ms = self._time_to_ms(self._pad_vtt_hours(timing.group(1)))
        end_ms = self._time_to_ms(self._pad_vtt_hours(timing.group(2)))
        return start_ms, end_ms, text

    def _parse_dialogue(self, line: str, columns: Dict[str, int]):
        try:
            start_idx = columns["start"]
            end_idx = columns["end"]
            text_idx = columns["text"]
        except KeyError:
            raise StructuralParseError("Format line lacks start/end/text columns")

        # Only the first N-1 commas separate fields; the rest belong to the text
        values = line[len("Dialogue:"):].split(",", len(columns) - 1)
        if len(values) <= max(start_idx, end_idx, text_idx):
            raise StructuralParseError(f"expected {len(columns)} fields, got {len(values)}")

        start_ms = self._ass_time_to_ms(values[start_idx].strip())
        end_ms = self._ass_time_to_ms(values[end_idx].strip())

        text = ",".join(values[text_idx:]).strip()
        text = text.replace("\\N", "\n").replace("\\n", "\n")
        text = self.ASS_OVERRIDE_TAG.sub("", text)
        return start_ms, end_ms, text

    @staticmethod
    def _pad_vtt_hours(time_str: str) -> str:
        """MM:SS.mmm -> 00:MM:SS.mmm"""
        if time_str.count(":") == 1:
            return "00:" + time_str
        return time_str

    def _time_to_ms(self, time_str: str) -> int:
        """Parse HH:MM:SS,mmm or HH:MM:SS.mmm to milliseconds"""
        match = self.TIME_PATTERN.match(time_str)
        if not match:
            raise StructuralParseError(f"invalid timestamp: {time_str!r}")
        hours, minutes, seconds, millis = (int(g) for g in match.groups())
        return hours * 3600000 + minutes * 60000 + seconds * 1000 + millis

    def _ass_time_to_ms(self, time_str: str) -> int:
        """Parse H:MM:SS.cc to milliseconds"""
        match = self.ASS_TIME_PATTERN.match(time_str)
        if not match:
            raise StructuralParseError(f"invalid ASS timestamp: {time_str!r}")
        hours, minutes, seconds, centis = (int(g) for g in match.groups())
        return hours * 3600000 + minutes * 60000 + seconds * 1000 + centis * 10


_parser = SubtitleParser()


def parse(content: str, fmt: Union[str, SubtitleFormat]) -> List[Caption]:
    """Parse subtitle content, see SubtitleParser.parse"""
    return _parser.parse(content, fmt)
