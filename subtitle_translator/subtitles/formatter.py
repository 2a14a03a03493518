"""
Subtitle Formatter Module

Formats captions for output in SRT, VTT and ASS formats.
Captions are always renumbered from 1 on output.
"""
import os
import tempfile
from pathlib import Path
from typing import List, Union

from loguru import logger

from .parser import Caption, SubtitleFormat


ASS_HEADER = """[Script Info]
Title: Translated Subtitles
ScriptType: v4.00+
Collisions: Normal
PlayDepth: 0

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: Default,Arial,20,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,2,2,10,10,10,1

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
"""


class SubtitleFormatter:
    """
    Formats caption sequences into SRT, VTT or ASS text.

    ASS output uses a fixed style template; styles from a source file
    are not carried over.
    """

    def format(self, captions: List[Caption], fmt: Union[str, SubtitleFormat]) -> str:
        """Serialize captions in the given format"""
        fmt = SubtitleFormat.from_name(fmt)
        if fmt is SubtitleFormat.VTT:
            return self.format_vtt(captions)
        if fmt is SubtitleFormat.ASS:
            return self.format_ass(captions)
        return self.format_srt(captions)

    def format_srt(self, captions: List[Caption]) -> str:
        """
        Format captions as SRT content.

        Args:
            captions: List of captions

        Returns:
            SRT formatted string
        """
        blocks = []
        for i, caption in enumerate(captions, 1):
            start_ts = self._format_srt_timestamp(caption.start_ms)
            end_ts = self._format_srt_timestamp(caption.end_ms)
            blocks.append(f"{i}\n{start_ts} --> {end_ts}\n{caption.text}")

        return "\n\n".join(blocks) + "\n"

    def format_vtt(self, captions: List[Caption]) -> str:
        """
        Format captions as WebVTT content.

        Args:
            captions: List of captions

        Returns:
            VTT formatted string
        """
        blocks = []
        for i, caption in enumerate(captions, 1):
            start_ts = self._format_vtt_timestamp(caption.start_ms)
            end_ts = self._format_vtt_timestamp(caption.end_ms)
            blocks.append(f"{i}\n{start_ts} --> {end_ts}\n{caption.text}")

        return "WEBVTT\n\n" + "\n\n".join(blocks) + "\n"

    def format_ass(self, captions: List[Caption]) -> str:
        """Format captions as ASS content with the default style"""
        dialogues = []
        for caption in captions:
            start_ts = self._format_ass_timestamp(caption.start_ms)
            end_ts = self._format_ass_timestamp(caption.end_ms)
            text = caption.text.replace("\n", "\\N")
            dialogues.append(f"Dialogue: 0,{start_ts},{end_ts},Default,,0,0,0,,{text}")

        return ASS_HEADER + "\n".join(dialogues) + "\n"

    def save(
        self,
        captions: List[Caption],
        output_path: Union[str, Path],
        fmt: Union[str, SubtitleFormat],
    ) -> Path:
        """
        Write captions to a file.

        The content goes to a temporary file in the target directory first
        and is renamed into place, so a failure never leaves a partial file.
        """
        content = self.format(captions, fmt)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=str(output_path.parent), prefix=f".{output_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.replace(tmp_name, output_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(f"Saved {SubtitleFormat.from_name(fmt).value.upper()}: {output_path}")
        return output_path

    @staticmethod
    def _split_ms(ms: int):
        ms = max(0, int(ms))
        hours = ms // 3600000
        minutes = (ms % 3600000) // 60000
        seconds = (ms % 60000) // 1000
        return hours, minutes, seconds, ms % 1000

    def _format_srt_timestamp(self, ms: int) -> str:
        """Format milliseconds to SRT timestamp (HH:MM:SS,mmm)"""
        hours, minutes, seconds, millis = self._split_ms(ms)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"

    def _format_vtt_timestamp(self, ms: int) -> str:
        """Format milliseconds to VTT timestamp (HH:MM:SS.mmm)"""
        hours, minutes, seconds, millis = self._split_ms(ms)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"

    def _format_ass_timestamp(self, ms: int) -> str:
        """Format milliseconds to ASS timestamp (H:MM:SS.cc), centiseconds truncated"""
        hours, minutes, seconds, millis = self._split_ms(ms)
        return f"{hours}:{minutes:02d}:{seconds:02d}.{millis // 10:02d}"


_formatter = SubtitleFormatter()


def serialize(captions: List[Caption], fmt: Union[str, SubtitleFormat]) -> str:
    """Serialize captions, see SubtitleFormatter.format"""
    return _formatter.format(captions, fmt)
