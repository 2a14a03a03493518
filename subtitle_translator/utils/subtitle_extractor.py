"""
Subtitle stream extraction using FFmpeg
"""
import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from loguru import logger

from ..errors import ExtractionError


VIDEO_EXTENSIONS = (".mkv", ".mp4", ".avi", ".mov", ".webm", ".m4v")

CODEC_EXTENSIONS = {
    "subrip": "srt",
    "srt": "srt",
    "mov_text": "srt",
    "ass": "ass",
    "ssa": "ass",
    "webvtt": "vtt",
    "dvd_subtitle": "sub",
    "hdmv_pgs_subtitle": "sup",
    "pgssub": "sup",
}


@dataclass
class SubtitleStream:
    """A subtitle stream inside a container file"""
    index: int  # position among subtitle streams
    stream_spec: str  # ffmpeg stream specifier, e.g. 0:s:1
    codec: str
    language: str = "und"
    title: str = ""


@dataclass
class ExtractResult:
    """One extracted stream"""
    output_path: Path
    stream: SubtitleStream


def is_video_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def output_extension(codec: str) -> str:
    """File extension ffmpeg should write for a subtitle codec"""
    return CODEC_EXTENSIONS.get(codec.lower(), "srt")


async def _run_subprocess(cmd: List[str], timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """Run a command and capture its output"""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ExtractionError(f"{cmd[0]} not found. Install FFmpeg to extract subtitles.")

    try:
        if timeout:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        else:
            stdout, stderr = await proc.communicate()
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ExtractionError(f"{cmd[0]} timed out after {timeout}s")

    return (
        proc.returncode,
        stdout.decode(errors="replace") if stdout else "",
        stderr.decode(errors="replace") if stderr else "",
    )


async def list_streams(video_path: Union[str, Path]) -> List[SubtitleStream]:
    """List subtitle streams with ffprobe"""
    cmd = [
        "ffprobe",
        "-v", "error",
        "-select_streams", "s",
        "-show_entries", "stream=index,codec_name:stream_tags=language,title",
        "-of", "json",
        str(video_path),
    ]
    returncode, stdout, stderr = await _run_subprocess(cmd)
    if returncode != 0:
        raise ExtractionError(f"ffprobe failed on {video_path}: {stderr.strip()}")

    try:
        data = json.loads(stdout or "{}")
    except ValueError as e:
        raise ExtractionError(f"Could not read ffprobe output: {e}") from e

    streams = []
    for i, stream in enumerate(data.get("streams", [])):
        tags = stream.get("tags") or {}
        streams.append(SubtitleStream(
            index=i,
            stream_spec=f"0:s:{i}",
            codec=stream.get("codec_name") or "unknown",
            language=tags.get("language") or "und",
            title=tags.get("title") or "",
        ))

    logger.debug(f"Found {len(streams)} subtitle stream(s) in {video_path}")
    return streams


async def _extract_stream(video_path: Path, stream_index: int, output_path: Path, ext: str):
    cmd = [
        "ffmpeg", "-y",
        "-i", str(video_path),
        "-map", f"0:s:{stream_index}",
        "-c:s", "srt" if ext == "srt" else "copy",
        str(output_path),
    ]
    returncode, _, stderr = await _run_subprocess(cmd)
    if returncode != 0:
        raise ExtractionError(
            f"ffmpeg failed to extract stream {stream_index} from {video_path}: {stderr.strip()[-500:]}"
        )


async def extract_subtitle(
    video_path: Union[str, Path],
    stream_index: int = 0,
    output_path: Optional[Union[str, Path]] = None,
    codec: Optional[str] = None,
) -> Path:
    """
    Extract one subtitle stream to a file.

    Args:
        video_path: Container file (mkv, mp4, ...)
        stream_index: Index among the file's subtitle streams
        output_path: Destination, defaults to <video>[.<lang>].<ext>
        codec: Override the codec used to pick the extension

    Returns:
        Path of the extracted subtitle file
    """
    video_path = Path(video_path)
    streams = await list_streams(video_path)

    if stream_index < 0 or stream_index >= len(streams):
        raise ExtractionError(
            f"Stream index {stream_index} not found. File has {len(streams)} subtitle stream(s)."
        )

    stream = streams[stream_index]
    ext = output_extension(codec or stream.codec)
    if output_path is None:
        lang_suffix = f".{stream.language}" if stream.language != "und" else ""
        output_path = video_path.with_name(f"{video_path.stem}{lang_suffix}.{ext}")
    output_path = Path(output_path)

    logger.info(f"Extracting subtitle stream {stream_index} ({stream.codec}) to {output_path}")
    await _extract_stream(video_path, stream_index, output_path, ext)
    return output_path


async def extract_all(
    video_path: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
) -> List[ExtractResult]:
    """Extract every subtitle stream of a file"""
    video_path = Path(video_path)
    target_dir = Path(output_dir) if output_dir else video_path.parent
    results = []

    for stream in await list_streams(video_path):
        ext = output_extension(stream.codec)
        suffix = f".{stream.language}" if stream.language != "und" else f".track{stream.index}"
        output_path = target_dir / f"{video_path.stem}{suffix}.{ext}"

        await _extract_stream(video_path, stream.index, output_path, ext)
        results.append(ExtractResult(output_path=output_path, stream=stream))

    logger.info(f"Extracted {len(results)} subtitle stream(s) from {video_path}")
    return results
