"""
Batch jobs: translate many files described in a YAML config.

Example jobs.yaml:

    defaults:
      from: English
      to: Spanish
      format: srt
      batch_size: 200
    jobs:
      - input: movie.mkv
        stream: 1
      - input: episode.vtt
        to: French
        output: episode.fr.vtt

Jobs run one after another. A failing job is logged and counted; the
remaining jobs still run.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml
from loguru import logger

from .errors import JobConfigError
from .subtitles.batcher import DEFAULT_MAX_CHARS
from .subtitles.parser import SubtitleFormat
from .translation.providers import ProviderOptions, TranslationProvider, UsageStats, create_provider
from .translation.translator import Translator, resolve_language
from .utils.subtitle_extractor import extract_subtitle, is_video_file


DEFAULT_SOURCE_LANG = "English"
DEFAULT_BATCH_SIZE = 500


@dataclass
class Job:
    """One translation job"""
    input: str
    to: str
    source: str = DEFAULT_SOURCE_LANG  # "from" in YAML
    output: Optional[str] = None
    format: Optional[str] = None
    stream: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass
class BatchConfig:
    defaults: Dict[str, Any]
    jobs: List[Job]


@dataclass
class JobResult:
    """Outcome of one job"""
    job: Job
    success: bool
    output_path: Optional[Path] = None
    captions: int = 0
    stats: Optional[UsageStats] = None
    error: Optional[str] = None


@dataclass
class BatchReport:
    completed: int = 0
    failed: int = 0
    results: List[JobResult] = field(default_factory=list)


def _batch_size(entry: Mapping[str, Any]) -> Optional[int]:
    value = entry.get("batch_size", entry.get("batchSize"))
    return int(value) if value is not None else None


def load_batch_config(config_path: Union[str, Path]) -> BatchConfig:
    """
    Load and validate a YAML job file.

    Raises:
        JobConfigError: missing file, malformed YAML or invalid jobs
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise JobConfigError(f"Config file not found: {config_path}")

    try:
        config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise JobConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict) or not isinstance(config.get("jobs"), list):
        raise JobConfigError('Config must have a "jobs" array')

    defaults = config.get("defaults") or {}
    jobs = []

    for i, entry in enumerate(config["jobs"], 1):
        if not isinstance(entry, dict) or not entry.get("input"):
            raise JobConfigError(f'Job {i}: missing "input" field')
        target = entry.get("to") or defaults.get("to")
        if not target:
            raise JobConfigError(f'Job {i}: missing "to" field (target language)')

        fmt = entry.get("format") or defaults.get("format")
        if fmt:
            try:
                fmt = SubtitleFormat.from_name(fmt).value
            except ValueError as e:
                raise JobConfigError(f"Job {i}: {e}") from e

        try:
            jobs.append(Job(
                input=str(entry["input"]),
                to=str(target),
                source=str(entry.get("from") or defaults.get("from") or DEFAULT_SOURCE_LANG),
                output=entry.get("output"),
                format=fmt,
                stream=int(entry.get("stream") or 0),
                batch_size=_batch_size(entry) or _batch_size(defaults) or DEFAULT_BATCH_SIZE,
            ))
        except (TypeError, ValueError) as e:
            raise JobConfigError(f"Job {i}: {e}") from e

    logger.info(f"Loaded {len(jobs)} job(s) from {config_path}")
    return BatchConfig(defaults=defaults, jobs=jobs)


def needs_extraction(job: Job) -> bool:
    return is_video_file(job.input)


ProviderFactory = Callable[[ProviderOptions, Optional[Mapping[str, str]]], TranslationProvider]


class JobRunner:
    """Runs translation jobs sequentially, isolating failures per job"""

    def __init__(
        self,
        provider_options: Optional[ProviderOptions] = None,
        credentials: Optional[Mapping[str, str]] = None,
        provider_factory: ProviderFactory = create_provider,
        max_batch_chars: int = DEFAULT_MAX_CHARS,
        delay: float = 0.3,
    ):
        self.provider_options = provider_options or ProviderOptions()
        self.credentials = credentials
        self.provider_factory = provider_factory
        self.max_batch_chars = max_batch_chars
        self.delay = delay

    def plan(self, jobs: List[Job]) -> List[str]:
        """Describe what each job would do, without doing it"""
        lines = []
        for i, job in enumerate(jobs, 1):
            lines.append(f"Job {i}:")
            lines.append(f"  Input:  {job.input}")
            if needs_extraction(job):
                lines.append(f"  Extract: Stream {job.stream} -> subtitle file")
            lines.append(f"  Translate: {job.source} -> {job.to}")
            lines.append(f"  Output: {job.output or '(auto-generated)'}")
        return lines

    async def run_job(self, job: Job) -> JobResult:
        """Run one job; errors propagate"""
        subtitle_path = Path(job.input)
        if needs_extraction(job):
            subtitle_path = await extract_subtitle(subtitle_path, job.stream)

        target_lang = resolve_language(job.to)
        options = replace(
            self.provider_options,
            source_lang=resolve_language(job.source),
            target_lang=target_lang,
        )
        provider = self.provider_factory(options, self.credentials)
        translator = Translator(
            provider,
            batch_size=job.batch_size,
            max_batch_chars=self.max_batch_chars,
            delay=self.delay,
        )

        result = await translator.translate_file(
            subtitle_path,
            job.output,
            job.format,
            target_lang=target_lang,
        )

        return JobResult(
            job=job,
            success=True,
            output_path=result.output_path,
            captions=len(result.captions),
            stats=result.stats,
        )

    async def run(self, jobs: List[Job]) -> BatchReport:
        """Run all jobs; one job's failure does not stop the others"""
        report = BatchReport()

        for i, job in enumerate(jobs, 1):
            logger.info(f"[{i}/{len(jobs)}] {job.input} -> {job.to}")
            try:
                result = await self.run_job(job)
            except Exception as e:
                logger.error(f"[{i}/{len(jobs)}] Job failed: {e}")
                report.failed += 1
                report.results.append(JobResult(job=job, success=False, error=str(e)))
                continue

            logger.info(f"[{i}/{len(jobs)}] Saved {result.output_path}")
            report.completed += 1
            report.results.append(result)

        logger.info(f"Batch complete: {report.completed} succeeded, {report.failed} failed")
        return report
