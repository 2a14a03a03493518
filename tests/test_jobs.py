"""YAML batch jobs"""
import asyncio

import pytest

from subtitle_translator.errors import JobConfigError, PermanentNetworkError
from subtitle_translator.jobs import Job, JobRunner, load_batch_config
from subtitle_translator.translation.providers import ProviderOptions, TranslationProvider, UsageStats


SRT = "1\n00:00:01,000 --> 00:00:02,000\nhello\n"


class EchoProvider(TranslationProvider):
    def __init__(self, options, fail=False):
        self.options = options
        self.fail = fail

    @property
    def name(self):
        return "echo"

    async def translate_batch(self, captions):
        if self.fail:
            raise PermanentNetworkError("API error 401: bad key")
        return [f"{self.options.target_lang}:{c.text}" for c in captions]

    def get_stats(self):
        return UsageStats(api_calls=1)

    def reset_stats(self):
        pass


def write_config(tmp_path, text):
    path = tmp_path / "jobs.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_batch_config_applies_defaults(tmp_path):
    path = write_config(tmp_path, """
defaults:
  from: ja
  to: Spanish
  format: ssa
  batchSize: 50
jobs:
  - input: movie.mkv
    stream: 2
  - input: episode.vtt
    to: French
    output: episode.fr.vtt
    batch_size: 20
""")

    config = load_batch_config(path)

    first, second = config.jobs
    assert first == Job(input="movie.mkv", to="Spanish", source="ja", format="ass", stream=2, batch_size=50)
    assert second.to == "French"
    assert second.output == "episode.fr.vtt"
    assert second.batch_size == 20


@pytest.mark.parametrize("text", [
    "jobs: not-a-list\n",
    "defaults: {}\n",
    "jobs:\n  - to: Spanish\n",
    "jobs:\n  - input: a.srt\n",
    "jobs:\n  - input: a.srt\n    to: es\n    format: docx\n",
    "jobs: [unclosed\n",
])
def test_load_batch_config_rejects_invalid(tmp_path, text):
    with pytest.raises(JobConfigError):
        load_batch_config(write_config(tmp_path, text))


def test_load_batch_config_missing_file(tmp_path):
    with pytest.raises(JobConfigError):
        load_batch_config(tmp_path / "missing.yaml")


def test_run_isolates_failures(tmp_path):
    good = tmp_path / "good.srt"
    good.write_text(SRT, encoding="utf-8")
    jobs = [
        Job(input=str(tmp_path / "missing.srt"), to="es"),
        Job(input=str(good), to="es", format="vtt"),
    ]

    runner = JobRunner(provider_factory=lambda options, credentials: EchoProvider(options), delay=0)
    report = asyncio.run(runner.run(jobs))

    assert report.completed == 1
    assert report.failed == 1
    assert report.results[0].success is False
    output_path = tmp_path / "good.spanish.vtt"
    assert report.results[1].output_path == output_path
    assert "Spanish:hello" in output_path.read_text(encoding="utf-8")


def test_run_reports_provider_errors(tmp_path):
    source = tmp_path / "a.srt"
    source.write_text(SRT, encoding="utf-8")

    runner = JobRunner(
        provider_factory=lambda options, credentials: EchoProvider(options, fail=True),
        delay=0,
    )
    report = asyncio.run(runner.run([Job(input=str(source), to="de", output=str(tmp_path / "a.de.srt"))]))

    assert report.failed == 1
    assert "401" in report.results[0].error
    assert not (tmp_path / "a.de.srt").exists()


def test_run_job_passes_languages_and_credentials(tmp_path):
    source = tmp_path / "a.srt"
    source.write_text(SRT, encoding="utf-8")
    seen = []

    def factory(options, credentials):
        seen.append((options, credentials))
        return EchoProvider(options)

    runner = JobRunner(
        provider_options=ProviderOptions(provider="openai", model="gpt-4o"),
        credentials={"openai": "sk-1"},
        provider_factory=factory,
        delay=0,
    )
    asyncio.run(runner.run_job(Job(input=str(source), to="fr", source="en")))

    options, credentials = seen[0]
    assert options.source_lang == "English"
    assert options.target_lang == "French"
    assert options.model == "gpt-4o"
    assert credentials == {"openai": "sk-1"}


def test_run_job_extracts_video_streams(tmp_path, monkeypatch):
    extracted = tmp_path / "movie.eng.srt"
    calls = []

    async def fake_extract(video_path, stream_index):
        calls.append((str(video_path), stream_index))
        extracted.write_text(SRT, encoding="utf-8")
        return extracted

    monkeypatch.setattr("subtitle_translator.jobs.extract_subtitle", fake_extract)
    runner = JobRunner(provider_factory=lambda options, credentials: EchoProvider(options), delay=0)

    result = asyncio.run(runner.run_job(Job(input=str(tmp_path / "movie.mkv"), to="es", stream=1)))

    assert calls == [(str(tmp_path / "movie.mkv"), 1)]
    assert result.output_path == tmp_path / "movie.eng.spanish.srt"


def test_plan_describes_jobs():
    runner = JobRunner()
    lines = runner.plan([Job(input="movie.mkv", to="es", stream=1), Job(input="a.srt", to="fr", output="b.srt")])

    assert "  Extract: Stream 1 -> subtitle file" in lines
    assert "  Output: (auto-generated)" in lines
    assert "  Output: b.srt" in lines


def test_run_reports_non_utf8_input(tmp_path):
    source = tmp_path / "latin1.srt"
    source.write_bytes("1\n00:00:01,000 --> 00:00:02,000\nCafé\n".encode("latin-1"))

    runner = JobRunner(provider_factory=lambda options, credentials: EchoProvider(options), delay=0)
    report = asyncio.run(runner.run([Job(input=str(source), to="es")]))

    assert report.failed == 1
    assert "UTF-8" in report.results[0].error
