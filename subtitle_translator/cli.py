"""
Command line interface.

Usage:
    subtitle-translator translate movie.srt --to Spanish
    subtitle-translator providers --verbose
    subtitle-translator extract movie.mkv --list
    subtitle-translator transcribe talk.mp4 --model medium --translate
    subtitle-translator batch jobs.yaml --dry-run
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config import settings
from .errors import SubtitleTranslatorError
from .jobs import JobRunner, load_batch_config
from .transcription.whisper_transcriber import (
    WHISPER_MODELS,
    TranscribeOptions,
    WhisperTranscriber,
)
from .translation.providers import ProviderOptions, UsageStats, create_provider
from .translation.registry import PROVIDERS, get_provider_help, list_providers
from .translation.translator import Translator, resolve_language
from .utils.subtitle_extractor import extract_all, extract_subtitle, list_streams


def setup_logging(quiet: bool = False):
    logger.remove()
    logger.add(sys.stderr, level="WARNING" if quiet else settings.LOG_LEVEL)


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    return f"{int(seconds // 60)}m {int(seconds % 60)}s"


def print_stats(stats: UsageStats, elapsed: float, caption_count: int, provider_name: str):
    rows = [
        ("Provider", provider_name),
        ("Subtitles translated", caption_count),
        ("API calls made", stats.api_calls),
        ("Retries", stats.retries),
        ("Total tokens", stats.total_tokens),
        ("Duration", format_duration(elapsed)),
    ]
    print("\nTranslation Summary")
    print("-" * 41)
    for label, value in rows:
        print(f" {label + ':':<22}{str(value):>17}")
    print("-" * 41)


def _provider_options(args: argparse.Namespace, source_lang: str, target_lang: str) -> ProviderOptions:
    return ProviderOptions(
        provider=args.provider,
        api_key=args.api_key,
        model=args.model,
        base_url=args.base_url,
        source_lang=source_lang,
        target_lang=target_lang,
        max_retries=getattr(args, "max_retries", settings.MAX_RETRIES),
        retry_delay=settings.RETRY_DELAY,
        timeout=settings.REQUEST_TIMEOUT,
    )


async def cmd_translate(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"File not found: {input_path}")
        return 1

    source_lang = resolve_language(args.source)
    target_lang = resolve_language(args.to)
    batch_size = min(500, max(10, args.batch_size))

    provider = create_provider(
        _provider_options(args, source_lang, target_lang),
        settings.available_credentials(),
    )
    display_name = PROVIDERS[provider.name].display_name
    logger.info(f"Using {display_name} ({provider.name})")

    logger.info(f"Translation: {source_lang} -> {target_lang}")

    def on_progress(done: int, total: int, batch_number: int, batch_count: int):
        logger.info(f"Progress: {done}/{total} subtitles, batch {batch_number}/{batch_count}")

    translator = Translator(
        provider,
        batch_size=batch_size,
        max_batch_chars=settings.MAX_BATCH_CHARS,
        delay=args.delay / 1000,
    )
    result = await translator.translate_file(
        input_path,
        args.output,
        args.format,
        on_progress=on_progress,
        target_lang=target_lang,
    )

    if not args.quiet:
        print_stats(result.stats, result.elapsed, len(result.captions), display_name)
    print(f"\nSuccessfully saved to: {result.output_path}\n")
    return 0


def cmd_providers(args: argparse.Namespace) -> int:
    print("\nAvailable Providers:\n")
    for provider in list_providers(settings.available_credentials()):
        status = "Configured" if provider["configured"] else "Not configured"
        print(f"  {provider['display_name']:<15} {status}")
        print(f"    {provider['description']}")
        if args.verbose:
            if provider["env_var"]:
                print(f"    Env: {provider['env_var']}")
            print(f"    Models: {', '.join(provider['models'])}")
        print()

    if args.name:
        print(get_provider_help(args.name))
    return 0


async def cmd_extract(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"File not found: {input_path}")
        return 1

    if args.list:
        streams = await list_streams(input_path)
        if not streams:
            print("\nNo subtitle streams found in this file.\n")
            return 0
        print(f"\nSubtitle streams in {input_path}:\n")
        for stream in streams:
            language = resolve_language(stream.language)
            title = f" - {stream.title}" if stream.title else ""
            print(f"  {stream.index}  |  {stream.codec:<10}  |  {language:<12}{title}")
        print()
        return 0

    if args.all:
        results = await extract_all(input_path, args.output)
        for result in results:
            print(f"  -> {result.output_path} ({resolve_language(result.stream.language)})")
        return 0

    output_path = await extract_subtitle(input_path, args.stream, args.output)
    print(f"Extracted subtitles to {output_path}")
    return 0


async def cmd_transcribe(args: argparse.Namespace) -> int:
    if args.list_models:
        print(f"\n  {'Model':<8} | {'Params':<8} | {'VRAM':<8} | {'Speed':<8} | Notes")
        for model in WHISPER_MODELS:
            print(
                f"  {model['name']:<8} | {model['params']:<8} | {model['vram']:<8} | "
                f"{model['speed']:<8} | {model['note']}"
            )
        print('\n  Note: "turbo" model does NOT support translation.\n')
        return 0

    if not args.input:
        logger.error("An input file is required")
        return 1

    options = TranscribeOptions(
        model=args.model,
        task="translate" if args.translate else "transcribe",
        language=args.language,
        output_format=args.format,
        output_dir=Path(args.output) if args.output else None,
        device=settings.WHISPER_DEVICE,
    )
    transcriber = WhisperTranscriber(model_name=options.model, device=options.device)
    result = await transcriber.transcribe(args.input, options)

    print(f"\nOutput: {result.output_path}")
    print(f"  {len(result.captions)} subtitles generated")
    print(f"  Duration: {format_duration(result.duration)}\n")
    return 0


async def cmd_batch(args: argparse.Namespace) -> int:
    config = load_batch_config(args.config)
    runner = JobRunner(
        provider_options=_provider_options(args, settings.SOURCE_LANG, settings.TARGET_LANG),
        credentials=settings.available_credentials(),
        max_batch_chars=settings.MAX_BATCH_CHARS,
        delay=settings.BATCH_DELAY,
    )

    if args.dry_run:
        print("\nDry run - showing planned actions:\n")
        print("\n".join(runner.plan(config.jobs)))
        return 0

    report = await runner.run(config.jobs)
    print(f"\nBatch complete: {report.completed} succeeded, {report.failed} failed")
    for result in report.results:
        if not result.success:
            print(f"  FAILED {result.job.input}: {result.error}")
    return 0 if report.failed == 0 else 1


def _add_provider_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-p", "--provider", choices=[name for name in PROVIDERS], help="Translation provider")
    parser.add_argument("-k", "--api-key", help="API key (or set via environment variable)")
    parser.add_argument("-m", "--model", help="Model to use (provider-specific)")
    parser.add_argument("--base-url", help="Custom API base URL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtitle-translator",
        description="Multi-provider AI translation for subtitles (SRT, VTT, ASS)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser("translate", help="Translate a subtitle file")
    translate.add_argument("input", help="Subtitle file (.srt, .vtt, .ass, .ssa)")
    translate.add_argument("-o", "--output", help="Output file path")
    translate.add_argument("-f", "--from", dest="source", default=settings.SOURCE_LANG, help="Source language")
    translate.add_argument("-t", "--to", default=settings.TARGET_LANG, help="Target language")
    translate.add_argument("--format", choices=["srt", "vtt", "ass"], help="Output format")
    _add_provider_arguments(translate)
    translate.add_argument("-b", "--batch-size", type=int, default=settings.BATCH_SIZE, help="Subtitles per batch")
    translate.add_argument("--max-retries", type=int, default=settings.MAX_RETRIES, help="Max retries per request")
    translate.add_argument("--delay", type=int, default=int(settings.BATCH_DELAY * 1000), help="Delay between batches in ms")
    translate.add_argument("-q", "--quiet", action="store_true", help="Minimal output")

    providers = subparsers.add_parser("providers", help="List translation providers and their status")
    providers.add_argument("name", nargs="?", help="Show configuration help for one provider")
    providers.add_argument("-v", "--verbose", action="store_true", help="Show detailed information")

    extract = subparsers.add_parser("extract", help="Extract subtitles from MKV/MP4/video files")
    extract.add_argument("input", help="Video file")
    extract.add_argument("-o", "--output", help="Output file (or directory with --all)")
    extract.add_argument("-s", "--stream", type=int, default=0, help="Subtitle stream index")
    extract.add_argument("-a", "--all", action="store_true", help="Extract all subtitle streams")
    extract.add_argument("-l", "--list", action="store_true", help="List available subtitle streams")

    transcribe = subparsers.add_parser("transcribe", help="Transcribe audio/video with local Whisper")
    transcribe.add_argument("input", nargs="?", help="Audio or video file")
    transcribe.add_argument("-o", "--output", help="Output directory")
    transcribe.add_argument("-m", "--model", default=settings.WHISPER_MODEL, help="Whisper model")
    transcribe.add_argument("-l", "--language", help="Source language (auto-detected if not specified)")
    transcribe.add_argument("--translate", action="store_true", help="Translate to English (only works TO English)")
    transcribe.add_argument("-f", "--format", default="srt", choices=["srt", "vtt", "ass"], help="Output format")
    transcribe.add_argument("--list-models", action="store_true", help="List available Whisper models")

    batch = subparsers.add_parser("batch", help="Process multiple jobs from a YAML config file")
    batch.add_argument("config", nargs="?", default="jobs.yaml", help="Job file (default: jobs.yaml)")
    _add_provider_arguments(batch)
    batch.add_argument("--dry-run", action="store_true", help="Show what would be done without executing")

    return parser


COMMANDS = {
    "translate": cmd_translate,
    "extract": cmd_extract,
    "transcribe": cmd_transcribe,
    "batch": cmd_batch,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(quiet=getattr(args, "quiet", False))

    try:
        if args.command == "providers":
            return cmd_providers(args)
        return asyncio.run(COMMANDS[args.command](args))
    except SubtitleTranslatorError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"File error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
