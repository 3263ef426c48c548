"""
Command Line Interface for publishing an afterglow gallery workspace.
"""

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Awaitable, List, Optional, TypeVar

import urllib3

from .config import PublishConfig
from .errors import PublishError
from .events import EventChannel, ThumbnailProgress
from .executor import ExecutorState
from .gallery import GalleryIndex
from .progress import ProgressPrinter
from .publisher import Publisher
from .reporter import Reporter
from .thumbnail_cache import ThumbnailPipeline, cache_root_for
from .thumbnail_generator import ThumbnailGenerator


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

T = TypeVar('T')


def setup_logging(verbose: bool, quiet: bool = False) -> logging.Logger:
    """Configure logging."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('afterglow_publish')


def get_config(args: argparse.Namespace) -> PublishConfig:
    """
    Build configuration: environment, then settings file, then CLI overrides.

    Raises:
        ConfigurationError: if the settings file cannot be read
    """
    config = PublishConfig.from_env()

    settings = getattr(args, 'settings', None)
    if settings:
        stored = PublishConfig.from_settings_file(settings)
        config.bucket = stored.bucket or config.bucket
        config.region = stored.region or config.region
        config.prefix = stored.prefix or config.prefix
        config.distribution_id = stored.distribution_id or config.distribution_id

    if getattr(args, 'bucket', None):
        config.bucket = args.bucket
    if getattr(args, 'region', None):
        config.region = args.region
    if getattr(args, 'prefix', None) is not None:
        config.prefix = args.prefix
    if getattr(args, 'distribution_id', None) is not None:
        config.distribution_id = args.distribution_id
    if getattr(args, 'endpoint', None):
        config.endpoint = args.endpoint
    if getattr(args, 'no_verify_ssl', False):
        config.verify_ssl = False

    return config


def add_target_arguments(parser: argparse.ArgumentParser) -> None:
    """Add publish target arguments to a parser."""
    group = parser.add_argument_group('Publish Target')
    group.add_argument('--settings', metavar='FILE', help='Read target from a settings.json file')
    group.add_argument('--bucket', help='Override AFTERGLOW_BUCKET (name or ARN)')
    group.add_argument('--region', help='Override AFTERGLOW_REGION')
    group.add_argument('--prefix', help='Override AFTERGLOW_PREFIX')
    group.add_argument('--distribution-id', help='Override AFTERGLOW_DISTRIBUTION_ID (id or ARN)')
    group.add_argument('--endpoint', help='Override AFTERGLOW_S3_ENDPOINT')
    group.add_argument('--no-verify-ssl', action='store_true', help='Skip TLS verification of the endpoint')


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('workspace', help='Gallery workspace directory')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')


async def _with_events(publisher: Publisher, printer: Optional[ProgressPrinter], work: Awaitable[T]) -> T:
    """Run `work` while printing the publisher's events."""
    channel = EventChannel(asyncio.get_running_loop())
    publisher.events = channel
    consumer = asyncio.ensure_future(printer.consume(channel)) if printer else None
    try:
        return await work
    finally:
        channel.close()
        if consumer is not None:
            await consumer


async def _execute(publisher: Publisher, plan_id: str, printer: Optional[ProgressPrinter], logger: logging.Logger):
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, publisher.cancel, plan_id)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl-C will interrupt instead of cancel")
        handler_installed = False

    try:
        return await _with_events(publisher, printer, publisher.execute(plan_id))
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def cmd_preview(args: argparse.Namespace) -> int:
    """Execute preview command."""
    logger = setup_logging(args.verbose, args.quiet)

    try:
        config = get_config(args)
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    if not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    publisher = Publisher(config, logger=logger)
    printer = None if args.quiet else ProgressPrinter(show_files=args.show_files, logger=logger)

    try:
        plan = asyncio.run(_with_events(publisher, printer, publisher.preview(Path(args.workspace))))
        Reporter().report_plan(plan, config, show_files=args.show_files)
        publisher.discard(plan.plan_id)
        return EXIT_OK
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    finally:
        publisher.close()


def cmd_publish(args: argparse.Namespace) -> int:
    """Execute publish command: preview, confirm, execute."""
    logger = setup_logging(args.verbose, args.quiet)

    try:
        config = get_config(args)
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    if not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    publisher = Publisher(config, logger=logger)
    printer = None if args.quiet else ProgressPrinter(show_files=args.show_files, logger=logger)
    reporter = Reporter()
    plan = None

    try:
        plan = asyncio.run(_with_events(publisher, printer, publisher.preview(Path(args.workspace))))
        reporter.report_plan(plan, config, show_files=args.show_files)

        if plan.is_empty and not config.distribution:
            logger.info("Nothing to publish")
            return EXIT_OK

        if not args.yes and not _confirm("Proceed with publish?"):
            logger.info("Publish aborted")
            return EXIT_FAILURE

        result = asyncio.run(_execute(publisher, plan.plan_id, printer, logger))
        cancelled = publisher.last_state is ExecutorState.CANCELLED
        reporter.report_result(result, cancelled=cancelled)
        return EXIT_INTERRUPTED if cancelled else EXIT_OK

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    finally:
        if plan is not None:
            publisher.discard(plan.plan_id)
        publisher.close()


def cmd_thumbnails(args: argparse.Namespace) -> int:
    """Execute thumbnails command: generate and prune the cache, no network."""
    logger = setup_logging(args.verbose, args.quiet)
    root = Path(args.workspace).resolve()

    try:
        index = GalleryIndex.load(root)
        generator = ThumbnailGenerator(size=args.size, quality=args.quality, logger=logger)
        pipeline = ThumbnailPipeline(generator, logger=logger)

        printer = None if args.quiet else ProgressPrinter(show_files=args.show_files, logger=logger)

        def on_progress(current, total, spec):
            printer.on_thumbnail(ThumbnailProgress(current, total, spec.thumb_filename))

        specs = pipeline.build_specs(root, index)
        results = pipeline.ensure_all(specs, on_progress if printer else None)
        removed = pipeline.cleanup_stale(cache_root_for(root), specs)

        if not args.quiet:
            Reporter().report_thumbnails(results, removed)

        return EXIT_OK if results.failed == 0 else EXIT_FAILURE

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE


def cmd_clean_cache(args: argparse.Namespace) -> int:
    """Execute clean-cache command: remove cached thumbnails nothing refers to."""
    logger = setup_logging(args.verbose, args.quiet)
    root = Path(args.workspace).resolve()

    try:
        index = GalleryIndex.load(root)
        pipeline = ThumbnailPipeline(logger=logger)
        removed = pipeline.cleanup_stale(cache_root_for(root), pipeline.build_specs(root, index))
    except PublishError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    if not args.quiet:
        print(f"Removed {removed} stale thumbnails")
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='afterglow-publish',
        description='Publish an afterglow gallery workspace to S3 and CloudFront',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Workflow:
  1. Preview:  python -m afterglow_publish preview ./site --show-files
  2. Publish:  python -m afterglow_publish publish ./site

Target settings come from AFTERGLOW_* environment variables, an optional
--settings file, then command line options. Credentials come from
AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY or the system keychain.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    preview_parser = subparsers.add_parser('preview', help='Show what a publish would change')
    add_common_arguments(preview_parser)
    preview_parser.add_argument('--show-files', action='store_true',
                                help='List every upload and delete')
    add_target_arguments(preview_parser)

    publish_parser = subparsers.add_parser('publish', help='Preview, confirm and publish')
    add_common_arguments(publish_parser)
    publish_parser.add_argument('--show-files', action='store_true',
                                help='Print each file as it is transferred')
    publish_parser.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation')
    add_target_arguments(publish_parser)

    thumbs_parser = subparsers.add_parser('thumbnails', help='Generate missing or stale thumbnails')
    add_common_arguments(thumbs_parser)
    thumbs_parser.add_argument('-s', '--size', type=int, default=800, help='Longest side (default: 800)')
    thumbs_parser.add_argument('--quality', type=int, default=85, help='WebP quality (default: 85)')
    thumbs_parser.add_argument('--show-files', action='store_true',
                               help='Print each thumbnail as processed')

    clean_parser = subparsers.add_parser('clean-cache', help='Remove stale cached thumbnails')
    add_common_arguments(clean_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return EXIT_FAILURE

    if parsed_args.command == 'preview':
        return cmd_preview(parsed_args)
    elif parsed_args.command == 'publish':
        return cmd_publish(parsed_args)
    elif parsed_args.command == 'thumbnails':
        return cmd_thumbnails(parsed_args)
    elif parsed_args.command == 'clean-cache':
        return cmd_clean_cache(parsed_args)

    return EXIT_FAILURE
