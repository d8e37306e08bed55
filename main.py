import asyncio
import argparse
import logging
import sys
from pathlib import Path

from zapfile.config import load_config
from zapfile.errors import ZapFileError
from zapfile.ingest import DropFolderWatcher
from zapfile.session import ZapFileSession
from zapfile.benchmark import Benchmarker, DEFAULT_SIZES
from zapfile.store import FileStatus

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = 'zapfile.log'):
    """Configure root logging for the command line"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1"""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def build_config(args):
    return load_config(
        Path(args.config) if args.config else None,
        session_id=args.session_id
    )


async def run_send(args):
    """Ingest files, send them across the session and verify every download"""
    logger.info("=== ZapFile send ===")

    session = ZapFileSession(build_config(args))

    records = await session.add_paths(Path(p) for p in args.files)
    if not records:
        logger.error("No files could be ingested")
        return 1

    for record in records:
        logger.info(f"Ready: {record.name} ({record.size} bytes) sha={record.checksum[:16]}...")

    session.connect()
    logger.info(f"Connecting to session {session.session_id}")
    await session.wait_connected()

    if session.send() is None:
        logger.error("Transfer could not be started")
        return 1

    batch = await session.wait_for_batch()
    if batch is None or batch.status is not FileStatus.COMPLETED:
        logger.error(f"Transfer failed: {batch.error if batch else 'no batch'}")
        return 1

    failures = 0
    output_dir = Path(args.output)
    for entry in session.received:
        try:
            link = session.download(entry.id)
            target = await session.save(link, output_dir)
            logger.info(f"Verified {entry.name} -> {target}")
        except ZapFileError as e:
            failures += 1
            logger.error(f"Failed to download {entry.name}: {e}")

    if args.log_export:
        session.audit.export(Path(args.log_export))

    return 1 if failures else 0


async def run_watch(args):
    """Ingest files dropped into a folder; optionally send each new batch"""
    logger.info("=== ZapFile watch ===")

    session = ZapFileSession(build_config(args))
    output_dir = Path(args.output)

    async def ingest(sources):
        records = await session.add_files(sources)
        if not args.auto_send:
            return records

        # files ingested while a batch was in flight go out in the next one
        while session.send() is not None:
            await session.wait_for_batch()
            for entry in session.received:
                try:
                    link = session.download(entry.id)
                    await session.save(link, output_dir)
                except ZapFileError as e:
                    logger.error(f"Failed to download {entry.name}: {e}")
            session.clear_received()
        return records

    session.connect()
    await session.wait_connected()

    watcher = DropFolderWatcher(Path(args.drop_dir), ingest)
    await watcher.ingest_existing()
    watcher.start()

    try:
        while True:
            await asyncio.sleep(1)
    finally:
        watcher.stop()

    return 0


async def run_benchmark(args):
    """Run benchmark mode"""
    logger.info("=== Starting ZapFile Benchmark ===")

    benchmarker = Benchmarker(
        output_dir=Path(args.output),
        config=build_config(args)
    )

    await benchmarker.test_sizes(args.sizes or DEFAULT_SIZES, iterations=args.iterations)
    benchmarker.save_results()

    if not args.no_plot:
        benchmarker.generate_report()

    for size, figures in benchmarker.summary().items():
        logger.info(f"{size}: {figures}")

    logger.info("Benchmark completed")
    return 0


def create_parser():
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        description='ZapFile - integrity-checked file hand-off',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Send files and write verified copies to ./received
  python main.py send report.pdf photo.jpg --output ./received

  # Ingest everything dropped into ./outbox and deliver it
  python main.py watch --drop-dir ./outbox --auto-send

  # Measure pipeline throughput
  python main.py benchmark --sizes 1024 1048576 --iterations 5
        """
    )

    parser.add_argument(
        'mode',
        choices=['send', 'watch', 'benchmark'],
        help='Execution mode'
    )
    parser.add_argument(
        'files',
        nargs='*',
        help='Files to send (send mode)'
    )

    parser.add_argument(
        '--config',
        help='YAML configuration file'
    )
    parser.add_argument(
        '--session-id',
        help='Session to connect to (default from config)'
    )
    parser.add_argument(
        '--output',
        default='./received',
        help='Output directory (default: ./received)'
    )

    # Watch-specific arguments
    parser.add_argument(
        '--drop-dir',
        default='./outbox',
        help='Folder to watch (default: ./outbox)'
    )
    parser.add_argument(
        '--auto-send',
        action='store_true',
        help='Send and download every newly ingested batch'
    )

    # Benchmark-specific arguments
    parser.add_argument(
        '--sizes',
        type=int,
        nargs='+',
        help='File sizes in bytes to benchmark'
    )
    parser.add_argument(
        '--iterations',
        type=positive_int,
        default=10,
        help='Number of benchmark iterations (default: 10)'
    )
    parser.add_argument(
        '--no-plot',
        action='store_true',
        help='Skip generating plots'
    )

    # Logging
    parser.add_argument(
        '--log-file',
        default='zapfile.log',
        help='Log file path, empty to disable (default: zapfile.log)'
    )
    parser.add_argument(
        '--log-export',
        help='Write the audit log as JSON after sending'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Minimal output'
    )

    return parser


async def main(argv=None):
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.mode == 'send' and not args.files:
        parser.error("send mode needs at least one file")

    setup_logging(args.log_file)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    try:
        if args.mode == 'send':
            return await run_send(args)
        elif args.mode == 'watch':
            return await run_watch(args)
        elif args.mode == 'benchmark':
            return await run_benchmark(args)
    except KeyboardInterrupt:
        logger.info("\nShutdown requested by user")
        return 0
    except ZapFileError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


def run():
    """Console script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == '__main__':
    run()
