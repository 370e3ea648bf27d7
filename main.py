"""Main application for the weather station log."""

import sys
import json
import time
import logging
import signal
import argparse
from typing import List, Optional

from weather_station.config import ConfigManager
from weather_station.database import (
    NewWeatherSample,
    StorageError,
    StorageIOError,
    WeatherLogStore,
)
from weather_station.ingest import SampleSource, source_factory
from weather_station.processing import DataProcessor, DataValidationError, WeatherReportFormatter


class WeatherStationApp:
    """Main weather station application."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize the weather station application.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config: Optional[ConfigManager] = None
        self.store: Optional[WeatherLogStore] = None
        self.data_processor: Optional[DataProcessor] = None
        self.formatter: Optional[WeatherReportFormatter] = None
        self.source: Optional[SampleSource] = None
        self.logger: Optional[logging.Logger] = None
        self.running = False

        self._initialize(config_path)

    def _initialize(self, config_path: Optional[str] = None) -> None:
        """Initialize all components."""
        try:
            # Load configuration
            self.config = ConfigManager(config_path)

            # Setup logging
            self._setup_logging()
            self.logger = logging.getLogger(__name__)

            # Initialize components
            self.data_processor = DataProcessor(self.config)
            self.formatter = WeatherReportFormatter(self.config)
            database_config = self.config.get_database_config()
            self.store = WeatherLogStore(database_config['path'], timeout=float(database_config['timeout']))
            self.store.connect()

            # Setup signal handlers
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

            self.logger.info("Weather station log initialized successfully")

        except (OSError, RuntimeError, ValueError, StorageError) as e:
            print(f"Failed to initialize weather station log: {e}", file=sys.stderr)
            sys.exit(1)

    def _setup_logging(self) -> None:
        """Setup logging configuration."""
        log_config = self.config.get_logging_config()

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if log_config.get('file'):
            handlers.append(logging.FileHandler(log_config['file']))

        logging.basicConfig(
            level=getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO),
            format=log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            handlers=handlers,
            force=True
        )

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        self.logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    def _save_with_retry(self, sample: NewWeatherSample) -> Optional[int]:
        """Store a sample, retrying with exponential backoff while the database is busy.

        Returns:
            The assigned id, or None if the sample could not be stored
        """
        retry_config = self.config.get_retry_config()
        max_attempts = retry_config.get('max_attempts', 3)
        backoff_factor = retry_config.get('backoff_factor', 2)
        initial_delay = retry_config.get('initial_delay', 1.0)

        for attempt in range(max_attempts):
            try:
                return self.store.insert(sample)

            except StorageIOError as e:
                self.logger.warning(f"Database error on attempt {attempt + 1}: {e}")

            except StorageError as e:
                self.logger.error(f"Rejected weather sample {sample}: {e}")
                return None

            # Wait before retry (except on last attempt)
            if attempt < max_attempts - 1:
                delay = initial_delay * (backoff_factor ** attempt)
                self.logger.info(f"Retrying database write in {delay:.1f} seconds...")
                time.sleep(delay)

        self.logger.error(f"Failed to store weather sample after {max_attempts} attempts")
        return None

    def process_payload(self, payload: str) -> bool:
        """Decode a payload from the station and store it."""
        device_id = self.config.get_device_config().get('id', 'weather_station')

        try:
            sample = self.data_processor.process_message(payload)
        except DataValidationError as e:
            self.logger.error(f"Failed to process message: {e}")
            return False

        sample_id = self._save_with_retry(sample)
        if sample_id is None:
            return False

        self.logger.info(f"Stored sample {sample_id}: {self.data_processor.format_for_logging(sample, device_id)}")
        self.logger.debug(self.formatter.format_sample(sample))

        if self.formatter.should_alert(sample):
            self.logger.warning(f"Weather alert from {device_id}:\n{self.formatter.format_sample(sample)}")

        return True

    def open_source(self) -> SampleSource:
        """Create and connect the configured payload source."""
        if self.source is None:
            self.source = source_factory(self.config.get_ingest_config(), self.config.get_mqtt_config())
            self.source.connect()
        return self.source

    def run_single_cycle(self) -> bool:
        """Wait for one payload and store it."""
        source = self.open_source()
        timeout = float(self.config.get_ingest_config()['poll_timeout'])

        try:
            payload = source.poll(timeout)
        except OSError as e:
            self.logger.error(f"Error reading from payload source: {e}")
            return False

        if payload is None:
            self.logger.debug("No payload received")
            return False

        return self.process_payload(payload)

    def run_continuous(self) -> None:
        """Ingest payloads until the source is exhausted or a shutdown signal arrives."""
        self.logger.info("Starting continuous ingestion")
        self.running = True
        stored = 0

        while self.running:
            if self.run_single_cycle():
                stored += 1
            if self.source.exhausted:
                self.logger.info("Payload source exhausted")
                break

        self.running = False
        self.logger.info(f"Continuous ingestion stopped, {stored} samples stored")

    def cleanup(self) -> None:
        """Cleanup resources."""
        self.logger.info("Cleaning up resources...")

        if self.source:
            self.source.close()

        if self.store:
            self.store.close()

        self.logger.info("Weather station log shutdown complete")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Weather Station Log')
    parser.add_argument('--config', '-c', help='Path to configuration file')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('init-db', help='Create the weather_log table')

    ingest = commands.add_parser('ingest', help='Store payloads from the configured source')
    ingest.add_argument('--single', '-s', action='store_true',
                        help='Store a single payload instead of running continuously')

    add = commands.add_parser('add', help='Store one reading')
    add.add_argument('--temp', type=float, required=True)
    add.add_argument('--pressure', type=float, required=True)
    add.add_argument('--humidity', type=float, required=True)
    add.add_argument('--timestamp', help='ISO-8601 observation time (default: now)')

    get = commands.add_parser('get', help='Show one sample')
    get.add_argument('id', type=int)

    list_cmd = commands.add_parser('list', help='List samples')
    list_cmd.add_argument('--limit', '-n', type=int, default=10,
                          help='Number of samples to show (default: 10)')
    list_cmd.add_argument('--since', help='Only samples at or after this ISO-8601 time')
    list_cmd.add_argument('--until', help='Only samples at or before this ISO-8601 time')
    list_cmd.add_argument('--json', action='store_true', help='Print samples as JSON')

    stats = commands.add_parser('stats', help='Summarise recent samples')
    stats.add_argument('--limit', '-n', type=int, default=100,
                       help='Number of recent samples to summarise (default: 100)')

    return parser


def run_command(app: WeatherStationApp, args: argparse.Namespace) -> int:
    """Execute a parsed command and return the process exit code."""
    store = app.store

    if args.command == 'init-db':
        print(f"Weather log ready at {app.config.get_database_config()['path']}")
        return 0

    if args.command == 'ingest':
        if args.single:
            return 0 if app.run_single_cycle() else 1
        app.run_continuous()
        return 0

    if args.command == 'add':
        sample = app.data_processor.build_sample(args.temp, args.pressure, args.humidity,
                                                 timestamp=args.timestamp)
        print(store.insert(sample))
        return 0

    if args.command == 'get':
        sample = store.get(args.id)
        print(app.formatter.format_table([sample]))
        print(app.formatter.format_sample(sample))
        return 0

    if args.command == 'list':
        if args.since or args.until:
            since = app.data_processor.normalize_timestamp(args.since) if args.since else None
            until = app.data_processor.normalize_timestamp(args.until) if args.until else None
            samples = store.list_between(since, until, limit=args.limit)
        else:
            samples = store.list_recent(args.limit)

        if args.json:
            print(json.dumps({"messages": [sample.to_dict() for sample in samples]}, ensure_ascii=False))
        else:
            print(app.formatter.format_table(samples))
        return 0

    if args.command == 'stats':
        samples = store.list_recent(args.limit)
        print(json.dumps(app.data_processor.get_sample_statistics(samples), indent=2))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    with WeatherStationApp(args.config) as app:
        try:
            exit_code = run_command(app, args)
        except (StorageError, DataValidationError, ValueError, OSError) as e:
            app.logger.error(f"{args.command} failed: {e}")
            exit_code = 1

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
