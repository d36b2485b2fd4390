"""
Command-line entry point for httpcheck.
"""

import asyncio
import argparse
import sys
from typing import List, Optional, TextIO

from . import __version__
from .checker.fetcher import CheckRequest, URLChecker
from .checker.scheduler import CheckScheduler, summarize
from .checker.url_source import URLSourceError, collect_urls
from .output.exporter import ExportError, export_results
from .output.renderer import ConsoleRenderer, should_use_color
from .utils.config import Config, ConfigError, apply_overrides, load_config, parse_header, validate_config
from .utils.logger import get_checker_logger, setup_logging
from .utils.monitoring import CheckMonitor


class CheckerApp:
    """Main application class for the HTTP status checker."""

    def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None):
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.logger = get_checker_logger(__name__)
        self.monitor: Optional[CheckMonitor] = None

    def build_config(self, args: argparse.Namespace) -> Config:
        """Load the config file (if any) and layer command-line flags over it."""
        config = load_config(args.config)

        headers = dict(config.checker.headers)
        for header in args.header or []:
            key, value = parse_header(header)
            headers[key] = value

        config = apply_overrides(
            config, 'checker',
            timeout_ms=args.timeout,
            retries=args.retries,
            follow_redirects=args.follow_redirects,
            max_redirects=args.max_redirects,
            method=args.method,
            concurrency=args.concurrent,
            headers=headers,
        )
        config = apply_overrides(
            config, 'output',
            format=args.format,
            file=args.output,
            color=args.color,
            verbose=args.verbose or None,
            quiet=args.quiet or None,
        )
        config = apply_overrides(
            config, 'logging',
            file=args.log_file,
            json=args.log_json or None,
            level='DEBUG' if args.verbose else None,
        )
        config = apply_overrides(config, 'monitoring', metrics_file=args.metrics_file)

        # -o results.json without --format picks the format from the suffix
        if config.output.file and config.output.format == 'table' and args.format is None:
            suffix = config.output.file.rsplit('.', 1)[-1].lower()
            if suffix in ('json', 'csv'):
                config = apply_overrides(config, 'output', format=suffix)

        return validate_config(config)

    def request_factory(self, config: Config):
        checker = config.checker

        def build(url: str) -> CheckRequest:
            return CheckRequest(
                url=url,
                method=checker.method,
                headers=dict(checker.headers),
                timeout_ms=checker.timeout_ms,
                max_retries=checker.retries,
                follow_redirects=checker.follow_redirects,
                max_redirects=checker.max_redirects,
                retry_delay=checker.retry_delay,
                user_agent=checker.user_agent,
            )

        return build

    def _fail(self, message: str) -> int:
        print(f"Error: {message}", file=self.stderr)
        return 1

    async def run(self, args: argparse.Namespace) -> int:
        """
        Run the checks described by parsed command-line arguments.

        Returns:
            Process exit code
        """
        try:
            config = self.build_config(args)
        except (ConfigError, OSError) as e:
            return self._fail(str(e))

        try:
            setup_logging({
                'level': config.logging.level,
                'file': config.logging.file,
                'format': config.logging.format,
            }, enable_json=config.logging.json)
        except OSError as e:
            return self._fail(f"Cannot open log file {config.logging.file}: {e.strerror or e}")

        try:
            urls = collect_urls(args.urls, args.file)
        except URLSourceError as e:
            self.logger.error(f"Cannot load URLs: {e}")
            return self._fail(str(e))

        if not urls:
            print("Error: No URLs provided", file=self.stderr)
            print("Use --help for usage information", file=self.stderr)
            return 1

        output = config.output
        # Without an output file, json/csv go to stdout in place of the live table
        live = output.format == 'table' or bool(output.file)

        renderer = ConsoleRenderer(
            stream=self.stdout,
            color=should_use_color(self.stdout, output.color),
            verbose=output.verbose,
            quiet=output.quiet,
        )

        self.monitor = CheckMonitor()
        if live:
            renderer.print_header(len(urls))

        async with URLChecker(concurrency=config.checker.concurrency, monitor=self.monitor) as checker:
            scheduler = CheckScheduler(
                checker,
                self.request_factory(config),
                concurrency=config.checker.concurrency,
                on_result=renderer.print_result if live else None,
                monitor=self.monitor,
            )
            results = await scheduler.run(urls)
            self.logger.debug(f"Checker stats: {checker.get_stats()}")

        summary = summarize(results)
        if live:
            renderer.print_summary(summary)
        self.logger.log_run_stat('summary', summary.to_dict())

        if output.format != 'table' or output.file:
            try:
                content = export_results(results, output.format, output.file)
            except ExportError as e:
                self.logger.error(f"Export failed: {e}")
                return self._fail(str(e))

            if output.file:
                renderer.print_saved(output.file)
            else:
                self.stdout.write(content)

        if config.monitoring.metrics_file:
            try:
                self.monitor.metrics.export_textfile(config.monitoring.metrics_file)
            except OSError as e:
                self.logger.error(f"Cannot write metrics file: {e}")
                return self._fail(f"Cannot write metrics file: {e}")

        return 1 if summary.has_failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='httpcheck',
        description="HTTP Status Checker: check if websites are up, measure response times and follow redirects.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httpcheck https://example.com
  httpcheck https://example.com --no-redirect
  httpcheck -f urls.txt -t 5000
  httpcheck https://api.example.com -m POST -H "Authorization: Bearer token"
  httpcheck -f urls.txt --format json -o results.json
        """
    )

    parser.add_argument('urls', nargs='*', metavar='URL', help='URLs to check')
    parser.add_argument('-v', '--version', action='version', version=f'httpcheck v{__version__}')
    parser.add_argument('-f', '--file', help='Read URLs from file (one per line)')
    parser.add_argument('-t', '--timeout', type=int, help='Request timeout in milliseconds (default: 10000)')
    parser.add_argument(
        '-r', '--retries', type=int,
        help='Attempts per request, including the first (default: 1)'
    )
    parser.add_argument(
        '--no-redirect', dest='follow_redirects', action='store_const', const=False,
        help="Don't follow redirects"
    )
    parser.add_argument('--max-redirects', type=int, help='Maximum redirects to follow (default: 10)')
    parser.add_argument('-m', '--method', help='HTTP method (default: GET)')
    parser.add_argument(
        '-H', '--header', action='append',
        help='Add custom header (format: "Key: Value"), repeatable'
    )
    parser.add_argument('-o', '--output', help='Save results to file')
    parser.add_argument('--format', choices=['table', 'json', 'csv'], help='Output format (default: table)')
    parser.add_argument('-c', '--concurrent', type=int, help='Max concurrent requests (default: 5)')

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-V', '--verbose', action='store_true', help='Show detailed output')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only show errors')

    parser.add_argument(
        '--no-color', dest='color', action='store_const', const=False,
        help='Disable coloured output'
    )
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--log-file', help='Write logs to this file')
    parser.add_argument('--log-json', action='store_true', help='Emit logs as JSON lines')
    parser.add_argument('--metrics-file', help='Write Prometheus metrics to this file after the run')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    app = CheckerApp()
    try:
        return asyncio.run(app.run(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
