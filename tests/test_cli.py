"""Tests for the command-line front end."""

import csv
import io
import json

import pytest

from httpcheck.cli import CheckerApp, build_parser, main


def run_app(argv):
    stdout = io.StringIO()
    stderr = io.StringIO()
    app = CheckerApp(stdout=stdout, stderr=stderr)
    return app, stdout, stderr, build_parser().parse_args(argv)


class TestParser:
    def test_flags_default_to_none_so_config_wins(self):
        args = build_parser().parse_args(['https://example.com'])

        assert args.urls == ['https://example.com']
        assert args.timeout is None
        assert args.retries is None
        assert args.follow_redirects is None
        assert args.format is None
        assert args.color is None

    def test_repeatable_headers(self):
        args = build_parser().parse_args(['-H', 'A: 1', '--header', 'B: 2', '--no-redirect'])

        assert args.header == ['A: 1', 'B: 2']
        assert args.follow_redirects is False

    def test_verbose_and_quiet_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['-V', '-q', 'https://example.com'])

    def test_unknown_format_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--format', 'xml', 'https://example.com'])


class TestBuildConfig:
    def test_cli_flags_override_file(self, tmp_path):
        path = tmp_path / 'c.yaml'
        path.write_text("checker:\n  timeout_ms: 1000\n  concurrency: 2\n  headers:\n    X-A: file\n")
        app, _, _, args = run_app([
            '--config', str(path), '-t', '5000', '-m', 'head',
            '-H', 'X-B: cli', '--no-redirect', '-r', '3',
        ])

        config = app.build_config(args)

        assert config.checker.timeout_ms == 5000
        assert config.checker.concurrency == 2
        assert config.checker.method == 'HEAD'
        assert config.checker.headers == {'X-A': 'file', 'X-B': 'cli'}
        assert config.checker.follow_redirects is False
        assert config.checker.retries == 3

    def test_output_suffix_selects_format(self):
        app, _, _, args = run_app(['-o', 'results.csv', 'https://example.com'])
        assert app.build_config(args).output.format == 'csv'

    def test_explicit_format_wins_over_suffix(self):
        app, _, _, args = run_app(['-o', 'results.csv', '--format', 'json', 'https://example.com'])
        assert app.build_config(args).output.format == 'json'

    def test_verbose_enables_debug_logging(self):
        app, _, _, args = run_app(['-V', 'https://example.com'])
        assert app.build_config(args).logging.level == 'DEBUG'


class TestInputErrors:
    def test_no_urls(self, capsys):
        assert main([]) == 1
        assert 'No URLs provided' in capsys.readouterr().err

    def test_missing_url_file(self, tmp_path, capsys):
        assert main(['-f', str(tmp_path / 'missing.txt')]) == 1
        assert 'File not found' in capsys.readouterr().err

    def test_bad_header(self, capsys):
        assert main(['-H', 'nonsense', 'https://example.com']) == 1
        assert 'Invalid header' in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(['--config', str(tmp_path / 'none.yaml'), 'https://example.com']) == 1
        assert 'Configuration file not found' in capsys.readouterr().err

    def test_non_numeric_config_value(self, tmp_path, capsys):
        path = tmp_path / 'c.yaml'
        path.write_text("checker:\n  timeout_ms: fast\n")

        assert main(['--config', str(path), 'https://example.com']) == 1
        assert 'Error: checker.timeout_ms must be an integer' in capsys.readouterr().err

    def test_config_path_is_directory(self, tmp_path, capsys):
        assert main(['--config', str(tmp_path), 'https://example.com']) == 1
        assert 'Error: Cannot read configuration file' in capsys.readouterr().err

    def test_unwritable_log_file(self, tmp_path, capsys):
        blocker = tmp_path / 'not-a-dir'
        blocker.write_text('')

        assert main(['--log-file', str(blocker / 'run.log'), 'https://example.com']) == 1
        assert 'Error: Cannot open log file' in capsys.readouterr().err

    def test_invalid_urls_only(self, capsys):
        assert main(['not-a-url']) == 1
        assert 'No URLs provided' in capsys.readouterr().err


class TestRun:
    async def test_all_ok_exits_zero(self, url_for):
        app, stdout, _, args = run_app([url_for('/ok'), url_for('/redirect'), '--no-color'])

        assert await app.run(args) == 0

        output = stdout.getvalue()
        assert 'Checking 2 URL(s)...' in output
        assert f"[200] {url_for('/ok')}" in output
        assert '→ 1 redirect(s)' in output
        assert 'Total: 2 | OK: 2' in output

    async def test_client_error_exits_one(self, url_for):
        app, stdout, _, args = run_app([url_for('/ok'), url_for('/not-found'), '--no-color'])

        assert await app.run(args) == 1
        assert 'Client Errors: 1' in stdout.getvalue()

    async def test_redirect_without_follow_is_not_failure(self, url_for):
        app, stdout, _, args = run_app([url_for('/redirect'), '--no-redirect', '--no-color'])

        assert await app.run(args) == 0
        assert f"[302] {url_for('/redirect')}" in stdout.getvalue()

    async def test_quiet_prints_only_failures(self, url_for):
        app, stdout, _, args = run_app([url_for('/ok'), url_for('/server-error'), '-q', '--no-color'])

        assert await app.run(args) == 1
        lines = stdout.getvalue().splitlines()
        assert len(lines) == 1
        assert lines[0].startswith(f"[503] {url_for('/server-error')} (")

    async def test_json_to_stdout_without_output_file(self, url_for):
        app, stdout, _, args = run_app([url_for('/ok'), '--format', 'json'])

        assert await app.run(args) == 0

        data = json.loads(stdout.getvalue())
        assert data[0]['url'] == url_for('/ok')
        assert data[0]['status'] == 200
        assert data[0]['redirects'] == []

    async def test_csv_export_to_file(self, url_for, tmp_path):
        target = tmp_path / 'results.csv'
        app, stdout, _, args = run_app([url_for('/ok'), url_for('/not-found'), '-o', str(target), '--no-color'])

        assert await app.run(args) == 1

        rows = list(csv.reader(io.StringIO(target.read_text())))
        assert rows[0][0] == 'URL'
        assert sorted(row[1] for row in rows[1:]) == ['200', '404']
        assert f"✓ Results saved to {target}" in stdout.getvalue()

    async def test_table_export_is_an_error(self, url_for, tmp_path):
        target = tmp_path / 'results.txt'
        app, stdout, stderr, args = run_app([url_for('/ok'), '-o', str(target), '--no-color'])

        assert await app.run(args) == 1
        assert 'Unknown format: table' in stderr.getvalue()
        # live output was already shown
        assert f"[200] {url_for('/ok')}" in stdout.getvalue()

    async def test_url_file_and_metrics(self, url_for, tmp_path):
        url_file = tmp_path / 'urls.txt'
        url_file.write_text(f"# local\n{url_for('/ok')}\n\n{url_for('/chain/2')}\n")
        metrics = tmp_path / 'run.prom'
        app, _, _, args = run_app(['-f', str(url_file), '--metrics-file', str(metrics), '--no-color'])

        assert await app.run(args) == 0
        assert 'httpcheck_redirects_total 2.0' in metrics.read_text()

    async def test_verbose_lists_redirect_hops(self, url_for):
        app, stdout, _, args = run_app([url_for('/redirect'), '-V', '--no-color'])

        assert await app.run(args) == 0
        assert f"    → {url_for('/redirect')} → {url_for('/ok')} (302)" in stdout.getvalue()

    async def test_run_summary_logged_as_stat(self, url_for, tmp_path):
        log_file = tmp_path / 'run.log'
        app, _, _, args = run_app([
            url_for('/ok'), url_for('/not-found'), '-V', '--no-color',
            '--log-file', str(log_file), '--log-json',
        ])

        assert await app.run(args) == 1

        entries = [json.loads(line) for line in log_file.read_text(encoding='utf-8').splitlines()]
        stats = [entry for entry in entries if entry.get('event_type') == 'run_stat']
        assert len(stats) == 1
        assert stats[0]['stat_name'] == 'summary'
        assert stats[0]['stat_value']['total'] == 2
        assert stats[0]['stat_value']['client_errors'] == 1
