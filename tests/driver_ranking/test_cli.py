"""Tests for driver_ranking.cli — argument parsing and the exit-code contract."""
from unittest.mock import patch

import pytest

from driver_ranking.cli import build_parser, main
from driver_ranking.pipeline.base import RankingEntry
from driver_ranking.pipeline.manager import RankingUpdateError, RunOutcome


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch('driver_ranking.cli.configure_logging') as mock_configure:
        yield mock_configure


class TestMain:

    @patch('driver_ranking.cli.run_ranking_update')
    def test_success_exits_zero(self, mock_run):
        mock_run.return_value = RunOutcome(success=True, new_rankings=[RankingEntry(1, 1)])
        assert main([]) == 0
        mock_run.assert_called_once_with(provider=None)

    @patch('driver_ranking.cli.run_ranking_update')
    def test_failure_exits_one(self, mock_run):
        mock_run.return_value = RunOutcome(success=False, error=RankingUpdateError('Failed to make LLM call'))
        assert main([]) == 1

    @patch('driver_ranking.cli.run_ranking_update')
    def test_provider_override(self, mock_run):
        mock_run.return_value = RunOutcome(success=True)
        main(['--provider', 'azure'])
        mock_run.assert_called_once_with(provider='azure')

    @patch('driver_ranking.cli.run_ranking_update')
    def test_log_level_forwarded(self, mock_run, _no_logging_setup):
        mock_run.return_value = RunOutcome(success=True)
        main(['--log-level', 'DEBUG'])
        _no_logging_setup.assert_called_once_with('DEBUG')


class TestParser:

    def test_rejects_unknown_provider(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--provider', 'gcp'])

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.provider is None
        assert args.log_level is None
