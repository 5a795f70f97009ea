"""Testes para o helper de latência timed()."""

from __future__ import annotations

import time
from unittest.mock import patch

import pytest

from sales_hearing.observability.timing import timed


class TestTimedContextManager:
    def test_timed_measures_elapsed_time(self):
        with patch("sales_hearing.observability.timing.logger") as mock_logger:
            with timed("extraction"):
                time.sleep(0.01)

            mock_logger.info.assert_called_once()
            call_args = mock_logger.info.call_args
            assert call_args.args[0] == "component_latency"
            assert call_args.kwargs["extra"]["elapsed_ms"] >= 10.0

    def test_timed_logs_component_and_fields(self):
        with patch("sales_hearing.observability.timing.logger") as mock_logger:
            with timed("decision", turn_index=3):
                pass

            extra = mock_logger.info.call_args.kwargs["extra"]
            assert extra["component"] == "decision"
            assert extra["turn_index"] == 3

    def test_timed_logs_on_exception(self):
        with patch("sales_hearing.observability.timing.logger") as mock_logger:
            with pytest.raises(ValueError):
                with timed("suggestions"):
                    raise ValueError("falha")

            mock_logger.info.assert_called_once()
