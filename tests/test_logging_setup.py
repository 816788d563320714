"""Tests for logging setup."""

import io
import json
import logging

import pytest

from releasedrift.logging_setup import JsonFormatter, parse_level, setup_logging


class TestParseLevel:

    @pytest.mark.parametrize("name, level", [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("warn", logging.WARNING),
        ("fatal", logging.CRITICAL),
    ])
    def test_known(self, name, level):
        assert parse_level(name) == level

    def test_unknown(self):
        with pytest.raises(ValueError):
            parse_level("chatty")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_text_output(self):
        stream = io.StringIO()
        setup_logging(level='info', stream=stream)

        logging.getLogger('releasedrift.services').info("refresh done")
        logging.getLogger('releasedrift.services').debug("hidden")

        output = stream.getvalue()
        assert "INFO releasedrift.services: refresh done" in output
        assert "hidden" not in output

    def test_json_output(self):
        stream = io.StringIO()
        setup_logging(level='debug', json_output=True, stream=stream)

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logging.getLogger('releasedrift.app').exception("failed")

        record = json.loads(stream.getvalue().splitlines()[0])
        assert record['level'] == 'error'
        assert record['logger'] == 'releasedrift.app'
        assert record['msg'] == 'failed'
        assert 'RuntimeError: boom' in record['exception']

    def test_handler_replaced(self):
        first = setup_logging(stream=io.StringIO())
        second = setup_logging(stream=io.StringIO())
        handlers = logging.getLogger('releasedrift').handlers
        assert second in handlers
        assert first not in handlers

    def test_director_level(self):
        stream = io.StringIO()
        setup_logging(level='debug', director_level='error', stream=stream)

        logging.getLogger('releasedrift.infra.director_client').info("token renewed")
        logging.getLogger('releasedrift.infra.github_client').info("listing releases")

        output = stream.getvalue()
        assert "token renewed" not in output
        assert "listing releases" in output


class TestJsonFormatter:

    def test_plain_record(self):
        record = logging.LogRecord('releasedrift', logging.WARNING, __file__, 1, "skipping %s", ('ops.yml',), None)
        data = json.loads(JsonFormatter().format(record))
        assert data['msg'] == 'skipping ops.yml'
        assert data['level'] == 'warning'
        assert 'exception' not in data
