import logging
from pathlib import Path

INDEX_PATH = Path(__file__).parent.parent / "site" / "index.html"
"""The Hello World page."""


class _NoLogHandler(logging.Handler):
    """Log handler that asserts if anything is logged."""

    LOGGING_FORMAT = "%(levelname)s: %(message)s"

    def __init__(self, logger):
        logging.Handler.__init__(self)
        self.setFormatter(logging.Formatter(self.LOGGING_FORMAT))
        self.logger = logger

    def __enter__(self):
        self.logger.addHandler(self)

    def __exit__(self, exc_type, exc_value, traceback):
        self.logger.removeHandler(self)

    def emit(self, record):
        message = self.format(record)
        assert False, f"Unexpected logging: {message}"


def no_log(logger):
    """Return a context manager that asserts if anything is emitted
    on the given logger.
    """
    return _NoLogHandler(logger)


def page(body="<main><h1>Hello World</h1></main>", head=None, lang="en"):
    """Return the text of an HTML page like the Hello World page,
    with a different body or head.
    """
    if head is None:
        head = (
            '<meta charset="UTF-8">\n'
            '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            "<title>Hello World</title>\n"
        )
    lang_attr = "" if lang is None else f' lang="{lang}"'
    return f"<!DOCTYPE html>\n<html{lang_attr}>\n<head>\n{head}</head>\n<body>\n{body}\n</body>\n</html>\n"
