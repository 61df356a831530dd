"""
Shared fixtures for the pagecheck tests.
"""

from pytest import fixture

from pagecheck.fixture import load_fixture
from pagecheck.validate import PageValidator

from utils import INDEX_PATH


@fixture(scope="session")
def index_fixture():
    """The Hello World page, loaded once per test session."""
    return load_fixture(INDEX_PATH)


@fixture
def document(index_fixture):
    """A freshly parsed tree of the Hello World page."""
    return index_fixture.parse()


@fixture
def validator():
    """An offline page validator that is closed after the test."""
    with PageValidator() as page_validator:
        yield page_validator
