import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the environment (and with it the log level), then initializes the
    domain and pushes its context. The activated domain can then be referred
    to elsewhere as `current_domain`.
    """
    os.environ["FARMGATE_ENV"] = session.config.option.env
    os.environ.setdefault("STORAGE_ADAPTER", "memory")
    os.environ.setdefault("CATALOGUE_ADAPTER", "fake")

    from shared.domain import init_domain

    init_domain().domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Give every test a fresh store, change feed and catalogue."""
    from storage import reset_store, set_store
    from storage.memory_adapter import InMemoryChangeFeed, InMemoryOrderStore
    from storefront.catalogue import reset_catalogue, set_catalogue
    from storefront.catalogue.fake_adapter import FakeCatalogue

    feed = InMemoryChangeFeed()
    set_store(InMemoryOrderStore(feed=feed), feed)
    set_catalogue(FakeCatalogue())

    yield

    reset_store()
    reset_catalogue()


@pytest.fixture
def store():
    from storage import get_store

    return get_store()


@pytest.fixture
def feed():
    from storage import get_change_feed

    return get_change_feed()


@pytest.fixture
def catalogue():
    from storefront.catalogue import get_catalogue

    return get_catalogue()
