import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from osm_resolver.config import LoaderConfig
from osm_resolver.osm.database import OSMDatabase


@pytest.fixture
def config():
    return LoaderConfig()


@pytest.fixture
def db(config):
    return OSMDatabase(config)
