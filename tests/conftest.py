import sys
from pathlib import Path

import pytest

SRC_DIR = str((Path(__file__).resolve().parents[1] / "src").resolve())
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from subs_wrapper.settings import Settings  # noqa: E402

INDEX = "https://www.podnapisi.net"


@pytest.fixture
def cfg():
    return Settings(
        upstream_base="https://upstream.test",
        cinemeta_base="https://cinemeta.test",
        index_base=INDEX,
        languages=["sl", "en"],
        fallback_concurrency=1,
        outbound_min_interval=0.0,
        request_timeout=5.0,
        public_base_url=None,
        force_https=False,
    )
