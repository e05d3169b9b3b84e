"""
Shared pytest fixtures for cloudcost tests.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
import httpx
from datetime import datetime, timedelta

from cloudcost.domain.freetier_models import FreeTierItem, FreeTierRecord, FreeTierScope, FreeTierPeriod
from cloudcost.domain.rate_models import RateTable, RateTier
from cloudcost.resilience.circuit_breaker import reset_circuit_breakers


class FakeClock:
    """Controllable time source for TTL and circuit breaker tests."""
    
    def __init__(self, start: datetime):
        self.now = start
    
    def __call__(self) -> datetime:
        return self.now
    
    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fresh_circuit_breakers():
    """Each test starts with closed breakers."""
    reset_circuit_breakers()
    yield
    reset_circuit_breakers()


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
def per_second_rate():
    """Flat $0.000024 per vCPU-second."""
    return RateTable(tiers=[RateTier(start_amount=0, units=0, nanos=24000)], unit="s", currency_code="USD")


@pytest.fixture
def two_tier_rate():
    """$0.10 up to 100 units, $0.05 after."""
    return RateTable(
        tiers=[
            RateTier(start_amount=0, nanos=100_000_000),
            RateTier(start_amount=100, nanos=50_000_000),
        ],
        unit="count",
    )


@pytest.fixture
def cloud_run_record():
    """Free tier record as found on the Cloud Run pricing page."""
    return FreeTierRecord(
        service_name="Cloud Run",
        items=(
            FreeTierItem(resource="vCPU-seconds", amount=240000, unit="seconds"),
            FreeTierItem(resource="GiB-seconds", amount=450000, unit="seconds"),
            FreeTierItem(resource="requests", amount=2000000, unit="count"),
        ),
        scope=FreeTierScope.ACCOUNT,
        period=FreeTierPeriod.MONTH,
        source_url="https://cloud.google.com/run/pricing",
    )


@pytest.fixture
def cloud_run_pricing_html():
    """Trimmed-down Cloud Run pricing page."""
    return """
    <html>
      <head><title>Cloud Run pricing</title><script>window.dataLayer = [];</script></head>
      <body>
        <header>Google Cloud</header>
        <nav><a href="/products">Products</a></nav>
        <main>
          <h1>Cloud Run pricing</h1>
          <p>Cloud Run charges you only for the resources you use.</p>
          <h2>Free tier</h2>
          <ul>
            <li>240,000 vCPU-seconds per month are free.</li>
            <li>450,000 GiB-seconds per month free</li>
            <li>First 2 million requests per month are free.</li>
          </ul>
          <p>The free tier is applied per billing account.</p>
        </main>
        <footer>Terms of service</footer>
      </body>
    </html>
    """


def html_transport(pages, calls=None):
    """
    MockTransport serving ``pages`` (url -> html or status code).
    
    Unknown URLs return 404. Requested URLs are appended to ``calls``.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        page = pages.get(url)
        if page is None:
            return httpx.Response(404, text="not found")
        if isinstance(page, int):
            return httpx.Response(page, text="error")
        return httpx.Response(200, html=page)
    
    return httpx.MockTransport(handler)


@pytest.fixture
def make_html_transport():
    """Factory fixture for html_transport."""
    return html_transport
