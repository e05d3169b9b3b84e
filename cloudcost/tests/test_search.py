"""
Tests for pricing page discovery.
"""

import pytest
import httpx

from cloudcost.freetier.search import (
    PricingPageLocator,
    SearchResult,
    extract_title,
    generate_pricing_urls,
    service_slug,
)
from cloudcost.resilience.circuit_breaker import CircuitBreaker


def locator_with(handler, **kwargs):
    return PricingPageLocator(transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_live_results_are_limited_to_trusted_host():
    queries = []
    
    def handler(request):
        queries.append(request.url.params["q"])
        return httpx.Response(200, json={
            "AbstractURL": "https://cloud.google.com/run/pricing",
            "AbstractText": "Cloud Run pricing",
            "RelatedTopics": [
                {"FirstURL": "https://cloud.google.com/run/docs/pricing-faq", "Text": "Cloud Run FAQ - common questions"},
                {"FirstURL": "https://en.wikipedia.org/wiki/Cloud_Run", "Text": "Wikipedia"},
                {"Name": "Related", "Topics": [
                    {"FirstURL": "https://cloud.google.com/functions/pricing", "Text": "Cloud Functions pricing"},
                ]},
            ],
        })
    
    results = await locator_with(handler).search("Cloud Run", limit=3)
    
    assert queries == ["site:cloud.google.com Cloud Run pricing"]
    assert [result.url for result in results] == [
        "https://cloud.google.com/run/pricing",
        "https://cloud.google.com/run/docs/pricing-faq",
        "https://cloud.google.com/functions/pricing",
    ]
    assert results[1].title == "Cloud Run FAQ"


@pytest.mark.asyncio
async def test_live_results_respect_limit():
    def handler(request):
        return httpx.Response(200, json={"RelatedTopics": [
            {"FirstURL": f"https://cloud.google.com/run/pricing/{i}", "Text": "Pricing"} for i in range(5)
        ]})
    
    results = await locator_with(handler).search("Cloud Run", limit=2)
    assert len(results) == 2


@pytest.mark.asyncio
async def test_server_error_falls_back_to_alias_table():
    results = await locator_with(lambda request: httpx.Response(500)).search("Cloud Run", limit=3)
    
    assert [result.url for result in results] == [
        "https://cloud.google.com/run/pricing",
        "https://cloud.google.com/run/pricing/",
    ]
    assert results[0].title == "Cloud Run Pricing - Google Cloud"


@pytest.mark.asyncio
async def test_malformed_response_falls_back():
    results = await locator_with(lambda request: httpx.Response(200, text="<html>nope</html>")).search("BigQuery", 3)
    assert results[0].url == "https://cloud.google.com/bigquery/pricing"


@pytest.mark.asyncio
async def test_empty_response_falls_back():
    results = await locator_with(lambda request: httpx.Response(200, json={})).search("Secret Manager", 3)
    assert results[0].url == "https://cloud.google.com/secret-manager/pricing"


@pytest.mark.asyncio
async def test_offsite_only_results_fall_back():
    def handler(request):
        return httpx.Response(200, json={"AbstractURL": "https://example.com/pricing"})
    
    results = await locator_with(handler).search("Firestore", 3)
    assert results[0].url == "https://cloud.google.com/firestore/pricing"


@pytest.mark.asyncio
async def test_transport_failure_falls_back():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)
    
    results = await locator_with(handler).search("Pub/Sub", 3)
    assert results[0].url == "https://cloud.google.com/pubsub/pricing"


@pytest.mark.asyncio
async def test_open_circuit_skips_search():
    calls = []
    breaker = CircuitBreaker("test_search", failure_threshold=1)
    breaker.record_failure()
    
    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})
    
    results = await locator_with(handler, circuit_breaker=breaker).search("Cloud Run", 3)
    
    assert calls == []
    assert results[0].url == "https://cloud.google.com/run/pricing"


@pytest.mark.asyncio
async def test_locate_returns_addresses():
    urls = await locator_with(lambda request: httpx.Response(503)).locate("Cloud Storage", 1)
    assert urls == ["https://cloud.google.com/storage/pricing"]


def test_unknown_service_gets_generic_guesses():
    assert generate_pricing_urls("Dataflow Prime", "https://cloud.google.com/") == [
        "https://cloud.google.com/dataflow-prime/pricing",
        "https://cloud.google.com/dataflow-prime-pricing",
        "https://cloud.google.com/dataflow/prime/pricing",
    ]


def test_single_word_unknown_service_has_no_duplicate_guesses():
    assert generate_pricing_urls("dataproc", "https://cloud.google.com") == [
        "https://cloud.google.com/dataproc/pricing",
        "https://cloud.google.com/dataproc-pricing",
    ]


def test_blank_service_has_no_candidates():
    assert generate_pricing_urls("   ") == []


@pytest.mark.parametrize("name,slug", [
    ("Cloud Run", "cloud-run"),
    ("  cloud_functions ", "cloud-functions"),
    ("Google Cloud Spanner", "spanner"),
    ("Pub/Sub", "pub/sub"),
])
def test_service_slug(name, slug):
    assert service_slug(name) == slug


def test_extract_title():
    assert extract_title("Cloud Run - Serverless containers") == "Cloud Run"
    assert extract_title("x" * 150) == "x" * 100 + "..."
    assert extract_title("Short text") == "Short text"


def test_fallback_results_are_search_results():
    results = PricingPageLocator().fallback_results("GKE", 1)
    assert results == [SearchResult(
        url="https://cloud.google.com/kubernetes-engine/pricing",
        title="GKE Pricing - Google Cloud",
        snippet="Pricing information for GKE",
    )]
