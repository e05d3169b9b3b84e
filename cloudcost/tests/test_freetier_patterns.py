"""
Tests for free tier extraction rules.
"""

import pytest
from cloudcost.domain.freetier_models import FreeTierItem
from cloudcost.freetier.patterns import (
    extract_free_tier_items,
    parse_amount,
    FreeTierExtractor,
    FREE_TIER_RULES,
    MILLION,
)


def test_vcpu_seconds_allowance():
    items = extract_free_tier_items("240,000 vCPU-seconds per month are free.")
    assert items == [FreeTierItem(resource="vCPU-seconds", amount=240000, unit="seconds")]


def test_million_requests_are_scaled_to_count():
    items = extract_free_tier_items("First 2 million invocations per month are free.")
    assert items == [FreeTierItem(resource="requests", amount=2000000, unit="count")]


def test_plain_request_count():
    items = extract_free_tier_items("1,000,000 requests per month are free")
    assert items == [FreeTierItem(resource="requests", amount=1000000, unit="count")]


def test_cloud_run_page_yields_items_in_rule_order():
    text = (
        "The first 180,000 vCPU-seconds per month are free. "
        "The first 360,000 GiB-seconds per month are free. "
        "First 2 million requests per month are free."
    )
    assert extract_free_tier_items(text) == [
        FreeTierItem("vCPU-seconds", 180000, "seconds"),
        FreeTierItem("GiB-seconds", 360000, "seconds"),
        FreeTierItem("requests", 2000000, "count"),
    ]


def test_free_tier_prefix_variant():
    items = extract_free_tier_items("Free tier: 50,000 GiB-seconds")
    assert items == [FreeTierItem("GiB-seconds", 50000, "seconds")]


def test_same_amount_for_same_resource_is_deduplicated():
    text = "240,000 vCPU-seconds free. Remember: 240,000 vCPU-seconds free."
    assert len(extract_free_tier_items(text)) == 1


def test_overlapping_rules_do_not_duplicate():
    """Two rules matching the same quantity produce one item."""
    items = extract_free_tier_items("Free tier: 240,000 vCPU-seconds per month free")
    assert items == [FreeTierItem("vCPU-seconds", 240000, "seconds")]


def test_distinct_amounts_for_same_resource_are_kept():
    text = "Tier 1: 180,000 vCPU-seconds free. Tier 2: 240,000 vCPU-seconds free."
    amounts = [item.amount for item in extract_free_tier_items(text)]
    assert amounts == [180000, 240000]


def test_storage_allowance():
    items = extract_free_tier_items("The first 5 GB of storage per month is free.")
    assert items == [FreeTierItem("storage", 5.0, "GiB")]


def test_document_operation_allowances():
    text = (
        "First 50,000 document reads per day are free. "
        "First 20,000 document writes per day are free. "
        "First 20,000 document deletes per day are free."
    )
    assert extract_free_tier_items(text) == [
        FreeTierItem("document-reads", 50000, "count"),
        FreeTierItem("document-writes", 20000, "count"),
        FreeTierItem("document-deletes", 20000, "count"),
    ]


def test_secret_manager_allowances():
    text = "First 6 active secret versions are free. First 10,000 access operations per month are free."
    assert extract_free_tier_items(text) == [
        FreeTierItem("secret-versions", 6, "count"),
        FreeTierItem("access-operations", 10000, "count"),
    ]


def test_egress_allowance():
    items = extract_free_tier_items("First 1 GB of network egress per month is free")
    assert items == [FreeTierItem("egress", 1.0, "GiB")]


def test_query_processing_allowance():
    items = extract_free_tier_items("The first 1 TiB of query processing per month is free.")
    assert items == [FreeTierItem("query-processing", 1.0, "TiB")]


def test_message_delivery_allowance():
    items = extract_free_tier_items("First 10 GiB of messaging per month is free")
    assert items == [FreeTierItem("message-delivery", 10.0, "GiB")]


def test_currency_credit_allowance():
    items = extract_free_tier_items("GKE includes a $74.40/month credit per billing account.")
    assert len(items) == 1
    assert items[0].resource == "cluster-credit"
    assert items[0].amount == pytest.approx(74.4)
    assert items[0].unit == "USD"


def test_no_allowance_phrases():
    assert extract_free_tier_items("Cloud SQL is billed per second of instance uptime.") == []


def test_empty_text():
    assert extract_free_tier_items("") == []


def test_separator_only_amount_is_ignored():
    assert extract_free_tier_items(", requests per month are free") == []


def test_extraction_is_idempotent():
    text = "240,000 vCPU-seconds per month are free. First 2 million requests per month are free."
    extractor = FreeTierExtractor()
    assert extractor.extract(text) == extractor.extract(text)


def test_parse_amount_strips_thousands_separators():
    assert parse_amount("2,628,000") == 2628000


def test_rule_table_order_is_stable():
    """Compute rules come first; only the million rule scales."""
    assert [rule.resource for rule in FREE_TIER_RULES[:4]] == [
        "vCPU-seconds", "GiB-seconds", "vCPU-seconds", "GiB-seconds",
    ]
    scaled = [rule for rule in FREE_TIER_RULES if rule.scale != 1]
    assert len(scaled) == 1
    assert scaled[0].unit == "million"
    assert scaled[0].scale == MILLION
