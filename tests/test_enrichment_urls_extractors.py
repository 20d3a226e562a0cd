import pytest

from studio_app.enrichment.extractors import (
    extract_email,
    extract_json_ld,
    extract_open_graph,
    extract_phone,
    extract_social_links,
    extract_structured_data,
    extract_title,
)
from studio_app.enrichment.urls import is_legacy_social_url, normalize_url


def test_legacy_twitter_link_is_normalized_to_x():
    normalized = normalize_url("http://twitter.com/foo?utm_source=x")

    assert normalized == "https://x.com/foo"
    assert normalize_url(normalized) == normalized


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("janedoe.example", "https://janedoe.example"),
        ("  https://janedoe.example/contact  ", "https://janedoe.example/contact"),
        ("http://www.twitter.com/jane", "https://www.x.com/jane"),
        ("https://www.facebook.com/jane?fbclid=abc&ref=bio", "https://www.facebook.com/jane?ref=bio"),
        ("http://janedoe.example/?page=2", "http://janedoe.example/?page=2"),
        ("https://mobile.twitter.com/jane#top", "https://mobile.x.com/jane#top"),
    ],
)
def test_normalize_url_cases(raw, expected):
    assert normalize_url(raw) == expected
    assert normalize_url(expected) == expected


def test_normalize_url_passes_empty_values_through():
    assert normalize_url(None) is None
    assert normalize_url("") == ""


def test_is_legacy_social_url():
    assert is_legacy_social_url("twitter.com/jane")
    assert is_legacy_social_url("https://mobile.twitter.com/jane")
    assert not is_legacy_social_url("https://x.com/jane")
    assert not is_legacy_social_url("https://nottwitter.com/jane")
    assert not is_legacy_social_url(None)


PAGE = """
<html>
<head>
  <title>Jane Doe Voiceover &amp; Studio</title>
  <meta property="og:title" content="Jane Doe Studio">
  <meta property="og:url" content="https://janedoe.example">
  <script type="application/ld+json">{not valid json</script>
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@graph": [
      {"@type": "WebSite", "name": "Site"},
      {"@type": ["LocalBusiness", "ProfessionalService"],
       "name": "Jane Doe Studio",
       "telephone": "+44 20 7946 0000",
       "address": {"streetAddress": "1 High Street", "addressLocality": "London"}}
  ]}
  </script>
</head>
<body>
  <a href="mailto:bookings@janedoe.example">Email</a>
  <p>Phone: +44 (0) 20 7946 0001</p>
  <a href="https://twitter.com/janedoe?utm_campaign=site">Twitter</a>
  <a href="https://www.instagram.com/janedoe/">Instagram</a>
  <a href="https://www.linkedin.com/in/janedoe">LinkedIn</a>
</body>
</html>
"""


def test_extract_json_ld_finds_business_node_in_graph():
    assert extract_json_ld(PAGE) == {
        "name": "Jane Doe Studio",
        "phone": "+44 20 7946 0000",
        "address": "1 High Street",
        "city": "London",
    }


def test_extract_json_ld_without_business_node():
    page = '<script type="application/ld+json">{"@type": "WebSite", "name": "x"}</script>'

    assert extract_json_ld(page) == {}


def test_open_graph_title_and_email_and_phone():
    assert extract_open_graph(PAGE) == {"og_title": "Jane Doe Studio", "og_url": "https://janedoe.example"}
    assert extract_email(PAGE) == "bookings@janedoe.example"
    assert extract_phone(PAGE) == "+44 (0) 20 7946 0001"
    assert extract_title(PAGE) == "Jane Doe Voiceover & Studio"


def test_extractors_return_none_when_signal_missing():
    assert extract_email("<p>No contact</p>") is None
    assert extract_phone("<p>Call 123</p>") is None
    assert extract_title("<p>untitled</p>") is None


def test_social_links_are_normalized_per_platform():
    assert extract_social_links(PAGE) == {
        "twitter": "https://x.com/janedoe",
        "linkedin": "https://www.linkedin.com/in/janedoe",
        "instagram": "https://www.instagram.com/janedoe/",
    }


def test_structured_data_merges_all_signals():
    data = extract_structured_data(PAGE)

    assert data["phone"] == "+44 20 7946 0000"
    assert data["extracted_phone"] == "+44 (0) 20 7946 0001"
    assert data["email"] == "bookings@janedoe.example"
    assert data["og_title"] == "Jane Doe Studio"
