"""
Tests for the AusPost postcode search client.
"""

import httpx
import pytest

from postcode_verifier.services.auspost import AusPostError, Locality, parse_localities

from conftest import locality


class TestParseLocalities:
    """Tests for response body parsing."""

    def test_list_of_localities(self):
        payload = {"localities": {"locality": [
            locality("RICHMOND", "3121", "VIC", -37.818, 145.001),
            locality("BURNLEY", "3121", "VIC", -37.827, 145.011),
        ]}}

        result = parse_localities(payload)

        assert [item.location for item in result] == ["RICHMOND", "BURNLEY"]
        assert result[0].latitude == -37.818
        assert result[0].longitude == 145.001
        assert result[0].postcode == "3121"

    def test_single_locality_object(self):
        payload = {"localities": {"locality": locality("MELBOURNE", "3000", "VIC")}}

        result = parse_localities(payload)

        assert len(result) == 1
        assert result[0].location == "MELBOURNE"

    def test_nested_under_data(self):
        payload = {"data": {"localities": {"locality": [locality("SYDNEY", "2000", "NSW")]}}}

        result = parse_localities(payload)

        assert [item.location for item in result] == ["SYDNEY"]

    def test_no_results(self):
        assert parse_localities({"localities": ""}) == []
        assert parse_localities({}) == []
        assert parse_localities([]) == []

    def test_alternative_field_names_and_defaults(self):
        payload = {"localities": {"locality": {"suburb": "HOBART", "postal_code": 7000, "state": "TAS"}}}

        result = parse_localities(payload)

        assert result == [Locality(
            category="",
            id=0,
            latitude=0.0,
            longitude=0.0,
            location="HOBART",
            postcode="7000",
            state="TAS",
        )]

    def test_non_string_fields_are_coerced(self):
        payload = {"localities": {"locality": {"location": 3000, "postcode": 3000, "state": 7, "category": 1}}}

        [result] = parse_localities(payload)

        assert result.location == "3000"
        assert result.postcode == "3000"
        assert result.state == "7"
        assert result.category == "1"


class TestAusPostClient:
    """Tests for the HTTP side of the client."""

    @pytest.mark.asyncio
    async def test_search_sends_query_state_and_key(self, fake_auspost, auspost):
        result = await auspost.search("MELBOURNE", "VIC")

        assert len(result) == 3
        assert fake_auspost.calls == [("MELBOURNE", "VIC", "Bearer test-api-key")]

    @pytest.mark.asyncio
    async def test_search_without_state(self, fake_auspost, auspost):
        await auspost.search("3000")

        assert fake_auspost.calls == [("3000", None, "Bearer test-api-key")]

    @pytest.mark.asyncio
    async def test_empty_answer(self, auspost):
        assert await auspost.search("ATLANTIS", "VIC") == []

    @pytest.mark.asyncio
    async def test_error_status_raises(self, fake_auspost, auspost):
        fake_auspost.status_code = 503

        with pytest.raises(AusPostError, match="Failed to fetch AusPost: Service Unavailable"):
            await auspost.search("MELBOURNE", "VIC")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, fake_auspost, auspost):
        fake_auspost.raise_error = httpx.ConnectError("connection refused")

        with pytest.raises(AusPostError, match="connection refused"):
            await auspost.search("MELBOURNE", "VIC")

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, auspost_with_body):
        client = auspost_with_body(b"<html>gateway timeout</html>")

        with pytest.raises(AusPostError, match="invalid response body"):
            await client.search("MELBOURNE", "VIC")


@pytest.fixture
def auspost_with_body():
    """Build a client whose API always answers 200 with a raw body."""
    from postcode_verifier.services.auspost import AusPostClient

    def build(body: bytes) -> AusPostClient:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
        return AusPostClient(base_url="https://auspost.test/search.json", api_key="", transport=transport)

    return build
