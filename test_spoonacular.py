"""Tests for the Spoonacular HTTP wrapper and proxy operations."""

from types import SimpleNamespace

import pytest
import requests
import urllib3

import spoonacular
from conftest import FakeResponse
from spoonacular import SpoonacularService, fetch_from_api, REQUEST_TIMEOUT


@pytest.fixture
def service():
    return SpoonacularService("test-key")


class TestFetchFromAPI:

    def test_success_returns_payload(self, fake_get):
        fake_get.response = FakeResponse(200, {"hello": "world"})
        result = fetch_from_api("https://example.test/x")
        assert result.to_dict() == {"success": True, "data": {"hello": "world"}}
        call = fake_get.calls[0]
        assert call["timeout"] == REQUEST_TIMEOUT
        assert call["headers"]["Cache-Control"] == "max-age=60"

    def test_http_404_surfaces_status(self, fake_get):
        fake_get.response = FakeResponse(404, text="Not Found")
        result = fetch_from_api("https://example.test/x")
        assert not result.success
        assert "404" in result.error

    def test_timeout(self, fake_get):
        fake_get.error = requests.exceptions.Timeout()
        result = fetch_from_api("https://example.test/x")
        assert result.to_dict() == {"success": False, "error": "Request timed out"}
        assert result.status_code == 504

    def test_connection_error_message(self, fake_get):
        fake_get.error = requests.exceptions.ConnectionError("connection refused")
        result = fetch_from_api("https://example.test/x")
        assert result.error == "connection refused"

    def test_non_json_body(self, fake_get):
        fake_get.response = FakeResponse(200, text="<html>oops</html>")
        result = fetch_from_api("https://example.test/x")
        assert result.error == "Failed to parse API response"

    def test_request_is_streamed_and_closed(self, fake_get):
        fake_get.response = FakeResponse(200, {"ok": True})
        fetch_from_api("https://example.test/x")
        assert fake_get.calls[0]["stream"] is True
        assert fake_get.response.closed

    def test_trickling_body_hits_total_deadline(self, fake_get, monkeypatch):
        clock = {"now": 0.0}

        def tick():
            clock["now"] += 0.5

        monkeypatch.setattr(spoonacular, "time", SimpleNamespace(monotonic=lambda: clock["now"]))
        fake_get.response = FakeResponse(200, text='{"slow": true}', chunk_size=1, on_read=tick)

        result = fetch_from_api("https://example.test/x", timeout=2)

        assert result.to_dict() == {"success": False, "error": "Request timed out"}
        assert fake_get.response.raw.reads < len('{"slow": true}')
        assert clock["now"] <= 2.5
        assert fake_get.response.closed

    def test_read_timeout_while_streaming(self, fake_get):
        def stall():
            raise urllib3.exceptions.ReadTimeoutError(None, "https://example.test/x", "Read timed out.")

        fake_get.response = FakeResponse(200, {"ok": True}, on_read=stall)
        assert fetch_from_api("https://example.test/x").error == "Request timed out"


class TestSearchByIngredients:

    def test_empty_list_makes_no_request(self, service, fake_get):
        result = service.search_recipes_by_ingredients([])
        assert not result.success
        assert result.error == "No ingredients provided"
        assert fake_get.calls == []

    def test_blank_entries_count_as_empty(self, service, fake_get):
        assert not service.search_recipes_by_ingredients(["  ", ""]).success
        assert fake_get.calls == []

    def test_query_parameters(self, service, fake_get):
        upstream = [{"id": 1, "title": "Garlic Pasta", "usedIngredientCount": 2}]
        fake_get.response = FakeResponse(200, upstream)

        result = service.search_recipes_by_ingredients(["pasta", "garlic"])

        assert result.data == upstream
        call = fake_get.calls[0]
        assert call["url"] == "https://api.spoonacular.com/recipes/findByIngredients"
        assert call["params"] == {
            "ingredients": "pasta,garlic",
            "number": 12,
            "ranking": 2,
            "ignorePantry": "true",
            "apiKey": "test-key",
        }

    def test_missing_api_key(self, fake_get):
        result = SpoonacularService(None).search_recipes_by_ingredients(["pasta"])
        assert result.error == "Spoonacular client not available"
        assert result.status_code == 503
        assert fake_get.calls == []


class TestSearchByQuery:

    def test_blank_query_makes_no_request(self, service, fake_get):
        result = service.search_recipes_by_query("   ")
        assert result.error == "No search query provided"
        assert fake_get.calls == []

    def test_results_are_adapted(self, service, fake_get):
        fake_get.response = FakeResponse(200, {"results": [
            {"id": 5, "title": "Lasagna", "image": "l.jpg", "imageType": "jpg", "aggregateLikes": 40},
            {"id": 6, "title": "Cake", "image": "c.jpg", "imageType": "jpg"},
        ]})

        result = service.search_recipes_by_query("lasagna")

        assert result.success
        assert [r["likes"] for r in result.data] == [40, 0]
        assert all(r["usedIngredientCount"] == 0 and r["missedIngredients"] == [] for r in result.data)
        assert fake_get.calls[0]["params"]["addRecipeInformation"] == "true"
        assert fake_get.calls[0]["params"]["number"] == 12

    def test_malformed_payload(self, service, fake_get):
        fake_get.response = FakeResponse(200, {"unexpected": True})
        result = service.search_recipes_by_query("lasagna")
        assert not result.success
        assert result.error == "Unexpected response format from recipe API"


class TestDetailsAndRandom:

    def test_details_round_trip_and_idempotent(self, service, fake_get):
        upstream = {"id": 42, "title": "Pie", "glutenFree": True, "extendedIngredients": [{"name": "flour"}]}
        fake_get.response = FakeResponse(200, upstream)

        first = service.get_recipe_details(42)
        second = service.get_recipe_details(42)

        assert first.data == upstream
        assert first.data == second.data
        assert fake_get.calls[0]["url"] == "https://api.spoonacular.com/recipes/42/information"
        assert fake_get.calls[0]["params"]["includeNutrition"] == "false"

    def test_details_404(self, service, fake_get):
        fake_get.response = FakeResponse(404, text='{"status":"failure"}')
        result = service.get_recipe_details(999)
        assert not result.success
        assert "404" in result.error

    def test_invalid_id(self, service, fake_get):
        assert service.get_recipe_details(0).error == "Invalid recipe id"
        assert fake_get.calls == []

    def test_random_round_trip(self, service, fake_get):
        upstream = {"recipes": [{"id": 1, "title": "A"}, {"id": 2, "title": "B", "extra": [1]}]}
        fake_get.response = FakeResponse(200, upstream)

        result = service.get_random_recipes()

        assert result.data == upstream
        assert fake_get.calls[0]["params"] == {"number": 6, "apiKey": "test-key"}

    def test_random_with_tags(self, service, fake_get):
        fake_get.response = FakeResponse(200, {"recipes": []})
        service.get_random_recipes("vegetarian,dessert")
        assert fake_get.calls[0]["params"]["tags"] == "vegetarian,dessert"

    def test_random_timeout(self, service, fake_get):
        fake_get.error = requests.exceptions.ReadTimeout()
        assert service.get_random_recipes().error == "Request timed out"
