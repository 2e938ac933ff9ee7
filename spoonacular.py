"""
Spoonacular recipe-database proxy.

request_json issues the GET and raises on failure; fetch_from_api is the
enveloped form. SpoonacularService builds the four recipe queries on top.
"""

import json
import logging
import time
from typing import List, Dict, Any, Optional

import requests
import urllib3

from app_models import (
    ValidationError,
    ConfigurationError,
    ExternalAPIError,
    UpstreamHTTPError,
    RequestTimeoutError,
    ResponseParseError,
    envelope,
    validate_search_results,
    adapt_complex_search,
    validate_recipe_details,
    validate_random_recipes,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
# Advisory only; lets intermediaries serve a cached copy for a minute.
CACHE_MAX_AGE = 60
RAW_LOG_LIMIT = 500
CHUNK_SIZE = 8192


def request_json(url: str, params: Optional[Dict[str, Any]] = None, timeout: float = REQUEST_TIMEOUT) -> Any:
    """
    GET a URL and decode the JSON body.

    Args:
        url: Fully built endpoint URL
        params: Query parameters, URL-encoded by requests
        timeout: Seconds before the request is abandoned

    Returns:
        Decoded JSON payload

    Raises:
        RequestTimeoutError: If the whole request, body included, exceeds the timeout
        UpstreamHTTPError: On a non-2xx status
        ResponseParseError: If the body is not JSON
        ExternalAPIError: On any other transport failure
    """
    # requests' timeout bounds each socket wait, not the request as a whole
    deadline = time.monotonic() + timeout
    try:
        response = requests.get(
            url,
            params=params,
            timeout=timeout,
            stream=True,
            headers={
                "Content-Type": "application/json",
                "Cache-Control": f"max-age={CACHE_MAX_AGE}",
            },
        )
        try:
            text = _read_body(response, deadline)
        finally:
            response.close()
    except (requests.exceptions.Timeout, urllib3.exceptions.TimeoutError):
        logger.error(f"Spoonacular request timed out after {timeout}s: {url}")
        raise RequestTimeoutError()
    except (requests.exceptions.RequestException, urllib3.exceptions.HTTPError) as e:
        logger.error(f"Spoonacular request error: {str(e)}")
        raise ExternalAPIError(str(e))

    if not response.ok:
        raise UpstreamHTTPError(response.status_code, text)

    try:
        return json.loads(text)
    except ValueError:
        logger.error(f"Spoonacular returned non-JSON body: {text[:RAW_LOG_LIMIT]}")
        raise ResponseParseError("Failed to parse API response")


def _read_body(response: requests.Response, deadline: float) -> str:
    """Read a streamed body, giving up once the deadline passes."""
    body = bytearray()
    while True:
        if time.monotonic() > deadline:
            raise requests.exceptions.Timeout("Total request deadline exceeded")
        # read1 returns after a single socket read, so a trickling body
        # is checked against the deadline between bytes
        chunk = response.raw.read1(CHUNK_SIZE, decode_content=True)
        if not chunk:
            break
        body.extend(chunk)
    return bytes(body).decode(response.encoding or "utf-8", errors="replace")


@envelope
def fetch_from_api(url: str, params: Optional[Dict[str, Any]] = None, timeout: float = REQUEST_TIMEOUT) -> Any:
    """GET a URL and return the decoded body as a ProxyResult."""
    return request_json(url, params, timeout)


class SpoonacularService:
    """Handle all Spoonacular API calls."""

    BASE_URL = "https://api.spoonacular.com"
    SEARCH_LIMIT = 12
    RANDOM_LIMIT = 6

    def __init__(self, api_key: Optional[str], base_url: str = BASE_URL):
        """Initialize Spoonacular service."""
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _get(self, path: str, **params) -> Any:
        if not self.available:
            raise ConfigurationError("Spoonacular client not available")
        params["apiKey"] = self.api_key
        return request_json(f"{self.base_url}{path}", params)

    @envelope
    def search_recipes_by_ingredients(self, ingredients: List[str]) -> List[Dict[str, Any]]:
        """
        Search recipes by ingredients.

        Args:
            ingredients: Ingredient names; blanks are ignored

        Returns:
            Up to 12 findByIngredients results, unchanged, ranked to
            minimise missing ingredients and ignoring pantry staples
        """
        names = [str(i).strip() for i in ingredients or [] if str(i).strip()]
        if not names:
            raise ValidationError("No ingredients provided", "ingredients")

        recipes = validate_search_results(self._get(
            "/recipes/findByIngredients",
            ingredients=",".join(names),
            number=self.SEARCH_LIMIT,
            ranking=2,
            ignorePantry="true",
        ))
        logger.info(f"Spoonacular found {len(recipes)} recipes for {len(names)} ingredients")
        return recipes

    @envelope
    def search_recipes_by_query(self, query: str) -> List[Dict[str, Any]]:
        """
        Search recipes by name.

        complexSearch results are adapted to the findByIngredients shape:
        match counts 0, ingredient arrays empty, likes from aggregateLikes.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("No search query provided", "query")

        recipes = adapt_complex_search(self._get(
            "/recipes/complexSearch",
            query=query,
            number=self.SEARCH_LIMIT,
            addRecipeInformation="true",
        ))
        logger.info(f"Spoonacular found {len(recipes)} recipes for query '{query}'")
        return recipes

    @envelope
    def get_recipe_details(self, recipe_id: int) -> Dict[str, Any]:
        """Get full information for one recipe, nutrition excluded."""
        if not isinstance(recipe_id, int) or isinstance(recipe_id, bool) or recipe_id <= 0:
            raise ValidationError("Invalid recipe id", "id")

        return validate_recipe_details(self._get(
            f"/recipes/{recipe_id}/information",
            includeNutrition="false",
        ))

    @envelope
    def get_random_recipes(self, tags: Optional[str] = None) -> Dict[str, Any]:
        """Get six random recipes, optionally filtered by a comma separated tag string."""
        params = {"number": self.RANDOM_LIMIT}
        if tags and tags.strip():
            params["tags"] = tags.strip()

        payload = validate_random_recipes(self._get("/recipes/random", **params))
        logger.info(f"Spoonacular returned {len(payload['recipes'])} random recipes")
        return payload
