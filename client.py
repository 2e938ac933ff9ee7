"""
Controller layer for the recipe finder UI.

Each interactive widget (ingredient search, name search, AI ideas, AI
enhancer, meal planner) owns a Widget that tracks its request state.
RecipeAppClient talks to the same-origin /api routes.
"""

import enum
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

# Client-side guard, independent of the 10s server-side recipe timeout.
CLIENT_TIMEOUT = 30


class WidgetState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class Widget:
    """
    Request state for one widget.

    Every begin() issues a new token. Only the result carrying the newest
    token is applied; responses from superseded requests are dropped.
    """

    def __init__(self, name: str, default_error: str = "Failed to fetch recipes"):
        self.name = name
        self.default_error = default_error
        self.state = WidgetState.IDLE
        self.data: Any = None
        self.error: Optional[str] = None
        self._tokens = itertools.count(1)
        self._current: Optional[int] = None

    @property
    def is_loading(self) -> bool:
        return self.state is WidgetState.LOADING

    def begin(self) -> int:
        self._current = next(self._tokens)
        self.state = WidgetState.LOADING
        self.error = None
        return self._current

    def resolve(self, token: int, result: Dict[str, Any]) -> bool:
        """
        Apply an envelope if it belongs to the latest request.

        Args:
            token: Token returned by the begin() that started this request
            result: {"success": bool, "data"?: ..., "error"?: str}

        Returns:
            False if the result was stale and discarded
        """
        if token != self._current:
            logger.debug(f"{self.name}: discarding stale result for token {token}")
            return False

        self._current = None
        if result.get("success") and result.get("data") is not None:
            self.state = WidgetState.SUCCESS
            self.data = result["data"]
            self.error = None
        else:
            self.state = WidgetState.ERROR
            self.error = result.get("error") or self.default_error
        return True

    def run(self, call: Callable[[], Dict[str, Any]]) -> bool:
        token = self.begin()
        return self.resolve(token, call())

    def reset(self):
        self.state = WidgetState.IDLE
        self.data = None
        self.error = None
        self._current = None


class RecipeAppClient:
    """Thin client for the recipe finder's /api routes."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = CLIENT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
            return response.json()
        except requests.exceptions.Timeout:
            return {"success": False, "error": "Request timed out"}
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"{method} {path} failed: {str(e)}")
            return {"success": False, "error": "An unexpected error occurred"}

    def search_by_ingredients(self, ingredients: List[str]) -> Dict[str, Any]:
        return self._request(
            "GET", "/api/recipes/by-ingredients", params={"ingredients": ",".join(ingredients)}
        )

    def search_by_name(self, query: str) -> Dict[str, Any]:
        return self._request("GET", "/api/recipes/search", params={"query": query})

    def recipe_details(self, recipe_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/recipes/{recipe_id}")

    def random_recipes(self, tags: Optional[str] = None) -> Dict[str, Any]:
        params = {"tags": tags} if tags else None
        return self._request("GET", "/api/recipes/random", params=params)

    def recipe_ideas(self, ingredients: List[str]) -> Dict[str, Any]:
        return self._request("POST", "/api/ai/recipe-ideas", json={"ingredients": ingredients})

    def enhance_recipe(self, recipe_name: str, ingredients: List[str], instructions: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/ai/recipe-enhance",
            json={"recipeName": recipe_name, "ingredients": ingredients, "instructions": instructions},
        )

    def meal_plan(self, preferences: str = "", restrictions: str = "") -> Dict[str, Any]:
        return self._request(
            "POST", "/api/ai/meal-plan", json={"preferences": preferences, "restrictions": restrictions}
        )

    def env_status(self) -> Dict[str, Any]:
        return self._request("GET", "/api/env-status")
