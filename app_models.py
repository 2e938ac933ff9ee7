"""
Data models and validation for the recipe finder.
Holds the error taxonomy, the response envelope and the structural
checks applied to recipe-database and language-model payloads.
"""

from dataclasses import dataclass, field
from functools import wraps
from typing import List, Optional, Dict, Any, Callable, Iterable
import logging

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(APIError):
    """Custom exception for validation errors."""
    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message, status_code=400)


class ConfigurationError(APIError):
    """A required client or API key is not configured."""
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class ExternalAPIError(APIError):
    """Exception for external API (OpenAI, Spoonacular) failures."""
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class UpstreamHTTPError(ExternalAPIError):
    """Non-2xx answer from an external service."""
    def __init__(self, upstream_status: int, body: str = ""):
        self.upstream_status = upstream_status
        super().__init__(f"API error: {upstream_status} {body}".rstrip())


class RequestTimeoutError(ExternalAPIError):
    def __init__(self):
        super().__init__("Request timed out", status_code=504)


class ResponseParseError(ExternalAPIError):
    """Body could not be decoded as JSON. The raw text is logged, not returned."""
    pass


class SchemaError(ExternalAPIError):
    """
    Payload decoded but does not have the expected structure.

    detail names the offending field; it is logged, not returned.
    """
    def __init__(self, message: str, detail: str = ""):
        self.detail = detail
        super().__init__(message)


UNEXPECTED_ERROR = "An unexpected error occurred"


@dataclass
class ProxyResult:
    """
    Uniform {success, data?, error?} envelope returned by every proxy call.

    status_code is the HTTP status the Flask layer answers with; it is not
    part of the serialised envelope.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: int = field(default=200, compare=False)

    def __post_init__(self):
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful result requires data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed result requires an error and no data")

    @classmethod
    def ok(cls, data: Any) -> "ProxyResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, status_code: int = 500) -> "ProxyResult":
        return cls(success=False, error=error, status_code=status_code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


def envelope(func: Callable[..., Any]) -> Callable[..., ProxyResult]:
    """
    Wrap a proxy operation so it always returns a ProxyResult.

    The wrapped function returns its payload or raises an APIError; any
    other exception is logged with its traceback and reported with a
    generic message.
    """
    @wraps(func)
    def wrapper(*args, **kwargs) -> ProxyResult:
        try:
            return ProxyResult.ok(func(*args, **kwargs))
        except ValidationError as e:
            logger.warning(f"{func.__name__} rejected input: {e.message}")
            return ProxyResult.fail(e.message, e.status_code)
        except SchemaError as e:
            logger.error(f"{func.__name__} failed: {e.message} ({e.detail})")
            return ProxyResult.fail(e.message, e.status_code)
        except APIError as e:
            logger.error(f"{func.__name__} failed: {e.message}")
            return ProxyResult.fail(e.message, e.status_code)
        except Exception as e:
            logger.exception(f"Unexpected error in {func.__name__}: {str(e)}")
            return ProxyResult.fail(UNEXPECTED_ERROR, 500)
    return wrapper


class IngredientList:
    """Ordered set of lowercase ingredient names entered by the user."""

    def __init__(self, items: Iterable[str] = ()):
        self._items: List[str] = []
        for item in items:
            self.add(item)

    def add(self, value: str) -> bool:
        """Add a trimmed, lowercased ingredient. Returns False for blanks and duplicates."""
        name = str(value).strip().lower()
        if not name or name in self._items:
            return False
        self._items.append(name)
        return True

    def remove(self, value: str) -> bool:
        name = str(value).strip().lower()
        if name not in self._items:
            return False
        self._items.remove(name)
        return True

    def to_list(self) -> List[str]:
        return list(self._items)

    def __iter__(self):
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __contains__(self, value):
        return str(value).strip().lower() in self._items

    def __repr__(self):
        return f"IngredientList({self._items!r})"


# --- Structural validation helpers ---

def _require_object(value: Any, what: str, error: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(error, f"{what} is not an object")
    return value


def _require_list(value: Any, what: str, error: str) -> List[Any]:
    if not isinstance(value, list):
        raise SchemaError(error, f"{what} is not a list")
    return value


def _require_str(value: Any, what: str, error: str) -> str:
    if not isinstance(value, str):
        raise SchemaError(error, f"{what} is not a string")
    return value


def _require_id(value: Any, what: str, error: str) -> int:
    # bool is an int subclass; reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise SchemaError(error, f"{what} is not an integer id")
    return value


def _string_list(value: Any, what: str, error: str) -> List[str]:
    items = _require_list(value, what, error)
    for i, item in enumerate(items):
        _require_str(item, f"{what}[{i}]", error)
    return items


RECIPE_API_FORMAT_ERROR = "Unexpected response format from recipe API"
AI_FORMAT_ERROR = "AI response did not match the expected format"


# --- Recipe-database payloads ---

@dataclass
class RecipeSearchResult:
    """One search hit, in the shape of the findByIngredients endpoint."""
    id: int
    title: str
    image: str = ""
    image_type: str = ""
    used_ingredient_count: int = 0
    missed_ingredient_count: int = 0
    missed_ingredients: List[Dict[str, Any]] = field(default_factory=list)
    used_ingredients: List[Dict[str, Any]] = field(default_factory=list)
    unused_ingredients: List[Dict[str, Any]] = field(default_factory=list)
    likes: int = 0

    @staticmethod
    def from_complex_search(item: Any) -> "RecipeSearchResult":
        """
        Adapt a complexSearch result to the search-result shape.

        complexSearch carries no ingredient match data, so counts default
        to 0 and ingredient arrays to empty. likes comes from
        aggregateLikes when present.

        Raises:
            SchemaError: If the item lacks an integer id or a string title
        """
        item = _require_object(item, "result", RECIPE_API_FORMAT_ERROR)
        return RecipeSearchResult(
            id=_require_id(item.get("id"), "result.id", RECIPE_API_FORMAT_ERROR),
            title=_require_str(item.get("title"), "result.title", RECIPE_API_FORMAT_ERROR),
            image=item.get("image") or "",
            image_type=item.get("imageType") or "",
            likes=item.get("aggregateLikes") or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "id": self.id,
            "title": self.title,
            "image": self.image,
            "imageType": self.image_type,
            "usedIngredientCount": self.used_ingredient_count,
            "missedIngredientCount": self.missed_ingredient_count,
            "missedIngredients": self.missed_ingredients,
            "usedIngredients": self.used_ingredients,
            "unusedIngredients": self.unused_ingredients,
            "likes": self.likes,
        }


def validate_search_results(payload: Any) -> List[Dict[str, Any]]:
    """Check a findByIngredients payload: a list of objects with id and title."""
    results = _require_list(payload, "payload", RECIPE_API_FORMAT_ERROR)
    for i, item in enumerate(results):
        _require_object(item, f"payload[{i}]", RECIPE_API_FORMAT_ERROR)
        _require_id(item.get("id"), f"payload[{i}].id", RECIPE_API_FORMAT_ERROR)
        _require_str(item.get("title"), f"payload[{i}].title", RECIPE_API_FORMAT_ERROR)
    return results


def adapt_complex_search(payload: Any) -> List[Dict[str, Any]]:
    """Validate a complexSearch payload and adapt its results."""
    payload = _require_object(payload, "payload", RECIPE_API_FORMAT_ERROR)
    results = _require_list(payload.get("results"), "payload.results", RECIPE_API_FORMAT_ERROR)
    return [RecipeSearchResult.from_complex_search(item).to_dict() for item in results]


def validate_recipe_details(payload: Any) -> Dict[str, Any]:
    """Check a recipe information payload. Returned unchanged."""
    payload = _require_object(payload, "payload", RECIPE_API_FORMAT_ERROR)
    _require_id(payload.get("id"), "payload.id", RECIPE_API_FORMAT_ERROR)
    _require_str(payload.get("title"), "payload.title", RECIPE_API_FORMAT_ERROR)
    return payload


def validate_random_recipes(payload: Any) -> Dict[str, Any]:
    """Check a random recipes payload. Returned unchanged."""
    payload = _require_object(payload, "payload", RECIPE_API_FORMAT_ERROR)
    recipes = _require_list(payload.get("recipes"), "payload.recipes", RECIPE_API_FORMAT_ERROR)
    for i, item in enumerate(recipes):
        _require_object(item, f"recipes[{i}]", RECIPE_API_FORMAT_ERROR)
        _require_id(item.get("id"), f"recipes[{i}].id", RECIPE_API_FORMAT_ERROR)
    return payload


# --- Language-model payloads ---

@dataclass
class RecipeIdea:
    name: str
    description: str = ""
    additional_ingredients: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "additionalIngredients": self.additional_ingredients,
        }


@dataclass
class RecipeIdeas:
    """AI recipe suggestions for a set of ingredients."""
    recipes: List[RecipeIdea]

    @staticmethod
    def from_dict(data: Any) -> "RecipeIdeas":
        """
        Build RecipeIdeas from parsed model output.

        Args:
            data: Parsed JSON object

        Returns:
            RecipeIdeas with every idea named

        Raises:
            SchemaError: If recipes is missing or an idea has no name
        """
        data = _require_object(data, "response", AI_FORMAT_ERROR)
        raw = _require_list(data.get("recipes"), "recipes", AI_FORMAT_ERROR)
        recipes = []
        for i, item in enumerate(raw):
            item = _require_object(item, f"recipes[{i}]", AI_FORMAT_ERROR)
            recipes.append(RecipeIdea(
                name=_require_str(item.get("name"), f"recipes[{i}].name", AI_FORMAT_ERROR),
                description=_require_str(item.get("description", ""), f"recipes[{i}].description", AI_FORMAT_ERROR),
                additional_ingredients=_string_list(
                    item.get("additionalIngredients", []),
                    f"recipes[{i}].additionalIngredients",
                    AI_FORMAT_ERROR,
                ),
            ))
        return RecipeIdeas(recipes=recipes)

    def to_dict(self) -> Dict[str, Any]:
        return {"recipes": [r.to_dict() for r in self.recipes]}


@dataclass
class RecipeEnhancement:
    """Tips, variations, pairings and nutritional notes for one recipe."""
    tips: List[str] = field(default_factory=list)
    variations: List[str] = field(default_factory=list)
    pairings: List[str] = field(default_factory=list)
    nutritional_benefits: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Any) -> "RecipeEnhancement":
        # Absent sections render as empty; present ones must be string lists.
        data = _require_object(data, "response", AI_FORMAT_ERROR)
        return RecipeEnhancement(
            tips=_string_list(data.get("tips", []), "tips", AI_FORMAT_ERROR),
            variations=_string_list(data.get("variations", []), "variations", AI_FORMAT_ERROR),
            pairings=_string_list(data.get("pairings", []), "pairings", AI_FORMAT_ERROR),
            nutritional_benefits=_string_list(
                data.get("nutritionalBenefits", []), "nutritionalBenefits", AI_FORMAT_ERROR
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tips": self.tips,
            "variations": self.variations,
            "pairings": self.pairings,
            "nutritionalBenefits": self.nutritional_benefits,
        }


@dataclass
class DayMeals:
    """Meals for a single day."""
    day: str
    breakfast: str
    lunch: str
    dinner: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "breakfast": self.breakfast,
            "lunch": self.lunch,
            "dinner": self.dinner,
        }


@dataclass
class MealPlan:
    """Weekly meal plan produced by the model."""
    days: List[DayMeals]

    @staticmethod
    def from_dict(data: Any) -> "MealPlan":
        """
        Build a MealPlan from parsed model output.

        Raises:
            SchemaError: If mealPlan is missing or a day lacks a meal
        """
        data = _require_object(data, "response", AI_FORMAT_ERROR)
        raw = _require_list(data.get("mealPlan"), "mealPlan", AI_FORMAT_ERROR)
        days = []
        for i, item in enumerate(raw):
            item = _require_object(item, f"mealPlan[{i}]", AI_FORMAT_ERROR)
            days.append(DayMeals(**{
                key: _require_str(item.get(key), f"mealPlan[{i}].{key}", AI_FORMAT_ERROR)
                for key in ("day", "breakfast", "lunch", "dinner")
            }))
        return MealPlan(days=days)

    def to_dict(self) -> Dict[str, Any]:
        return {"mealPlan": [d.to_dict() for d in self.days]}
