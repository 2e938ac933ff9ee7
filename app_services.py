"""
Service layer for the language-model calls.
Builds the prompts, calls OpenAI (or the offline fallback) and validates
the returned JSON.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

import openai
from openai import OpenAI

from app_models import (
    ValidationError,
    ConfigurationError,
    ExternalAPIError,
    UpstreamHTTPError,
    RequestTimeoutError,
    ResponseParseError,
    envelope,
    RecipeIdeas,
    RecipeEnhancement,
    MealPlan,
)

logger = logging.getLogger(__name__)

AI_REQUEST_TIMEOUT = 30
RAW_LOG_LIMIT = 500
WEEK_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass(frozen=True)
class PromptTask:
    """System prompt and token ceiling for one kind of generation."""
    name: str
    system_prompt: str
    max_tokens: int


RECIPE_IDEAS_TASK = PromptTask(
    name="recipe_ideas",
    system_prompt="You are a helpful cooking assistant that provides recipe ideas in JSON format.",
    max_tokens=1000,
)
RECIPE_ENHANCEMENT_TASK = PromptTask(
    name="recipe_enhancement",
    system_prompt="You are a helpful cooking assistant that provides recipe enhancements in JSON format.",
    max_tokens=1000,
)
MEAL_PLAN_TASK = PromptTask(
    name="meal_plan",
    system_prompt="You are a helpful meal planning assistant that provides meal plans in JSON format.",
    max_tokens=1500,
)


def build_recipe_ideas_prompt(ingredients: List[str]) -> str:
    return f"""I have the following ingredients: {", ".join(ingredients)}.
Suggest 3 creative recipe ideas I could make with these ingredients.
For each recipe, provide:
1. A catchy name
2. A brief description (1-2 sentences)
3. Any additional ingredients I might need

Format your response as a JSON object with this structure:
{{
  "recipes": [
    {{
      "name": "Recipe Name",
      "description": "Brief description",
      "additionalIngredients": ["ingredient1", "ingredient2"]
    }}
  ]
}}"""


def build_enhancement_prompt(recipe_name: str, ingredients: List[str], instructions: str) -> str:
    return f"""I have a recipe for "{recipe_name}" with these ingredients:
{", ".join(ingredients)}

And these instructions:
{instructions}

Please enhance this recipe by providing:
1. Cooking tips and tricks
2. Possible variations (e.g., vegetarian, spicy, etc.)
3. Wine or beverage pairing suggestions
4. Nutritional benefits

Format your response as a JSON object with this structure:
{{
  "tips": ["tip1", "tip2"],
  "variations": ["variation1", "variation2"],
  "pairings": ["pairing1", "pairing2"],
  "nutritionalBenefits": ["benefit1", "benefit2"]
}}"""


def build_meal_plan_prompt(preferences: str, restrictions: str) -> str:
    """Empty preferences become "balanced diet", empty restrictions "none"."""
    preferences = (preferences or "").strip() or "balanced diet"
    restrictions = (restrictions or "").strip() or "none"
    return f"""Create a 7-day meal plan with the following preferences: {preferences}.
Dietary restrictions to consider: {restrictions}.

For each day, include breakfast, lunch, and dinner.

Format your response as a JSON object with this structure:
{{
  "mealPlan": [
    {{
      "day": "Monday",
      "breakfast": "Meal description",
      "lunch": "Meal description",
      "dinner": "Meal description"
    }}
  ]
}}"""


def _clean_list(values: Optional[List[Any]]) -> List[str]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValidationError("ingredients must be an array", "ingredients")
    return [str(v).strip() for v in values if str(v).strip()]


class AIService:
    """
    Recipe ideas, recipe enhancement and meal plans from a language model.

    Subclasses supply _complete_json; this class owns input checks,
    prompts and output validation.
    """

    @property
    def available(self) -> bool:
        return True

    def ensure_available(self):
        if not self.available:
            raise ConfigurationError("OpenAI client not available on the server")

    def _complete_json(self, task: PromptTask, prompt: str, **context) -> Any:
        raise NotImplementedError

    @envelope
    def generate_recipe_ideas(self, ingredients: List[str]) -> Dict[str, Any]:
        """
        Suggest three recipes that use the given ingredients.

        Args:
            ingredients: Ingredient names

        Returns:
            {"recipes": [{"name", "description", "additionalIngredients"}]}

        Raises:
            ValidationError: If no ingredients are given
            ConfigurationError: If no model client is configured
        """
        ingredients = _clean_list(ingredients)
        if not ingredients:
            raise ValidationError("No ingredients provided", "ingredients")
        self.ensure_available()

        prompt = build_recipe_ideas_prompt(ingredients)
        payload = self._complete_json(RECIPE_IDEAS_TASK, prompt, ingredients=ingredients)
        ideas = RecipeIdeas.from_dict(payload)
        logger.info(f"Generated {len(ideas.recipes)} recipe ideas")
        return ideas.to_dict()

    @envelope
    def enhance_recipe(self, recipe_name: str, ingredients: List[str], instructions: str) -> Dict[str, Any]:
        """
        Tips, variations, pairings and nutritional benefits for a recipe.

        Raises:
            ValidationError: If the name, ingredients or instructions are missing
            ConfigurationError: If no model client is configured
        """
        recipe_name = (recipe_name or "").strip()
        ingredients = _clean_list(ingredients)
        instructions = (instructions or "").strip()
        if not recipe_name:
            raise ValidationError("Recipe name is required", "recipeName")
        if not ingredients:
            raise ValidationError("No ingredients provided", "ingredients")
        if not instructions:
            raise ValidationError("Recipe instructions are required", "instructions")
        self.ensure_available()

        prompt = build_enhancement_prompt(recipe_name, ingredients, instructions)
        payload = self._complete_json(
            RECIPE_ENHANCEMENT_TASK,
            prompt,
            recipe_name=recipe_name,
            ingredients=ingredients,
        )
        return RecipeEnhancement.from_dict(payload).to_dict()

    @envelope
    def generate_meal_plan(self, preferences: str = "", restrictions: str = "") -> Dict[str, Any]:
        """Seven-day plan of breakfast, lunch and dinner."""
        self.ensure_available()

        prompt = build_meal_plan_prompt(preferences, restrictions)
        payload = self._complete_json(
            MEAL_PLAN_TASK,
            prompt,
            preferences=(preferences or "").strip(),
            restrictions=(restrictions or "").strip(),
        )
        plan = MealPlan.from_dict(payload)
        logger.info(f"Generated meal plan with {len(plan.days)} days")
        return plan.to_dict()


class OpenAIService(AIService):
    """Handle all OpenAI chat-completion calls."""

    DEFAULT_MODEL = "gpt-4o"
    TEMPERATURE = 0.7

    def __init__(self, client: Optional[OpenAI], model: str = DEFAULT_MODEL):
        """Initialize with an already constructed OpenAI client (or None)."""
        self.client = client
        self.model = model

    @classmethod
    def from_api_key(cls, api_key: Optional[str], model: str = DEFAULT_MODEL) -> "OpenAIService":
        """
        Build the service; without a key the client stays None and every call fails as unavailable.

        The SDK retries twice by default; a failed call is terminal here.
        """
        client = OpenAI(api_key=api_key, timeout=AI_REQUEST_TIMEOUT, max_retries=0) if api_key else None
        return cls(client, model=model)

    @property
    def available(self) -> bool:
        return self.client is not None

    def _complete_json(self, task: PromptTask, prompt: str, **context) -> Any:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": task.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.TEMPERATURE,
                max_tokens=task.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError:
            logger.error(f"OpenAI {task.name} request timed out")
            raise RequestTimeoutError()
        except openai.APIStatusError as e:
            logger.error(f"OpenAI {task.name} HTTP error {e.status_code}: {e.message}")
            raise UpstreamHTTPError(e.status_code, e.message)
        except openai.APIError as e:
            logger.error(f"OpenAI {task.name} error: {str(e)}")
            raise ExternalAPIError(str(e))

        if not response.choices:
            logger.error(f"OpenAI {task.name} response contained no choices")
            raise ResponseParseError("Failed to parse AI response")
        text = response.choices[0].message.content or ""
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse AI response for {task.name}: {e}; raw text: {text[:RAW_LOG_LIMIT]!r}")
            raise ResponseParseError("Failed to parse AI response")


class FallbackAIService(AIService):
    """
    Deterministic stand-in used when USE_FALLBACK_AI is set.

    Builds simple payloads of the same shape from the request inputs so
    the app works without an OpenAI key. No network calls.
    """

    def _complete_json(self, task: PromptTask, prompt: str, **context) -> Any:
        logger.info(f"Using fallback generator for {task.name}")
        if task is RECIPE_IDEAS_TASK:
            return self._recipe_ideas(context["ingredients"])
        if task is RECIPE_ENHANCEMENT_TASK:
            return self._enhancement(context["recipe_name"], context["ingredients"])
        if task is MEAL_PLAN_TASK:
            return self._meal_plan(context["preferences"], context["restrictions"])
        raise ExternalAPIError(f"No fallback for {task.name}")

    @staticmethod
    def _recipe_ideas(ingredients: List[str]) -> Dict[str, Any]:
        main = ingredients[0].title()
        rest = ", ".join(ingredients[1:]) or "pantry staples"
        return {
            "recipes": [
                {
                    "name": f"Quick {main} Stir-Fry",
                    "description": f"A fast skillet dish built around {ingredients[0]} with {rest}.",
                    "additionalIngredients": ["soy sauce", "vegetable oil"],
                },
                {
                    "name": f"Baked {main} Casserole",
                    "description": f"Layers of {', '.join(ingredients)} baked until golden.",
                    "additionalIngredients": ["cheese", "breadcrumbs"],
                },
                {
                    "name": f"Rustic {main} Soup",
                    "description": f"A simple simmered soup of {', '.join(ingredients)}.",
                    "additionalIngredients": ["stock", "onion"],
                },
            ]
        }

    @staticmethod
    def _enhancement(recipe_name: str, ingredients: List[str]) -> Dict[str, Any]:
        return {
            "tips": [
                f"Prepare and measure all ingredients for {recipe_name} before you start cooking.",
                "Season gradually and taste as you go.",
            ],
            "variations": [
                "Vegetarian: replace any meat with beans or mushrooms.",
                "Spicy: add chili flakes or fresh chilies.",
            ],
            "pairings": ["Sparkling water with lemon", "A light white wine"],
            "nutritionalBenefits": [
                f"{ingredients[0].capitalize()} contributes vitamins and minerals.",
                "Home cooking keeps sodium and added sugar under your control.",
            ],
        }

    @staticmethod
    def _meal_plan(preferences: str, restrictions: str) -> Dict[str, Any]:
        style = preferences or "balanced"
        note = f" ({restrictions}-friendly)" if restrictions else ""
        return {
            "mealPlan": [
                {
                    "day": day,
                    "breakfast": f"Oatmeal with fruit{note}",
                    "lunch": f"{style.capitalize()} grain bowl with vegetables{note}",
                    "dinner": f"{style.capitalize()} protein with roasted vegetables{note}",
                }
                for day in WEEK_DAYS
            ]
        }
