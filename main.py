"""Flask app entrypoint for the recipe finder.

This file reads configuration from the environment, wires up the
Spoonacular and AI services, and exposes them to the browser as
same-origin JSON routes so API keys never reach the client.
"""

import os
import logging
from datetime import datetime
from flask import Flask, request, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
from app_models import ProxyResult, IngredientList
from app_services import OpenAIService, FallbackAIService
from spoonacular import SpoonacularService

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# CORS configuration
CORS_METHODS = ["GET", "POST", "OPTIONS"]
cors_config = {
    "origins": os.getenv("CORS_ORIGINS", "*"),
    "methods": CORS_METHODS,
    "allow_headers": ["Content-Type"],
    "max_age": 3600,
}
CORS(app, resources={r"/api/*": cors_config})

# Configuration, read once at startup
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
SPOONACULAR_API_KEY = os.getenv("SPOONACULAR_API_KEY")
USE_FALLBACK_AI = os.getenv("USE_FALLBACK_AI", "false").strip().lower() in ("1", "true", "yes")
NODE_ENV = os.getenv("NODE_ENV") or os.getenv("FLASK_ENV")

if not SPOONACULAR_API_KEY:
    logger.warning("SPOONACULAR_API_KEY not set - recipe search will be unavailable")
if not OPENAI_API_KEY and not USE_FALLBACK_AI:
    logger.warning("OPENAI_API_KEY not set - AI features will be unavailable")

# Initialize services
spoonacular_service = SpoonacularService(SPOONACULAR_API_KEY)
if USE_FALLBACK_AI:
    ai_service = FallbackAIService()
else:
    ai_service = OpenAIService.from_api_key(OPENAI_API_KEY)

start_time = datetime.now()


def respond(result: ProxyResult):
    return jsonify(result.to_dict()), result.status_code


def json_body():
    """Return the request's JSON object, or None when the body is not a JSON object."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def bad_request(message: str):
    return respond(ProxyResult.fail(message, 400))


@app.after_request
def force_json_content_type(response):
    """Every /api/ response is JSON regardless of what the handler set."""
    if request.path.startswith("/api/"):
        response.headers["Content-Type"] = "application/json"
    return response


# --- RECIPE ENDPOINTS ---
@app.route("/api/recipes/by-ingredients", methods=["GET"])
def search_by_ingredients():
    """Expect ?ingredients=tomato,cheese,basil"""
    ingredients = IngredientList(request.args.get("ingredients", "").split(","))
    logger.info(f"Searching recipes by ingredients: {ingredients.to_list()}")
    return respond(spoonacular_service.search_recipes_by_ingredients(ingredients.to_list()))


@app.route("/api/recipes/search", methods=["GET"])
def search_by_name():
    """Expect ?query=lasagna"""
    return respond(spoonacular_service.search_recipes_by_query(request.args.get("query", "")))


@app.route("/api/recipes/random", methods=["GET"])
def random_recipes():
    return respond(spoonacular_service.get_random_recipes(request.args.get("tags")))


@app.route("/api/recipes/<int:recipe_id>", methods=["GET"])
def recipe_details(recipe_id):
    return respond(spoonacular_service.get_recipe_details(recipe_id))


# --- AI ENDPOINTS ---
@app.route("/api/ai/recipe-ideas", methods=["POST"])
def recipe_ideas():
    """
    Request JSON:
    {"ingredients": ["pasta", "garlic"]}

    Response (success):
    {"success": true, "data": {"recipes": [{"name", "description", "additionalIngredients"}]}}
    """
    data = json_body()
    if data is None:
        return bad_request("Request body must be JSON")

    ingredients = data.get("ingredients", [])
    if not isinstance(ingredients, list):
        return bad_request("ingredients must be an array")

    return respond(ai_service.generate_recipe_ideas(IngredientList(ingredients).to_list()))


@app.route("/api/ai/recipe-enhance", methods=["POST"])
def recipe_enhance():
    """
    Request JSON:
    {"recipeName": "...", "ingredients": ["..."], "instructions": "..."}
    """
    data = json_body()
    if data is None:
        return bad_request("Request body must be JSON")

    ingredients = data.get("ingredients", [])
    if not isinstance(ingredients, list):
        return bad_request("ingredients must be an array")

    return respond(ai_service.enhance_recipe(
        str(data.get("recipeName") or ""),
        ingredients,
        str(data.get("instructions") or ""),
    ))


@app.route("/api/ai/meal-plan", methods=["POST"])
def meal_plan():
    """
    Request JSON:
    {"preferences": "high protein", "restrictions": "no nuts"}

    Both fields are optional.
    """
    data = json_body()
    if data is None:
        return bad_request("Request body must be JSON")

    return respond(ai_service.generate_meal_plan(
        str(data.get("preferences") or ""),
        str(data.get("restrictions") or ""),
    ))


# --- UTILITY ENDPOINTS ---
@app.route("/api/env-status", methods=["GET"])
def env_status():
    """Report which keys are configured without exposing their values."""
    return jsonify({
        "status": "ok",
        "environment": {
            "OPENAI_API_KEY": "Set" if OPENAI_API_KEY else "Not set",
            "SPOONACULAR_API_KEY": "Set" if SPOONACULAR_API_KEY else "Not set",
            "NODE_ENV": NODE_ENV,
            "USE_FALLBACK_AI": "true" if USE_FALLBACK_AI else "false",
        },
    }), 200


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint for deployment monitoring."""
    uptime_seconds = (datetime.now() - start_time).total_seconds()
    return jsonify({
        "status": "ok",
        "uptime_seconds": int(uptime_seconds),
        "timestamp": datetime.now().isoformat()
    }), 200


@app.errorhandler(400)
def handle_bad_request(e):
    """Handle 400 errors."""
    logger.warning(f"Bad request: {str(e)}")
    return bad_request("Bad request")


@app.errorhandler(404)
def handle_not_found(e):
    """Handle 404 errors."""
    return respond(ProxyResult.fail("Endpoint not found", 404))


@app.errorhandler(405)
def handle_method_not_allowed(e):
    return respond(ProxyResult.fail("Method not allowed", 405))


@app.errorhandler(500)
def handle_server_error(e):
    """Handle 500 errors."""
    logger.error(f"Server error: {str(e)}")
    return respond(ProxyResult.fail("Internal server error", 500))


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5001))
    debug = os.getenv("FLASK_ENV", "production") == "development"

    logger.info(f"Starting Flask app on port {port} (debug={debug})")
    logger.info(f"CORS allowed origins: {cors_config['origins']}")
    logger.info(f"OpenAI API: {'fallback generator' if USE_FALLBACK_AI else 'configured' if OPENAI_API_KEY else 'NOT SET'}")
    logger.info(f"Spoonacular API: {'configured' if SPOONACULAR_API_KEY else 'NOT SET'}")

    app.run(host="0.0.0.0", port=port, debug=debug)
