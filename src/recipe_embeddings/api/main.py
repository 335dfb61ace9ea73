# Load environment variables from .env file first, before any other imports
from dotenv import load_dotenv
load_dotenv()

from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from recipe_embeddings.config import get_supabase_client
from recipe_embeddings.embedding.embedder import embed
from recipe_embeddings.logging_utils import get_logger
from recipe_embeddings.search.recipe_search import RecipeSearch
from recipe_embeddings.sync.pipeline import run_sync

logger = get_logger("main")

# The mobile client calls these endpoints cross-origin with the Supabase headers
CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

app = FastAPI(title="Recipe Embedding Services", version="1.0.0")


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


@app.options("/generate-embedding")
@app.options("/sync-embeddings")
@app.options("/search")
@app.options("/similar-recipes")
def preflight():
    return PlainTextResponse("ok")


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.post("/generate-embedding")
async def generate_embedding(request: Request):
    """Body {"text": str} -> {"embedding": [384 floats]}"""
    try:
        payload = await request.json()
        text = payload.get("text") if isinstance(payload, dict) else None

        if not text or not isinstance(text, str):
            return JSONResponse({"error": "Text parameter is required"}, status_code=400)

        return {"embedding": embed(text)}
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Error generating embedding: %r",
            exc,
            extra={
                "invoking_func": "generate_embedding",
                "invoking_purpose": "Embed text for the mobile client",
                "next_step": "Return 500",
                "resolution": "Send a JSON body of the form {\"text\": \"...\"}",
            },
        )
        return JSONResponse({"error": "Failed to generate embedding"}, status_code=500)


# every method but OPTIONS triggers a run
@app.api_route("/sync-embeddings", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def sync_embeddings():
    """Trigger one sync run; the request body, if any, is ignored."""
    report = run_sync()
    return JSONResponse(report.to_dict(), status_code=200 if report.success else 500)


@app.post("/search")
async def search(request: Request):
    """Body {"query": str, "threshold"?: float, "limit"?: int} -> {"results": [...]}"""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    query = payload.get("query") if isinstance(payload, dict) else None
    if not query or not isinstance(query, str):
        return JSONResponse({"error": "Query parameter is required"}, status_code=400)

    try:
        threshold = float(payload.get("threshold", 0.4))
        limit = int(payload.get("limit", 10))
    except (TypeError, ValueError):
        return JSONResponse({"error": "threshold and limit must be numbers"}, status_code=400)

    try:
        searcher = RecipeSearch(get_supabase_client())
        matches = searcher.search_by_text(query, threshold=threshold, limit=limit)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Search failed: %r",
            exc,
            extra={
                "invoking_func": "search",
                "invoking_purpose": "Vector search over recipe_embeddings",
                "next_step": "Return 500",
                "resolution": "Check Supabase configuration",
            },
        )
        return JSONResponse({"error": "Search failed"}, status_code=500)

    return {"results": [m.to_dict() for m in matches]}


@app.post("/similar-recipes")
async def similar_recipes(request: Request):
    """
    Body {"ingredients": [{"name": str, "category"?: str}, ...],
          "min_loves"?: int, "threshold"?: float, "limit"?: int}
    -> {"results": [...]}
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    ingredients = payload.get("ingredients") if isinstance(payload, dict) else None
    if (
        not isinstance(ingredients, list)
        or not ingredients
        or not all(isinstance(item, dict) and isinstance(item.get("name"), str) for item in ingredients)
    ):
        return JSONResponse({"error": "Ingredients parameter is required"}, status_code=400)

    try:
        min_loves = int(payload.get("min_loves", 50))
        threshold = float(payload.get("threshold", 0.3))
        limit = int(payload.get("limit", 12))
    except (TypeError, ValueError):
        return JSONResponse({"error": "min_loves, threshold and limit must be numbers"}, status_code=400)

    try:
        searcher = RecipeSearch(get_supabase_client())
        matches = searcher.find_similar_recipes(
            ingredients, min_loves=min_loves, threshold=threshold, limit=limit
        )
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Similar recipe search failed: %r",
            exc,
            extra={
                "invoking_func": "similar_recipes",
                "invoking_purpose": "Recipes matching the user's pantry ingredients",
                "next_step": "Return 500",
                "resolution": "Check Supabase configuration",
            },
        )
        return JSONResponse({"error": "Search failed"}, status_code=500)

    return {"results": [m.to_dict() for m in matches]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
