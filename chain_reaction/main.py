import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from chain_reaction.api.routes import router

# Pick up a local .env (REDIS_URL, CHAIN_REACTION_*) without overriding the real environment.
load_dotenv(override=False)

app = FastAPI(title="chain-reaction", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "chain-reaction", "version": "0.1.0"}
