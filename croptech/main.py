from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from croptech.api.rest_routes.crop_analysis import router as crop_analysis_router
from croptech.api.rest_routes.geolocation import router as geolocation_router
from croptech.api.rest_routes.languages import router as languages_router
from croptech.api.websocket.endpoints import router as websocket_router
from croptech.core.logging import setup_logging

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(lifespan=lifespan)

app.include_router(websocket_router, tags=["websocket"])
app.include_router(crop_analysis_router)
app.include_router(geolocation_router)
app.include_router(languages_router)


@app.get("/")
async def root():
    return {"message": "Welcome to CropTech crop analysis!"}
